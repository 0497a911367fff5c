"""User lookups and creation over an open SQLAlchemy session."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func

from models.user import User
from models.schemas.common import normalize_email
from utils.security import hash_password


class DuplicateEmail(Exception):
    pass


class CredentialStore:
    def __init__(self, session):
        self._session = session

    def find_by_email(self, email: str) -> Optional[User]:
        return (
            self._session.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .first()
        )

    def get(self, user_id: str) -> Optional[User]:
        return self._session.get(User, user_id)

    def create(self, name: str, email: str, raw_password: str) -> User:
        """Persist a new user; raises DuplicateEmail if the address is taken."""
        if self.find_by_email(email) is not None:
            raise DuplicateEmail(normalize_email(email))
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=hash_password(raw_password),
        )
        self._session.add(user)
        self._session.flush()
        return user
