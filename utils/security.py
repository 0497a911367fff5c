"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token (JWT, HS256) creation/verification via PyJWT
- Opaque refresh token generation and SHA-256 hashing for at-rest storage
"""
from __future__ import annotations

import base64
import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from models.base_model import utcnow

REFRESH_TOKEN_BYTES = 64

ph = PasswordHasher()

# verified against when the email is unknown so both failure paths cost one argon2 run
_DUMMY_HASH = ph.hash(secrets.token_urlsafe(16))


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def burn_password_check(password: str) -> None:
    """Spend the same work as a real verification, result discarded."""
    verify_password(password, _DUMMY_HASH)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


class InvalidAccessToken(Exception):
    """Raised when a bearer token fails signature, expiry or claim checks."""


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    issuer: str
    audience: str
    access_token_minutes: int
    refresh_token_days: int
    algorithm: str = "HS256"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        secret = config.get("JWT_SECRET")
        if not secret:
            raise ValueError("JWT_SECRET must be configured")
        return cls(
            secret=secret,
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_token_minutes=int(config["ACCESS_TOKEN_EXPIRES_MINUTES"]),
            refresh_token_days=int(config["REFRESH_TOKEN_EXPIRES_DAYS"]),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )


class TokenSigner:
    """Mints access/refresh tokens from an immutable TokenSettings."""

    def __init__(self, settings: TokenSettings, clock: Callable[[], datetime] = utcnow):
        self.settings = settings
        self._clock = clock

    @property
    def access_token_seconds(self) -> int:
        return self.settings.access_token_minutes * 60

    def issue_access_token(self, user) -> str:
        now = self._clock()
        payload = {
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "sub": str(user.id),
            "name": user.name,
            "email": user.email,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.access_token_minutes),
            "type": "access",
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self.settings.secret, algorithm=self.settings.algorithm)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate an access token. Raises InvalidAccessToken on a bad
        signature, expiry, issuer, audience or token type.
        """
        try:
            decoded = jwt.decode(
                token,
                self.settings.secret,
                algorithms=[self.settings.algorithm],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
                options={"require": ["exp", "sub", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidAccessToken("Token expired")
        except jwt.InvalidTokenError as exc:
            raise InvalidAccessToken(f"Invalid token: {exc}")

        if decoded.get("type") != "access":
            raise InvalidAccessToken("Wrong token type")
        return decoded

    @staticmethod
    def issue_refresh_token() -> str:
        """Opaque random token; the caller hashes it before storing."""
        return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")

    @staticmethod
    def hash_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    def refresh_expiry(self, now: datetime) -> datetime:
        return now + timedelta(days=self.settings.refresh_token_days)
