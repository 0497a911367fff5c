"""
Refresh token ledger: persisted (user, device) sessions keyed by token hash.

Rotation policy: a refresh revokes the consumed row and inserts a new one for
the same device, so every issued token keeps an audit row. A login on a device
that already has an active row overwrites that row in place.

Every write is flushed immediately so optimistic-concurrency failures
(StaleDataError / IntegrityError) surface inside the caller's transaction.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from models.refresh_token import RefreshToken


class RefreshTokenLedger:
    def __init__(self, session):
        self._session = session

    def find_active(self, user_id: str, device_id: str) -> Optional[RefreshToken]:
        return (
            self._session.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.device_id == device_id,
                RefreshToken.revoked.is_(False),
            )
            .first()
        )

    def find_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        return (
            self._session.query(RefreshToken)
            .filter(RefreshToken.token_hash == token_hash)
            .first()
        )

    def active_for_user(self, user_id: str) -> List[RefreshToken]:
        return (
            self._session.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .order_by(RefreshToken.last_used_at.desc())
            .all()
        )

    def store(self, user_id: str, device_id: str, token_hash: str,
              expires_at: datetime, now: datetime) -> RefreshToken:
        """Record a login: overwrite the device's active row or start a new one."""
        record = self.find_active(user_id, device_id)
        if record is None:
            record = RefreshToken(user_id=user_id, device_id=device_id)
            self._session.add(record)
        record.token_hash = token_hash
        record.expires_at = expires_at
        record.revoked = False
        record.last_used_at = now
        self._session.flush()
        return record

    def rotate(self, record: RefreshToken, token_hash: str,
               expires_at: datetime, now: datetime) -> RefreshToken:
        """Consume record and issue its successor on the same device."""
        record.revoke(now)
        # the revoke must hit the table before the successor takes the active slot
        self._session.flush()
        successor = RefreshToken(
            user_id=record.user_id,
            device_id=record.device_id,
            token_hash=token_hash,
            expires_at=expires_at,
            revoked=False,
            last_used_at=now,
        )
        self._session.add(successor)
        self._session.flush()
        return successor

    def revoke(self, record: RefreshToken, now: datetime) -> None:
        record.revoke(now)
        self._session.flush()

    def revoke_all(self, user_id: str, now: datetime) -> int:
        records = self.active_for_user(user_id)
        for record in records:
            record.revoke(now)
        self._session.flush()
        return len(records)
