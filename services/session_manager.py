"""
Session manager: register, login, refresh, logout and logout-all.

Per (user, device) a session moves NoSession -> Active -> Active (rotated) or
Revoked. Each public operation runs in its own storage transaction; the reads
that decide an outcome and the writes that record it commit together or not
at all.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models.base_model import utcnow
from models.schemas.common import is_blank
from services.credential_store import CredentialStore, DuplicateEmail
from services.outcomes import AuthFailure, AuthOutcome, FatalError
from services.token_ledger import RefreshTokenLedger
from utils.security import TokenSigner, burn_password_check, verify_password

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, storage, signer: TokenSigner, clock: Callable[[], datetime] = utcnow):
        self._storage = storage
        self._signer = signer
        self._clock = clock

    def _run(self, operation: str, work, conflict: AuthFailure = AuthFailure.CONCURRENT_UPDATE):
        try:
            with self._storage.transaction() as session:
                return work(session)
        except (StaleDataError, IntegrityError) as exc:
            logger.warning("%s lost a concurrent write: %s", operation, exc.__class__.__name__)
            return AuthOutcome.fail(conflict)
        except SQLAlchemyError as exc:
            logger.exception("%s failed against storage", operation)
            raise FatalError(f"{operation} failed") from exc

    def _token_payload(self, user, record, raw_refresh: str) -> dict:
        try:
            access_token = self._signer.issue_access_token(user)
        except Exception as exc:
            logger.exception("Could not sign access token for user %s", user.id)
            raise FatalError("token signing failed") from exc
        return {
            "accessToken": access_token,
            "refreshToken": raw_refresh,
            "deviceId": record.device_id,
            "tokenType": "bearer",
            "expiresIn": self._signer.access_token_seconds,
        }

    def register(self, name: str, email: str, password: str) -> AuthOutcome:
        if is_blank(name) or is_blank(email) or is_blank(password):
            return AuthOutcome.fail(AuthFailure.INVALID_INPUT)

        def work(session):
            try:
                user = CredentialStore(session).create(name, email, password)
            except DuplicateEmail:
                return AuthOutcome.fail(AuthFailure.DUPLICATE_EMAIL)
            logger.info("Registered user %s", user.id)
            return AuthOutcome.success("User created successfully.")

        return self._run("register", work, conflict=AuthFailure.DUPLICATE_EMAIL)

    def login(self, email: str, password: str, device_id: Optional[str] = None) -> AuthOutcome:
        """Verify credentials and open (or renew) the session for device_id.

        When device_id is omitted a new one is generated; it is returned in
        the payload and the client must send it on later logins and logouts.
        """
        if is_blank(email) or is_blank(password):
            return AuthOutcome.fail(AuthFailure.INVALID_INPUT)
        device_id = device_id.strip() if not is_blank(device_id) else str(uuid.uuid4())

        def work(session):
            user = CredentialStore(session).find_by_email(email)
            if user is None or not user.is_active:
                burn_password_check(password)
                return AuthOutcome.fail(AuthFailure.INVALID_CREDENTIALS)
            if not verify_password(password, user.password_hash):
                logger.info("Rejected password for user %s", user.id)
                return AuthOutcome.fail(AuthFailure.INVALID_CREDENTIALS)

            now = self._clock()
            raw_refresh = self._signer.issue_refresh_token()
            record = RefreshTokenLedger(session).store(
                user.id,
                device_id,
                self._signer.hash_token(raw_refresh),
                self._signer.refresh_expiry(now),
                now,
            )
            payload = self._token_payload(user, record, raw_refresh)
            logger.info("User %s logged in on device %s", user.id, device_id)
            return AuthOutcome.success("Login successful.", payload)

        return self._run("login", work)

    def refresh(self, raw_refresh_token: Optional[str]) -> AuthOutcome:
        """Exchange a refresh token for a new pair; the presented token is spent."""
        if is_blank(raw_refresh_token):
            return AuthOutcome.fail(AuthFailure.EMPTY_TOKEN)
        token_hash = self._signer.hash_token(raw_refresh_token.strip())

        def work(session):
            ledger = RefreshTokenLedger(session)
            record = ledger.find_by_hash(token_hash)
            if record is None:
                return AuthOutcome.fail(AuthFailure.INVALID_TOKEN)
            now = self._clock()
            if not record.is_usable(now):
                logger.info("Refused spent refresh token for user %s device %s", record.user_id, record.device_id)
                return AuthOutcome.fail(AuthFailure.TOKEN_EXPIRED_OR_REVOKED)
            user = CredentialStore(session).get(record.user_id)
            if user is None or not user.is_active:
                return AuthOutcome.fail(AuthFailure.INVALID_TOKEN)

            raw_refresh = self._signer.issue_refresh_token()
            successor = ledger.rotate(
                record,
                self._signer.hash_token(raw_refresh),
                self._signer.refresh_expiry(now),
                now,
            )
            payload = self._token_payload(user, successor, raw_refresh)
            logger.info("Rotated refresh token for user %s device %s", user.id, successor.device_id)
            return AuthOutcome.success("Token refreshed successfully.", payload)

        return self._run("refresh", work)

    def logout(self, user_id: str, device_id: str) -> AuthOutcome:
        def work(session):
            ledger = RefreshTokenLedger(session)
            record = ledger.find_active(user_id, device_id)
            if record is None:
                return AuthOutcome.fail(AuthFailure.NO_ACTIVE_SESSION)
            ledger.revoke(record, self._clock())
            logger.info("User %s logged out of device %s", user_id, device_id)
            return AuthOutcome.success("Logged out successfully.", {"deviceId": device_id})

        return self._run("logout", work)

    def logout_all(self, user_id: str) -> AuthOutcome:
        def work(session):
            revoked = RefreshTokenLedger(session).revoke_all(user_id, self._clock())
            if not revoked:
                return AuthOutcome.fail(AuthFailure.NO_ACTIVE_SESSIONS)
            logger.info("User %s logged out of %d device(s)", user_id, revoked)
            return AuthOutcome.success("Logged out from all devices.", {"revokedSessions": revoked})

        return self._run("logout_all", work)

    def list_sessions(self, user_id: str) -> AuthOutcome:
        def work(session):
            now = self._clock()
            records = [
                record for record in RefreshTokenLedger(session).active_for_user(user_id)
                if record.is_usable(now)
            ]
            sessions = [
                {
                    "deviceId": record.device_id,
                    "lastUsedAt": record.last_used_at.isoformat() if record.last_used_at else None,
                    "expiresAt": record.expires_at.isoformat(),
                }
                for record in records
            ]
            return AuthOutcome.success("Active sessions.", {"sessions": sessions})

        return self._run("list_sessions", work)

    def get_user(self, user_id: str):
        """Return the active user or None."""
        def work(session):
            user = CredentialStore(session).get(user_id)
            return user if user is not None and user.is_active else None

        return self._run("get_user", work)

    def deactivate_user(self, user_id: str) -> AuthOutcome:
        """Soft-delete the user and revoke every session it still holds."""
        def work(session):
            user = CredentialStore(session).get(user_id)
            if user is None or not user.is_active:
                return AuthOutcome.fail(AuthFailure.USER_NOT_FOUND)
            now = self._clock()
            user.soft_delete(now)
            revoked = RefreshTokenLedger(session).revoke_all(user_id, now)
            logger.info("Deactivated user %s, revoked %d session(s)", user_id, revoked)
            return AuthOutcome.success("Account deactivated.", {"revokedSessions": revoked})

        return self._run("deactivate_user", work)
