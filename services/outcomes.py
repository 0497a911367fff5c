"""
Result types shared by the session services.

Expected business conditions (bad credentials, unknown token, nothing to log
out) are reported as failed AuthOutcome values. Infrastructure faults raise
FatalError instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class AuthFailure(str, Enum):
    INVALID_INPUT = "InvalidInput"
    DUPLICATE_EMAIL = "DuplicateEmail"
    INVALID_CREDENTIALS = "InvalidCredentials"
    EMPTY_TOKEN = "EmptyToken"
    INVALID_TOKEN = "InvalidToken"
    TOKEN_EXPIRED_OR_REVOKED = "TokenExpiredOrRevoked"
    NO_ACTIVE_SESSION = "NoActiveSession"
    NO_ACTIVE_SESSIONS = "NoActiveSessions"
    USER_NOT_FOUND = "UserNotFound"
    CONCURRENT_UPDATE = "ConcurrentUpdate"


# failure -> (category, http status, default message)
FAILURES = {
    AuthFailure.INVALID_INPUT: (ErrorCategory.VALIDATION, 400, "All fields are required."),
    AuthFailure.DUPLICATE_EMAIL: (ErrorCategory.CONFLICT, 400, "User already exists."),
    AuthFailure.INVALID_CREDENTIALS: (ErrorCategory.AUTHENTICATION, 401, "Invalid email or password."),
    AuthFailure.EMPTY_TOKEN: (ErrorCategory.VALIDATION, 400, "Refresh token cannot be empty."),
    AuthFailure.INVALID_TOKEN: (ErrorCategory.AUTHENTICATION, 401, "Invalid refresh token."),
    AuthFailure.TOKEN_EXPIRED_OR_REVOKED: (
        ErrorCategory.AUTHENTICATION, 401, "Refresh token has expired or been revoked."
    ),
    AuthFailure.NO_ACTIVE_SESSION: (ErrorCategory.NOT_FOUND, 400, "No active session for this device."),
    AuthFailure.NO_ACTIVE_SESSIONS: (ErrorCategory.NOT_FOUND, 400, "No active sessions to log out."),
    AuthFailure.USER_NOT_FOUND: (ErrorCategory.NOT_FOUND, 404, "User not found."),
    AuthFailure.CONCURRENT_UPDATE: (
        ErrorCategory.CONFLICT, 409, "The session was changed by another request, please retry."
    ),
}


class FatalError(Exception):
    """Storage or signing infrastructure failed; surfaced as a 500."""


@dataclass(frozen=True)
class AuthOutcome:
    succeeded: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    failure: Optional[AuthFailure] = None

    @classmethod
    def success(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "AuthOutcome":
        return cls(succeeded=True, message=message, data=data)

    @classmethod
    def fail(cls, failure: AuthFailure, message: Optional[str] = None) -> "AuthOutcome":
        return cls(succeeded=False, message=message or FAILURES[failure][2], failure=failure)

    @property
    def category(self) -> Optional[ErrorCategory]:
        return FAILURES[self.failure][0] if self.failure else None

    @property
    def http_status(self) -> int:
        return FAILURES[self.failure][1] if self.failure else 200

    @property
    def retryable(self) -> bool:
        return self.failure is AuthFailure.CONCURRENT_UPDATE
