"""Error kinds surfaced by the realtime chat core.

Every per-request failure is raised as one of these inside a controller
operation and converted into an outbound ``auth-error``/``error`` event at the
controller boundary. The ``retryable`` flag lets clients tell transient
collaborator failures apart from permanent rejections.
"""

from __future__ import annotations

from enum import Enum

from blinders.core.exceptions import BlindersException


class ChatErrorCode(str, Enum):
    unauthenticated = "unauthenticated"
    invalid_token = "invalid_token"
    token_expired = "token_expired"
    banned_or_inactive = "banned_or_inactive"
    session_replaced = "session_replaced"
    room_not_found = "room_not_found"
    room_inactive = "room_inactive"
    insufficient_role = "insufficient_role"
    not_joined = "not_joined"
    validation_error = "validation_error"
    persistence_failed = "persistence_failed"
    lookup_failed = "lookup_failed"


class ChatError(BlindersException):
    retryable: bool = False

    def __init__(self, message: str, *, code: ChatErrorCode, details=None) -> None:  # noqa: ANN001
        super().__init__(message, code=code.value, details=details)
        self.kind = code


class AuthenticationFailed(ChatError):
    status_code = 401


class InvalidTokenError(AuthenticationFailed):
    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message, code=ChatErrorCode.invalid_token)


class TokenExpiredError(AuthenticationFailed):
    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(message, code=ChatErrorCode.token_expired)


class AccessDenied(ChatError):
    status_code = 403


class RoomNotFound(AccessDenied):
    status_code = 404


class ChatValidationError(ChatError):
    status_code = 422

    def __init__(self, message: str, *, details=None) -> None:  # noqa: ANN001
        super().__init__(message, code=ChatErrorCode.validation_error, details=details)


class CollaboratorError(ChatError):
    status_code = 503
    retryable = True


class PersistenceFailed(CollaboratorError):
    def __init__(self, message: str = "Failed to save message") -> None:
        super().__init__(message, code=ChatErrorCode.persistence_failed)


class LookupFailed(CollaboratorError):
    def __init__(self, message: str = "Lookup failed") -> None:
        super().__init__(message, code=ChatErrorCode.lookup_failed)


__all__ = [
    "AccessDenied",
    "AuthenticationFailed",
    "ChatError",
    "ChatErrorCode",
    "ChatValidationError",
    "CollaboratorError",
    "InvalidTokenError",
    "LookupFailed",
    "PersistenceFailed",
    "RoomNotFound",
    "TokenExpiredError",
]
