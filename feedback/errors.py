"""Error taxonomy surfaced by the messaging service.

Every failure carries a stable machine-readable ``kind`` and a human readable
``message``; the HTTP layer only needs ``status_code`` and ``to_dict()``.
"""
from __future__ import annotations

from typing import Any, Dict


class MessagingError(Exception):
    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind}: {self.message}>"


class ValidationError(MessagingError):
    kind = "validation_error"
    status_code = 400


class NotFoundError(MessagingError):
    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class AccessDeniedError(MessagingError):
    """Caller cannot see the target thread."""

    kind = "access_denied"
    status_code = 403


class AuthorizationError(MessagingError):
    """Caller lacks the privilege for the action (e.g. non-admin delete)."""

    kind = "authorization_error"
    status_code = 403


class AlreadyDeletedError(MessagingError):
    kind = "already_deleted"
    status_code = 404


class InternalError(MessagingError):
    kind = "internal_error"
    status_code = 500


__all__ = [
    "MessagingError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "AuthorizationError",
    "AlreadyDeletedError",
    "InternalError",
]
