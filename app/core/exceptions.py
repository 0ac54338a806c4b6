"""
Application error hierarchy.

Services raise these; core.handlers.api_exception_handler turns them into
JSON responses using each class's status_code. Query code never raises
them for missing related records, it leaves those out.

Hierarchy:
    BaseApplicationError (400)
    ├── ValidationError (400) - bad input or a broken business rule
    ├── NotFoundError (404) - referenced id does not exist
    ├── PermissionDeniedError (403) - caller may not do this
    ├── ConflictError (409) - duplicate or unique-key clash
    └── ExternalServiceError (502) - blob store or other backend failed

Response body:
    {"error": "Chat 7 not found", "error_code": "CHAT_NOT_FOUND",
     "details": {"chat_id": 7}}

    details is omitted when empty.

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise ConflictError(
        "User is already a member",
        error_code="ALREADY_MEMBER",
        details={"chat_id": chat_id, "user_id": user_id},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Root of all domain errors.

    Attributes:
        message: Text shown to the client
        error_code: Stable code clients can branch on
        details: Extra context (ids, limits, field names)
        status_code: HTTP status the API layer responds with
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"error_code={self.error_code!r}, details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Input that cannot be accepted.

    Examples: a message with neither text nor image, a group without a
    name, a sender who is not in the chat. Serializer-level shape checks
    stay with DRF; this is for rules only the service layer can check.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """A chat, message, status or user id that does not exist."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Authenticated, but not allowed.

    Missing or bad tokens are DRF's AuthenticationFailed, not this.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class ConflictError(BaseApplicationError):
    """Write would duplicate a unique key (uid, email, membership, invite code)."""

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    A backend outside this process failed.

    Raised by media uploads when default_storage errors out. Keep the
    original error in details for logs.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
