"""
Core Application - Infrastructure & Base Classes

Shared building blocks for the domain apps. Nothing in here knows about
chats, statuses or media.

Services (import from core.services):
    - BaseService: Base class for service layer (logger, store lock)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - PermissionDeniedError: Authorization failures
    - ConflictError: State conflicts (duplicates, etc.)
    - ExternalServiceError: Storage and other backend failures

Handlers (import from core.handlers):
    - api_exception_handler: DRF exception handler for BaseApplicationError

Helpers (import from core.helpers):
    - generate_code: Random short codes (invite links)

Usage:
    from core.services import BaseService
    from core.exceptions import ValidationError, NotFoundError
    from core.helpers import generate_code
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .helpers import generate_code
from .services import BaseService

__all__ = [
    # Services
    "BaseService",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    # Helpers
    "generate_code",
]
