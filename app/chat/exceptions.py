"""
Chat-specific exceptions.

Exception Hierarchy:
    BaseApplicationError (core)
    └── CapacityExceededError - Chat is at its member limit

Usage:
    from chat.exceptions import CapacityExceededError

    if chat.member_count >= limit:
        raise CapacityExceededError(chat.id, limit=limit)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


class CapacityExceededError(BaseApplicationError):
    """
    Raised when adding a member would push a chat past its capacity.

    Groups cap at MEMBERSHIP_CONFIG.MAX_GROUP_MEMBERS (or the
    CHAT_MAX_GROUP_MEMBERS setting); direct chats cap at two.

    Attributes:
        chat_id: Id of the full chat (None for a chat not yet created)
        limit: Member limit that was hit

    Example:
        if chat.member_count >= limit:
            raise CapacityExceededError(chat.id, limit=limit)
    """

    default_error_code: str = "CAPACITY_EXCEEDED"
    status_code: int = 422

    def __init__(
        self,
        chat_id: int | None,
        limit: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.chat_id = chat_id
        self.limit = limit

        full_details = {"chat_id": chat_id, "limit": limit}
        if details:
            full_details.update(details)

        if chat_id is None:
            message = f"A chat cannot have more than {limit} members"
        else:
            message = f"Chat {chat_id} is full ({limit} members)"

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )
