"""
Chat system models.

This module defines the entities held by the in-memory entity store:
- Direct (1:1) chats between exactly two users
- Group chats with admin/non-admin members
- Messages with read receipts
- Ephemeral statuses (24h stories) with view tracking

Models:
    Chat: Container for messages between members
    Membership: User membership in a chat with admin flag
    Message: Individual message within a chat
    Status: Ephemeral post visible to the author's contacts
    StatusView: One row per first-time view of a status

Design Decisions:
    - Entities are plain dataclasses; chat.store.EntityStore owns them
    - Ids and creation timestamps are allocated by the store, never by callers
    - Chat.last_message / last_message_at are a cache written together
      with each new message
    - Message.read_by and Status.viewed_by only grow and never hold duplicates
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from django.db import models

from chat.constants import MESSAGE_CONFIG


class ChatType(models.TextChoices):
    """
    Type of chat.

    DIRECT: Exactly two members, no name
    GROUP: 1..2000 members, named, with admin/non-admin roles
    """

    DIRECT = "direct", "Direct Message"
    GROUP = "group", "Group"


class ContentType(models.TextChoices):
    """
    Kind of content carried by a message or status.

    TEXT: Text only
    IMAGE: Carries an image reference (optionally with a caption)
    """

    TEXT = "text", "Text"
    IMAGE = "image", "Image"


@dataclass
class Chat:
    """
    A conversation between two or more users.

    Fields:
        chat_type: direct or group
        name: Group name (None for direct chats)
        photo_url: Optional group avatar
        created_by: Id of the user who created the chat
        last_message: Preview of the most recent message (cache)
        last_message_at: Timestamp of the most recent message (cache)
        member_count: Current number of members (cache)
        invite_code: Group invite code, unique while set
    """

    chat_type: str
    name: str | None = None
    photo_url: str | None = None
    created_by: int | None = None
    last_message: str | None = None
    last_message_at: datetime | None = None
    member_count: int = 0
    invite_code: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    def __str__(self) -> str:
        """Return human-readable representation."""
        if self.chat_type == ChatType.DIRECT:
            return f"Direct({self.id})"
        if self.name:
            return f"Group: {self.name}"
        return f"Group({self.id})"

    @property
    def is_direct(self) -> bool:
        """Check if this is a direct (1:1) chat."""
        return self.chat_type == ChatType.DIRECT

    @property
    def is_group(self) -> bool:
        """Check if this is a group chat."""
        return self.chat_type == ChatType.GROUP


@dataclass
class Membership:
    """User membership in a chat. Unique per (chat_id, user_id)."""

    chat_id: int
    user_id: int
    is_admin: bool = False
    id: int | None = None
    joined_at: datetime | None = None


@dataclass
class Message:
    """
    A message within a chat.

    At least one of text or image_url is present. Immutable once stored,
    except for read_by which only grows.
    """

    chat_id: int
    sender_id: int
    text: str | None = None
    image_url: str | None = None
    read_by: list[int] = field(default_factory=list)
    id: int | None = None
    created_at: datetime | None = None

    @property
    def message_type(self) -> str:
        return ContentType.IMAGE if self.image_url else ContentType.TEXT

    @property
    def preview(self) -> str:
        """Text stored in the chat's last_message cache."""
        if self.text:
            return self.text[: MESSAGE_CONFIG.PREVIEW_LENGTH]
        return MESSAGE_CONFIG.IMAGE_PREVIEW


@dataclass
class Status:
    """
    An ephemeral post that expires a fixed time after creation.

    Lifecycle:
        ACTIVE (now < expires_at) -> EXPIRED (now >= expires_at), terminal.
    """

    author_id: int
    text: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    viewed_by: list[int] = field(default_factory=list)
    id: int | None = None
    created_at: datetime | None = None

    @property
    def status_type(self) -> str:
        return ContentType.IMAGE if self.image_url else ContentType.TEXT

    @property
    def view_count(self) -> int:
        return len(self.viewed_by)

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is not None and now < self.expires_at


@dataclass
class StatusView:
    """First-time view of a status. Unique per (status_id, viewer_id)."""

    status_id: int
    viewer_id: int
    id: int | None = None
    viewed_at: datetime | None = None
