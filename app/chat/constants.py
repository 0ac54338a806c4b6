"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Membership limits (group capacity, direct chat size)
- Message previews
- Status expiry
- Invite codes
- Real-time event types

Limits that operators may tune (group capacity, status TTL, invite code
length) are read through django.conf.settings with these values as defaults.
Import example:
    from chat.constants import MEMBERSHIP_CONFIG, STATUS_CONFIG
"""

from typing import Final


# =============================================================================
# Membership Configuration
# =============================================================================


class MEMBERSHIP_CONFIG:
    """Configuration for chat membership."""

    MAX_GROUP_MEMBERS: Final[int] = 2000
    DIRECT_CHAT_SIZE: Final[int] = 2
    MAX_GROUP_NAME_LENGTH: Final[int] = 100


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters
    PREVIEW_LENGTH: Final[int] = 200  # Characters kept in Chat.last_message
    IMAGE_PREVIEW: Final[str] = "\U0001f4f7 Image"


# =============================================================================
# Status Configuration
# =============================================================================


class STATUS_CONFIG:
    """Configuration for ephemeral statuses."""

    TTL_HOURS: Final[int] = 24
    MAX_CONTENT_LENGTH: Final[int] = 700


# =============================================================================
# Invite Configuration
# =============================================================================


class INVITE_CONFIG:
    """Configuration for group invite codes."""

    CODE_LENGTH: Final[int] = 8
    # Attempts at drawing a code that is not already taken
    MAX_GENERATION_ATTEMPTS: Final[int] = 5


# =============================================================================
# Real-time Events
# =============================================================================


class EVENT_TYPES:
    """Event types pushed to WebSocket clients by the fan-out."""

    NEW_MESSAGE: Final[str] = "new_message"
    STATUS_UPDATE: Final[str] = "status_update"
    NEW_CONVERSATION: Final[str] = "new_conversation"

