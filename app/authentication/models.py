"""
Authentication models.

This module defines the user entity held by the in-memory entity store:
- User: Identity synced from the external identity provider plus profile

Related files:
    - services.py: UserService (ensure_user upsert, profile updates)
    - backends.py: DRF authentication against identity tokens
    - chat/store.py: EntityStore that owns User rows

Identity:
    - uid is the stable identifier issued by the identity provider
    - id is the local numeric id allocated by the store
    - Users are created on first authentication sync and never deleted
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# Usernames that cannot be chosen via profile updates
RESERVED_USERNAMES = frozenset([
    "admin", "administrator", "root", "system", "api", "www",
    "support", "help", "security", "account", "login", "logout",
    "auth", "user", "users", "profile", "settings", "null",
    "undefined", "anonymous", "guest", "staff", "moderator", "bot",
])


@dataclass
class User:
    """
    A person who can chat, post statuses, and hold a live connection.

    Fields:
        uid: External identity provider id (unique, immutable)
        email: Contact address (unique when set)
        username: Handle, defaults to the email on first sync (unique when set)
        display_name: Name shown to other users
        photo_url: Optional avatar URL (opaque, resolved by the blob store)
        last_seen_at: Presence timestamp, stamped on connect/disconnect/heartbeat
        id: Local id allocated by the store
        created_at: When the user was first synced

    The is_authenticated/is_anonymous properties let DRF treat a store
    user as request.user.
    """

    uid: str
    email: str | None = None
    username: str | None = None
    display_name: str = ""
    photo_url: str | None = None
    last_seen_at: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None

    def __str__(self) -> str:
        """Return human-readable representation."""
        return self.display_name or self.email or self.uid

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False
