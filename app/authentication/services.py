"""
Authentication services.

This module provides UserService, which syncs identities from the external
identity provider into the entity store and manages profile updates.

Related files:
    - models.py: User dataclass
    - backends.py: Token authentication that calls ensure_user
    - chat/middleware.py: WebSocket authentication that calls ensure_user

Identity rules:
    - uid is trusted as issued by the identity provider
    - ensure_user is find-or-create: claims seed a new profile and never
      overwrite an existing one (profile edits go through update_profile)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService

from authentication.models import RESERVED_USERNAMES, User

if TYPE_CHECKING:
    from typing import Any

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")
MAX_DISPLAY_NAME_LENGTH = 80


class UserService(BaseService):
    """
    User sync and profile management.

    Usage:
        users = UserService(store)

        # On every authenticated request
        user = users.ensure_user("firebase-uid", {"email": "a@example.com"})

        # Profile edit
        users.update_profile(user.id, display_name="Alice")
    """

    def ensure_user(self, uid: str, claims: dict[str, Any] | None = None) -> User:
        """
        Return the user for uid, creating it from identity claims if new.

        Args:
            uid: Verified external id
            claims: Optional "email", "name", and "picture" claims

        Returns:
            The stored User

        Raises:
            ValidationError: Blank uid
            ConflictError: A different user already holds the email
        """
        if not uid or not str(uid).strip():
            raise ValidationError("Identity has no uid", error_code="UID_REQUIRED")

        uid = str(uid).strip()
        claims = claims or {}

        with self.atomic():
            user = self.store.users.get_by("uid", uid)
            if user is not None:
                return user

            email = (claims.get("email") or "").strip().lower() or None
            display_name = (claims.get("name") or "").strip()
            if not display_name:
                display_name = email.split("@")[0] if email else uid

            user = self.store.users.insert(
                User(
                    uid=uid,
                    email=email,
                    username=self._free_username(email or uid),
                    display_name=display_name[:MAX_DISPLAY_NAME_LENGTH],
                    photo_url=claims.get("picture") or None,
                )
            )

        self.get_logger().info(f"Created user {user.id} for identity {uid}")
        return user

    def _free_username(self, base: str) -> str:
        """
        First of base, base-2, base-3, ... that no user holds.

        Usernames are user-editable, so a new identity's default can
        already be taken.
        """
        candidate = base
        suffix = 1
        while self.store.users.get_by("username", candidate) is not None:
            suffix += 1
            candidate = f"{base}-{suffix}"
        return candidate

    def get_user(self, user_id: int) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": user_id},
            )
        return user

    @staticmethod
    def validate_username(username: str) -> str:
        """
        Normalize and validate a username.

        Returns:
            Lowercased username

        Raises:
            ValidationError: Bad format or reserved name
        """
        username = (username or "").strip().lower()
        if not USERNAME_PATTERN.match(username):
            raise ValidationError(
                "Username must be 3-30 characters and contain only "
                "letters, numbers, underscores, and hyphens.",
                error_code="INVALID_USERNAME",
                details={"username": username},
            )
        if username in RESERVED_USERNAMES:
            raise ValidationError(
                f"The username '{username}' is reserved.",
                error_code="RESERVED_USERNAME",
                details={"username": username},
            )
        return username

    def update_profile(
        self,
        user_id: int,
        display_name: str | None = None,
        username: str | None = None,
        photo_url: str | None = None,
    ) -> User:
        """
        Update mutable profile fields. Arguments left as None are unchanged.

        Raises:
            NotFoundError: User does not exist
            ValidationError: Blank display name or invalid username
            ConflictError: Username already taken
        """
        fields: dict[str, Any] = {}

        if display_name is not None:
            display_name = display_name.strip()
            if not display_name:
                raise ValidationError(
                    "Display name cannot be blank",
                    error_code="DISPLAY_NAME_REQUIRED",
                )
            fields["display_name"] = display_name[:MAX_DISPLAY_NAME_LENGTH]
        if username is not None:
            fields["username"] = self.validate_username(username)
        if photo_url is not None:
            fields["photo_url"] = photo_url.strip() or None

        with self.atomic():
            self.get_user(user_id)
            if "username" in fields:
                holder = self.store.users.get_by("username", fields["username"])
                if holder is not None and holder.id != user_id:
                    raise ConflictError(
                        "This username is already taken.",
                        error_code="USERNAME_TAKEN",
                        details={"username": fields["username"]},
                    )
            user = self.store.users.update_fields(user_id, **fields)

        if fields:
            self.get_logger().info(
                f"Profile updated for user {user_id}: {sorted(fields)}"
            )
        return user
