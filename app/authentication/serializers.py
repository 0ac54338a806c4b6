"""
Serializers for authentication.

This module provides DRF serializers for:
- User entity (read operations)
- Profile updates (display name, username, avatar)

Related files:
    - models.py: User dataclass
    - views.py: Views that use these serializers
    - services.py: UserService for validation and writes

Note:
    Users are dataclasses held by the entity store, so these are plain
    Serializers rather than ModelSerializers. Uniqueness and reserved-name
    checks live in UserService, where they run under the store lock.
"""

from rest_framework import serializers


class UserSerializer(serializers.Serializer):
    """
    Serializer for User (read operations).

    Used for the current user endpoint and nested wherever a user is
    attached to a chat, member, message, or status.
    """

    id = serializers.IntegerField(read_only=True)
    uid = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True, allow_null=True)
    username = serializers.CharField(read_only=True, allow_null=True)
    display_name = serializers.CharField(read_only=True)
    photo_url = serializers.CharField(read_only=True, allow_null=True)
    last_seen_at = serializers.DateTimeField(read_only=True, allow_null=True)
    created_at = serializers.DateTimeField(read_only=True)


class ProfileUpdateSerializer(serializers.Serializer):
    """
    Serializer for profile updates (PATCH semantics: every field optional).

    Username format is checked again by UserService.validate_username,
    which also rejects reserved names.
    """

    display_name = serializers.CharField(required=False, max_length=80)
    username = serializers.RegexField(
        r"^[a-zA-Z0-9_-]{3,30}$",
        required=False,
        error_messages={
            "invalid": (
                "Username must be 3-30 characters and contain only "
                "letters, numbers, underscores, and hyphens."
            )
        },
    )
    photo_url = serializers.CharField(
        required=False, allow_blank=True, max_length=2048
    )
