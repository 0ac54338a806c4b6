"""
Serializers for chat API.

This module provides serializers for the chat system:
- Chat serializers (summary read, create)
- Member serializers (read, add)
- Message serializers (read, create)
- Status serializers (feed item read, create)
- Invite and presence serializers

Serializer Hierarchy:
    ChatSerializer: ChatSummary projection with members and unread count
    ChatCreateSerializer: Direct/group chat creation

    MemberSerializer: MemberView with nested user
    MemberAddSerializer: Add a member to a chat

    MessageSerializer: MessageView with nested sender
    MessageCreateSerializer: Send a new message

    StatusSerializer: StatusFeedItem with author and view flags
    StatusCreateSerializer: Post a status

Design Decisions:
    - Read and write serializers are separate for clarity
    - Read serializers take the projections built by chat.queries
    - Write serializers check shape only; business rules live in services
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import MEMBERSHIP_CONFIG, MESSAGE_CONFIG, STATUS_CONFIG
from chat.models import ChatType

URL_MAX_LENGTH = 2048


# =============================================================================
# Members
# =============================================================================


class MemberSerializer(serializers.Serializer):
    """Membership joined with its user."""

    user = UserSerializer(read_only=True)
    is_admin = serializers.BooleanField(read_only=True)
    joined_at = serializers.DateTimeField(read_only=True, allow_null=True)


class MemberAddSerializer(serializers.Serializer):
    """Serializer for adding a member to a chat."""

    user_id = serializers.IntegerField(min_value=1)
    is_admin = serializers.BooleanField(default=False)


# =============================================================================
# Chats
# =============================================================================


class ChatSerializer(serializers.Serializer):
    """
    Serializer for a chat as seen by one user.

    Fields:
        other_member: The other participant of a direct chat (null for groups)
        unread_count: Messages in the chat the caller has not read
    """

    id = serializers.IntegerField(source="chat.id", read_only=True)
    chat_type = serializers.CharField(source="chat.chat_type", read_only=True)
    name = serializers.CharField(source="chat.name", read_only=True, allow_null=True)
    photo_url = serializers.CharField(
        source="chat.photo_url", read_only=True, allow_null=True
    )
    created_by = serializers.IntegerField(
        source="chat.created_by", read_only=True, allow_null=True
    )
    last_message = serializers.CharField(
        source="chat.last_message", read_only=True, allow_null=True
    )
    last_message_at = serializers.DateTimeField(
        source="chat.last_message_at", read_only=True, allow_null=True
    )
    member_count = serializers.IntegerField(source="chat.member_count", read_only=True)
    created_at = serializers.DateTimeField(source="chat.created_at", read_only=True)
    members = MemberSerializer(many=True, read_only=True)
    other_member = UserSerializer(read_only=True, allow_null=True)
    unread_count = serializers.IntegerField(read_only=True)


class ChatCreateSerializer(serializers.Serializer):
    """
    Serializer for creating chats.

    Direct chats:
        {"chat_type": "direct", "member_ids": [42]}
        Exactly one other user; an existing direct chat is returned instead
        of creating a duplicate.

    Group chats:
        {"chat_type": "group", "name": "Project Team", "member_ids": [42, 43]}
        Name required; member_ids optional.
    """

    chat_type = serializers.ChoiceField(choices=ChatType.choices)
    name = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=MEMBERSHIP_CONFIG.MAX_GROUP_NAME_LENGTH,
    )
    photo_url = serializers.CharField(
        required=False, allow_blank=True, max_length=URL_MAX_LENGTH
    )
    member_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )

    def validate(self, attrs):
        chat_type = attrs["chat_type"]

        if chat_type == ChatType.DIRECT and len(attrs["member_ids"]) != 1:
            raise serializers.ValidationError(
                {"member_ids": "Direct chats require exactly one other user."}
            )
        if chat_type == ChatType.GROUP and not attrs.get("name", "").strip():
            raise serializers.ValidationError(
                {"name": "Group chats require a name."}
            )
        return attrs


class InviteCodeSerializer(serializers.Serializer):
    chat_id = serializers.IntegerField(read_only=True)
    invite_code = serializers.CharField(read_only=True)


class InviteJoinSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)


# =============================================================================
# Messages
# =============================================================================


class MessageSerializer(serializers.Serializer):
    """Message with its sender attached (sender is null if missing)."""

    id = serializers.IntegerField(source="message.id", read_only=True)
    chat_id = serializers.IntegerField(source="message.chat_id", read_only=True)
    sender_id = serializers.IntegerField(source="message.sender_id", read_only=True)
    sender = UserSerializer(read_only=True, allow_null=True)
    text = serializers.CharField(source="message.text", read_only=True, allow_null=True)
    image_url = serializers.CharField(
        source="message.image_url", read_only=True, allow_null=True
    )
    message_type = serializers.CharField(source="message.message_type", read_only=True)
    read_by = serializers.ListField(
        source="message.read_by", child=serializers.IntegerField(), read_only=True
    )
    created_at = serializers.DateTimeField(source="message.created_at", read_only=True)


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for sending messages.

    At least one of text or image_url must be present. image_url is the URL
    returned by the media upload endpoint.
    """

    text = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=True,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )
    image_url = serializers.CharField(
        required=False, allow_blank=True, max_length=URL_MAX_LENGTH
    )

    def validate(self, attrs):
        if not attrs.get("text") and not attrs.get("image_url"):
            raise serializers.ValidationError(
                "Message must contain text or an image."
            )
        return attrs


# =============================================================================
# Statuses
# =============================================================================


class StatusSerializer(serializers.Serializer):
    """Status as seen by one viewer."""

    id = serializers.IntegerField(source="status.id", read_only=True)
    author_id = serializers.IntegerField(source="status.author_id", read_only=True)
    author = UserSerializer(read_only=True, allow_null=True)
    text = serializers.CharField(source="status.text", read_only=True, allow_null=True)
    image_url = serializers.CharField(
        source="status.image_url", read_only=True, allow_null=True
    )
    status_type = serializers.CharField(source="status.status_type", read_only=True)
    created_at = serializers.DateTimeField(source="status.created_at", read_only=True)
    expires_at = serializers.DateTimeField(source="status.expires_at", read_only=True)
    view_count = serializers.IntegerField(read_only=True)
    viewed = serializers.BooleanField(read_only=True)
    is_own = serializers.BooleanField(read_only=True)


class StatusCreateSerializer(serializers.Serializer):
    """
    Serializer for posting a status.

    expires_at is accepted for client compatibility but never trusted: the
    server always sets expiry to creation time plus the status TTL.
    """

    text = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=STATUS_CONFIG.MAX_CONTENT_LENGTH,
    )
    image_url = serializers.CharField(
        required=False, allow_blank=True, max_length=URL_MAX_LENGTH
    )
    expires_at = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        if not attrs.get("text") and not attrs.get("image_url"):
            raise serializers.ValidationError("Status must contain text or an image.")
        return attrs


# =============================================================================
# Presence
# =============================================================================


class PresenceSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(read_only=True)
    online = serializers.BooleanField(read_only=True)
    last_seen_at = serializers.DateTimeField(read_only=True, allow_null=True)
