"""
Chat system service layer.

This module provides the write side of the chat system. Every operation
validates first, then performs its store writes under BaseService.atomic(),
then hands notifications to the fan-out once the lock is released.

Services:
    ChatService: Chat lifecycle (create group/direct, open direct, access checks)
    MembershipService: Member management (add, remove, capacity)
    InviteService: Group invite codes (generate, regenerate, join)
    MessageService: Messages (send, mark read)
    StatusService: Ephemeral statuses (post, view)
    PresenceService: Online/last-seen tracking

Design Principles:
    - Services are instances bound to one EntityStore and one NotificationFanout
    - Expected failures raise core.exceptions errors before any write
    - Check-then-act sequences never suspend or perform I/O
    - Notification delivery can never fail the mutation that caused it

Usage:
    from chat.services import ChatService, MessageService

    chats = ChatService(store, fanout)
    chat = chats.create_chat(ChatType.GROUP, "Project Team", creator_id=user.id)

    messages = MessageService(store, fanout)
    message = messages.send_message(chat.id, user.id, text="Hello everyone!")
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.helpers import generate_code
from core.services import BaseService

from chat.constants import (
    EVENT_TYPES,
    INVITE_CONFIG,
    MEMBERSHIP_CONFIG,
    MESSAGE_CONFIG,
    STATUS_CONFIG,
)
from chat.exceptions import CapacityExceededError
from chat.models import Chat, ChatType, Membership, Message, Status, StatusView
from chat.queries import ChatQueries

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from authentication.models import User
    from chat.fanout import NotificationFanout
    from chat.store import EntityStore


def _clean_text(value: str | None) -> str | None:
    """Strip text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class ChatStoreService(BaseService):
    """
    Base for chat services: store, fan-out, and shared lookups.

    The _require_* helpers must be called inside atomic() when their result
    feeds a write.
    """

    def __init__(self, store: EntityStore, fanout: NotificationFanout):
        super().__init__(store)
        self.fanout = fanout
        self.queries = ChatQueries(store)

    def _require_user(self, user_id: int) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": user_id},
            )
        return user

    def _require_chat(self, chat_id: int) -> Chat:
        chat = self.store.chats.get(chat_id)
        if chat is None:
            raise NotFoundError(
                f"Chat {chat_id} not found",
                error_code="CHAT_NOT_FOUND",
                details={"chat_id": chat_id},
            )
        return chat

    def _get_membership(self, chat_id: int, user_id: int) -> Membership | None:
        return self.store.memberships.get_by(
            ("chat_id", "user_id"), (chat_id, user_id)
        )

    def _sync_member_count(self, chat_id: int) -> Chat:
        return self.store.chats.update_fields(
            chat_id,
            member_count=self.store.memberships.count_by("chat_id", chat_id),
        )

    def _notify(self, user_ids, payload: dict[str, Any]) -> int:
        if not user_ids:
            return 0
        return self.fanout.notify(user_ids, payload)


# =============================================================================
# Chats
# =============================================================================


class ChatService(ChatStoreService):
    """
    Service for chat lifecycle operations.

    Methods:
        create_chat: Create a direct or group chat with the creator as admin
        open_direct_chat: Find or create the direct chat between two users
        get_chat_for_member: Load a chat the user belongs to
    """

    def create_chat(
        self,
        chat_type: str,
        name: str | None,
        creator_id: int,
        photo_url: str | None = None,
    ) -> Chat:
        """
        Create a chat and add its creator as the first, admin member.

        Args:
            chat_type: ChatType.DIRECT or ChatType.GROUP
            name: Required for groups, ignored for direct chats
            creator_id: Id of the creating user
            photo_url: Optional group avatar

        Returns:
            The created Chat (member_count == 1)

        Raises:
            ValidationError: Unknown chat type, or a group without a name
            NotFoundError: Creator does not exist
        """
        if chat_type not in ChatType.values:
            raise ValidationError(
                f"Unknown chat type: {chat_type}",
                error_code="INVALID_CHAT_TYPE",
                details={"chat_type": chat_type},
            )

        name = _clean_text(name)
        if chat_type == ChatType.GROUP:
            errors = self.validate_required(name=name)
            if errors:
                raise ValidationError(
                    "Group chats require a name",
                    error_code="NAME_REQUIRED",
                    details=errors,
                )
            if len(name) > MEMBERSHIP_CONFIG.MAX_GROUP_NAME_LENGTH:
                raise ValidationError(
                    f"Group name cannot exceed "
                    f"{MEMBERSHIP_CONFIG.MAX_GROUP_NAME_LENGTH} characters",
                    error_code="NAME_TOO_LONG",
                )
        else:
            name = None
            photo_url = None

        with self.atomic():
            self._require_user(creator_id)
            chat = self.store.chats.insert(
                Chat(
                    chat_type=chat_type,
                    name=name,
                    photo_url=photo_url,
                    created_by=creator_id,
                )
            )
            self.store.memberships.insert(
                Membership(chat_id=chat.id, user_id=creator_id, is_admin=True)
            )
            chat = self._sync_member_count(chat.id)

        self.get_logger().info(
            f"User {creator_id} created {chat_type} chat {chat.id}"
        )
        return chat

    def create_group(
        self,
        name: str | None,
        creator_id: int,
        member_ids=(),
        photo_url: str | None = None,
    ) -> Chat:
        """
        Create a group and add initial members in one step.

        All member ids are checked before anything is written, so an unknown
        id or an oversized list leaves the store untouched.

        Raises:
            ValidationError: Missing name
            NotFoundError: Creator or a member does not exist
            CapacityExceededError: Creator plus members exceed the group limit
        """
        member_ids = sorted(set(member_ids) - {creator_id})
        limit = MembershipService.capacity_for(Chat(chat_type=ChatType.GROUP))

        with self.atomic():
            for member_id in member_ids:
                self._require_user(member_id)
            if len(member_ids) + 1 > limit:
                raise CapacityExceededError(None, limit=limit)

            chat = self.create_chat(ChatType.GROUP, name, creator_id, photo_url)
            for member_id in member_ids:
                self.store.memberships.insert(
                    Membership(chat_id=chat.id, user_id=member_id)
                )
            chat = self._sync_member_count(chat.id)

        self._notify(
            member_ids,
            {"type": EVENT_TYPES.NEW_CONVERSATION, "chat_id": chat.id},
        )
        return chat

    def open_direct_chat(self, user_id: int, other_user_id: int) -> tuple[Chat, bool]:
        """
        Return the direct chat between two users, creating it if needed.

        Returns:
            (chat, created)

        Raises:
            ValidationError: SAME_USER when both ids are equal
            NotFoundError: Either user does not exist
        """
        if user_id == other_user_id:
            raise ValidationError(
                "Cannot start a direct chat with yourself",
                error_code="SAME_USER",
            )

        with self.atomic():
            self._require_user(user_id)
            self._require_user(other_user_id)

            existing = self._find_direct_chat(user_id, other_user_id)
            if existing is not None:
                return existing, False

            chat = self.store.chats.insert(
                Chat(chat_type=ChatType.DIRECT, created_by=user_id)
            )
            self.store.memberships.insert(
                Membership(chat_id=chat.id, user_id=user_id)
            )
            self.store.memberships.insert(
                Membership(chat_id=chat.id, user_id=other_user_id)
            )
            chat = self._sync_member_count(chat.id)

        self.get_logger().info(
            f"Opened direct chat {chat.id} between users {user_id} and {other_user_id}"
        )
        self._notify(
            {other_user_id},
            {"type": EVENT_TYPES.NEW_CONVERSATION, "chat_id": chat.id},
        )
        return chat, True

    def _find_direct_chat(self, user_id: int, other_user_id: int) -> Chat | None:
        for membership in self.store.memberships.filter_by("user_id", user_id):
            chat = self.store.chats.get(membership.chat_id)
            if chat is None or not chat.is_direct:
                continue
            if self._get_membership(chat.id, other_user_id) is not None:
                return chat
        return None

    def get_chat_for_member(self, chat_id: int, user_id: int) -> Chat:
        """
        Load a chat on behalf of one of its members.

        Raises:
            NotFoundError: Chat does not exist
            PermissionDeniedError: User is not a member
        """
        with self.atomic():
            chat = self._require_chat(chat_id)
            if self._get_membership(chat_id, user_id) is None:
                raise PermissionDeniedError(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                    details={"chat_id": chat_id},
                )
        return chat


# =============================================================================
# Membership
# =============================================================================


class MembershipService(ChatStoreService):
    """
    Service for chat membership.

    Methods:
        add_member: Add a user to a chat (capacity and duplicate checks)
        remove_member: Remove a user from a chat (idempotent)

    When actor_id is given, the call is made on behalf of that user and
    authorization applies: adding or removing someone else requires a group
    admin. A direct chat keeps its pair: nobody can be added to it on a
    user's behalf, and each participant can only remove themselves.
    """

    @staticmethod
    def capacity_for(chat: Chat) -> int:
        if chat.is_direct:
            return MEMBERSHIP_CONFIG.DIRECT_CHAT_SIZE
        return getattr(
            settings, "CHAT_MAX_GROUP_MEMBERS", MEMBERSHIP_CONFIG.MAX_GROUP_MEMBERS
        )

    def add_member(
        self,
        chat_id: int,
        user_id: int,
        as_admin: bool = False,
        actor_id: int | None = None,
    ) -> Membership:
        """
        Add a user to a chat.

        Returns:
            The new Membership

        Raises:
            NotFoundError: Chat or user does not exist
            PermissionDeniedError: Actor may not add members to this chat
            CapacityExceededError: Chat is at capacity (groups: 2000, direct: 2)
            ConflictError: User is already a member
        """
        with self.atomic():
            chat = self._require_chat(chat_id)
            self._require_user(user_id)
            if actor_id is not None:
                self._check_can_add(chat, actor_id)

            if self._get_membership(chat_id, user_id) is not None:
                raise ConflictError(
                    "User is already a member of this chat",
                    error_code="ALREADY_MEMBER",
                    details={"chat_id": chat_id, "user_id": user_id},
                )

            limit = self.capacity_for(chat)
            if self.store.memberships.count_by("chat_id", chat_id) >= limit:
                raise CapacityExceededError(chat_id, limit=limit)

            membership = self.store.memberships.insert(
                Membership(chat_id=chat_id, user_id=user_id, is_admin=as_admin)
            )
            self._sync_member_count(chat_id)

        self.get_logger().info(f"Added user {user_id} to chat {chat_id}")
        self._notify(
            {user_id},
            {"type": EVENT_TYPES.NEW_CONVERSATION, "chat_id": chat_id},
        )
        return membership

    def remove_member(
        self,
        chat_id: int,
        user_id: int,
        actor_id: int | None = None,
    ) -> bool:
        """
        Remove a user from a chat.

        Removing a non-member is a no-op. A chat left with no members stays
        in the store.

        Returns:
            True if a membership was deleted

        Raises:
            PermissionDeniedError: Actor may not remove this member
        """
        with self.atomic():
            if actor_id is not None and actor_id != user_id:
                chat = self._require_chat(chat_id)
                if chat.is_direct:
                    raise PermissionDeniedError(
                        "Members of a direct chat can only remove themselves",
                        error_code="DIRECT_CHAT_FIXED",
                        details={"chat_id": chat_id},
                    )
                self._check_admin(chat, actor_id)

            membership = self._get_membership(chat_id, user_id)
            if membership is None:
                return False

            self.store.memberships.delete(membership.id)
            self._sync_member_count(chat_id)

        self.get_logger().info(f"Removed user {user_id} from chat {chat_id}")
        return True

    def _check_can_add(self, chat: Chat, actor_id: int) -> None:
        if chat.is_direct:
            raise PermissionDeniedError(
                "Direct chats cannot take new members; open a new chat instead",
                error_code="DIRECT_CHAT_FIXED",
                details={"chat_id": chat.id},
            )
        self._check_admin(chat, actor_id)

    def _check_admin(self, chat: Chat, actor_id: int) -> None:
        membership = self._get_membership(chat.id, actor_id)
        if membership is None or not membership.is_admin:
            raise PermissionDeniedError(
                "Only group admins can manage members",
                error_code="ADMIN_REQUIRED",
                details={"chat_id": chat.id},
            )


# =============================================================================
# Invite codes
# =============================================================================


class InviteService(MembershipService):
    """
    Service for group invite codes.

    A group has at most one live code. Codes are unique across chats and are
    drawn from core.helpers.CODE_ALPHABET.
    """

    def generate_invite_code(self, chat_id: int, user_id: int) -> str:
        """Return the group's invite code, creating one if it has none."""
        with self.atomic():
            chat = self._require_admin_group(chat_id, user_id)
            if chat.invite_code:
                return chat.invite_code
            return self._assign_code(chat)

    def regenerate_invite_code(self, chat_id: int, user_id: int) -> str:
        """Replace the group's invite code; the old one stops working."""
        with self.atomic():
            chat = self._require_admin_group(chat_id, user_id)
            return self._assign_code(chat)

    def join_with_invite_code(self, code: str, user_id: int) -> Chat:
        """
        Join the group owning an invite code.

        Raises:
            NotFoundError: INVITE_NOT_FOUND for unknown codes
            CapacityExceededError: Group is full
            ConflictError: User is already a member
        """
        code = (code or "").strip().upper()
        chat = self.store.chats.get_by("invite_code", code) if code else None
        if chat is None:
            raise NotFoundError(
                "Invite code not found",
                error_code="INVITE_NOT_FOUND",
            )

        self.add_member(chat.id, user_id)
        return self.store.chats.get(chat.id)

    def _require_admin_group(self, chat_id: int, user_id: int) -> Chat:
        chat = self._require_chat(chat_id)
        if not chat.is_group:
            raise ValidationError(
                "Invite codes are only available for group chats",
                error_code="NOT_GROUP",
                details={"chat_id": chat_id},
            )
        membership = self._get_membership(chat_id, user_id)
        if membership is None or not membership.is_admin:
            raise PermissionDeniedError(
                "Only group admins can manage invite codes",
                error_code="ADMIN_REQUIRED",
                details={"chat_id": chat_id},
            )
        return chat

    def _assign_code(self, chat: Chat) -> str:
        length = getattr(settings, "CHAT_INVITE_CODE_LENGTH", INVITE_CONFIG.CODE_LENGTH)
        for _ in range(INVITE_CONFIG.MAX_GENERATION_ATTEMPTS):
            code = generate_code(length)
            if self.store.chats.get_by("invite_code", code) is None:
                self.store.chats.update_fields(chat.id, invite_code=code)
                self.get_logger().info(f"New invite code for chat {chat.id}")
                return code

        self.get_logger().error(
            f"Could not draw a free invite code for chat {chat.id} "
            f"after {INVITE_CONFIG.MAX_GENERATION_ATTEMPTS} attempts"
        )
        raise ConflictError(
            "Could not generate a unique invite code",
            error_code="INVITE_CODE_UNAVAILABLE",
        )


# =============================================================================
# Messages
# =============================================================================


class MessageService(ChatStoreService):
    """
    Service for message operations.

    Methods:
        send_message: Post a text and/or image message
        mark_message_read: Add a reader to one message (idempotent)
        mark_chat_read: Mark every message in a chat as read
    """

    def send_message(
        self,
        chat_id: int,
        sender_id: int,
        text: str | None = None,
        image_url: str | None = None,
    ) -> Message:
        """
        Send a message to a chat.

        The sender is recorded as its first reader, and the chat's
        last_message cache is updated in the same atomic step. Every other
        member is notified with a new_message event.

        Returns:
            The stored Message

        Raises:
            ValidationError: EMPTY_CONTENT, CONTENT_TOO_LONG, or NOT_MEMBER
            NotFoundError: Chat does not exist
        """
        text = _clean_text(text)
        image_url = _clean_text(image_url)

        if text is None and image_url is None:
            raise ValidationError(
                "Message must contain text or an image",
                error_code="EMPTY_CONTENT",
            )
        if text is not None and len(text) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Message cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )

        with self.atomic():
            self._require_chat(chat_id)
            if self._get_membership(chat_id, sender_id) is None:
                raise ValidationError(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                    details={"chat_id": chat_id, "sender_id": sender_id},
                )

            message = self.store.messages.insert(
                Message(
                    chat_id=chat_id,
                    sender_id=sender_id,
                    text=text,
                    image_url=image_url,
                    read_by=[sender_id],
                )
            )
            self.store.chats.update_fields(
                chat_id,
                last_message=message.preview,
                last_message_at=message.created_at,
            )
            recipients = self.store.memberships.filter_by("chat_id", chat_id)

        self.get_logger().debug(
            f"User {sender_id} sent message {message.id} to chat {chat_id}"
        )
        self._notify(
            {m.user_id for m in recipients} - {sender_id},
            {
                "type": EVENT_TYPES.NEW_MESSAGE,
                "chat_id": chat_id,
                "message_id": message.id,
                "sender_id": sender_id,
            },
        )
        return message

    def mark_message_read(self, message_id: int, user_id: int) -> Message:
        """
        Record that user_id has read a message. Repeat calls change nothing.

        Raises:
            NotFoundError: Message does not exist
            PermissionDeniedError: User is not a member of the message's chat
        """
        with self.atomic():
            message = self.store.messages.get(message_id)
            if message is None:
                raise NotFoundError(
                    f"Message {message_id} not found",
                    error_code="MESSAGE_NOT_FOUND",
                    details={"message_id": message_id},
                )
            if user_id in message.read_by:
                return message
            if self._get_membership(message.chat_id, user_id) is None:
                raise PermissionDeniedError(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                    details={"chat_id": message.chat_id},
                )
            return self.store.messages.update_fields(
                message_id, read_by=[*message.read_by, user_id]
            )

    def mark_chat_read(self, chat_id: int, user_id: int) -> int:
        """
        Mark every message in a chat as read by user_id.

        Returns:
            Number of messages that were newly marked
        """
        with self.atomic():
            self._require_chat(chat_id)
            if self._get_membership(chat_id, user_id) is None:
                raise PermissionDeniedError(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                    details={"chat_id": chat_id},
                )
            marked = 0
            for message in self.store.messages.filter_by("chat_id", chat_id):
                if user_id not in message.read_by:
                    self.store.messages.update_fields(
                        message.id, read_by=[*message.read_by, user_id]
                    )
                    marked += 1

        if marked:
            self.get_logger().debug(
                f"User {user_id} read {marked} messages in chat {chat_id}"
            )
        return marked


# =============================================================================
# Statuses
# =============================================================================


class StatusService(ChatStoreService):
    """
    Service for ephemeral statuses.

    Expiry is always computed here from the creation timestamp; a
    client-supplied expiry is discarded.
    """

    @staticmethod
    def ttl() -> timedelta:
        return timedelta(
            hours=getattr(settings, "CHAT_STATUS_TTL_HOURS", STATUS_CONFIG.TTL_HOURS)
        )

    def create_status(
        self,
        author_id: int,
        text: str | None = None,
        image_url: str | None = None,
        expires_at: datetime | None = None,
    ) -> Status:
        """
        Post a status that expires TTL after creation.

        Contacts (users sharing a chat with the author) are notified with a
        status_update event.

        Raises:
            ValidationError: EMPTY_CONTENT or CONTENT_TOO_LONG
            NotFoundError: Author does not exist
        """
        text = _clean_text(text)
        image_url = _clean_text(image_url)

        if text is None and image_url is None:
            raise ValidationError(
                "Status must contain text or an image",
                error_code="EMPTY_CONTENT",
            )
        if text is not None and len(text) > STATUS_CONFIG.MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Status cannot exceed {STATUS_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )
        if expires_at is not None:
            self.get_logger().warning(
                f"Ignoring client-supplied expiry for status by user {author_id}"
            )

        with self.atomic():
            self._require_user(author_id)
            status = self.store.statuses.insert(
                Status(author_id=author_id, text=text, image_url=image_url)
            )
            status = self.store.statuses.update_fields(
                status.id, expires_at=status.created_at + self.ttl()
            )
            contact_ids = self.queries.get_contact_ids(author_id)

        self.get_logger().info(f"User {author_id} posted status {status.id}")
        self._notify(
            contact_ids,
            {
                "type": EVENT_TYPES.STATUS_UPDATE,
                "status_id": status.id,
                "author_id": author_id,
            },
        )
        return status

    def view_status(self, status_id: int, viewer_id: int) -> Status:
        """
        Record a view. Only the first view by a viewer counts.

        Authors viewing their own status are counted like anyone else.

        Raises:
            NotFoundError: Status or viewer does not exist
        """
        with self.atomic():
            status = self.store.statuses.get(status_id)
            if status is None:
                raise NotFoundError(
                    f"Status {status_id} not found",
                    error_code="STATUS_NOT_FOUND",
                    details={"status_id": status_id},
                )
            if viewer_id in status.viewed_by:
                return status

            self._require_user(viewer_id)
            status = self.store.statuses.update_fields(
                status_id, viewed_by=[*status.viewed_by, viewer_id]
            )
            self.store.status_views.insert(
                StatusView(status_id=status_id, viewer_id=viewer_id)
            )

        self.get_logger().debug(f"User {viewer_id} viewed status {status_id}")
        return status


# =============================================================================
# Presence
# =============================================================================


class PresenceService(ChatStoreService):
    """
    Presence tracking.

    A user is online while the fan-out holds an open connection for them.
    last_seen_at is stamped on connect, heartbeat, and disconnect.
    """

    def mark_online(self, user_id: int) -> User | None:
        return self._touch(user_id)

    def mark_offline(self, user_id: int) -> User | None:
        return self._touch(user_id)

    def heartbeat(self, user_id: int) -> User | None:
        return self._touch(user_id)

    def get_presence(self, user_id: int) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: User does not exist
        """
        with self.atomic():
            user = self._require_user(user_id)
        return {
            "user_id": user.id,
            "online": self.fanout.is_connected(user.id),
            "last_seen_at": user.last_seen_at,
        }

    def _touch(self, user_id: int) -> User | None:
        with self.atomic():
            return self.store.users.update_fields(
                user_id, last_seen_at=self.store.now()
            )
