"""
Read-side projections over the entity store.

ChatQueries joins store lookups into the views the API and WebSocket layers
return. It never writes.

Projections:
    ChatSummary: Chat with members, the other member of a direct chat, and
        the caller's unread count
    MemberView: Membership joined with its User
    MessageView: Message with its sender attached
    StatusFeedItem: Status with author, view count, and viewer-relative flags

Missing related records are omissions, not errors: a membership whose user
is gone is skipped, a message whose sender is gone carries sender=None.

Usage:
    queries = ChatQueries(store)
    chats = queries.get_chats_for_user(user.id)
    thread = queries.get_messages_for_chat(chat.id)
    feed = queries.get_active_statuses_feed(user.id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from authentication.models import User
    from chat.models import Chat, Message, Status
    from chat.store import EntityStore

logger = logging.getLogger(__name__)


# =============================================================================
# Projections
# =============================================================================


@dataclass
class MemberView:
    user: User
    is_admin: bool
    joined_at: datetime | None


@dataclass
class ChatSummary:
    chat: Chat
    members: list[MemberView]
    other_member: User | None
    unread_count: int


@dataclass
class MessageView:
    message: Message
    sender: User | None


@dataclass
class StatusFeedItem:
    """
    Status annotated for one viewer.

    Fields:
        view_count: Number of distinct viewers (author included)
        viewed: Whether the viewer has already seen this status
        is_own: Whether the viewer is the author
    """

    status: Status
    author: User | None
    view_count: int
    viewed: bool
    is_own: bool


# =============================================================================
# Queries
# =============================================================================


class ChatQueries:
    """
    Derived views over an EntityStore.

    Each method reads under the store lock so that a projection reflects a
    single point in time even while HTTP worker threads are writing.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    # -------------------------------------------------------------------------
    # Chats
    # -------------------------------------------------------------------------

    def get_chats_for_user(self, user_id: int) -> list[ChatSummary]:
        """
        List the user's chats, most recently active first.

        Chats that have never had a message sort last. Ties (equal
        last_message_at, or no messages) put the newer chat first.
        """
        with self.store.lock:
            summaries = []
            for membership in self.store.memberships.filter_by("user_id", user_id):
                chat = self.store.chats.get(membership.chat_id)
                if chat is None:
                    continue
                summaries.append(self._summarize(chat, user_id))

        summaries.sort(key=lambda s: s.chat.id, reverse=True)
        active = [s for s in summaries if s.chat.last_message_at is not None]
        silent = [s for s in summaries if s.chat.last_message_at is None]
        active.sort(key=lambda s: s.chat.last_message_at, reverse=True)
        return active + silent

    def get_chat(self, chat_id: int, user_id: int) -> ChatSummary | None:
        """Single chat projected for user_id, or None if the chat is missing."""
        with self.store.lock:
            chat = self.store.chats.get(chat_id)
            if chat is None:
                return None
            return self._summarize(chat, user_id)

    def get_chat_members(self, chat_id: int) -> list[MemberView]:
        """Members joined with their users, in join order."""
        with self.store.lock:
            members = []
            for membership in self.store.memberships.filter_by("chat_id", chat_id):
                user = self.store.users.get(membership.user_id)
                if user is None:
                    logger.debug(
                        f"Skipping membership {membership.id}: "
                        f"user {membership.user_id} missing"
                    )
                    continue
                members.append(
                    MemberView(
                        user=user,
                        is_admin=membership.is_admin,
                        joined_at=membership.joined_at,
                    )
                )
            return members

    def is_member(self, chat_id: int, user_id: int) -> bool:
        membership = self.store.memberships.get_by(
            ("chat_id", "user_id"), (chat_id, user_id)
        )
        return membership is not None

    def get_unread_count(self, chat_id: int, user_id: int) -> int:
        """Messages in the chat that user_id has not read."""
        with self.store.lock:
            return sum(
                1
                for message in self.store.messages.filter_by("chat_id", chat_id)
                if user_id not in message.read_by
            )

    def _summarize(self, chat: Chat, user_id: int) -> ChatSummary:
        members = self.get_chat_members(chat.id)
        other_member = None
        if chat.is_direct:
            other_member = next(
                (m.user for m in members if m.user.id != user_id),
                None,
            )
        return ChatSummary(
            chat=chat,
            members=members,
            other_member=other_member,
            unread_count=self.get_unread_count(chat.id, user_id),
        )

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def get_messages_for_chat(self, chat_id: int) -> list[MessageView]:
        """Messages with senders attached, oldest first (ties by id)."""
        with self.store.lock:
            messages = self.store.messages.filter_by("chat_id", chat_id)
            senders: dict[int, User | None] = {}
            for message in messages:
                if message.sender_id not in senders:
                    senders[message.sender_id] = self.store.users.get(
                        message.sender_id
                    )

        messages.sort(key=lambda m: (m.created_at, m.id))
        return [
            MessageView(message=message, sender=senders[message.sender_id])
            for message in messages
        ]

    def get_message(self, message_id: int) -> MessageView | None:
        with self.store.lock:
            message = self.store.messages.get(message_id)
            if message is None:
                return None
            return MessageView(
                message=message, sender=self.store.users.get(message.sender_id)
            )

    # -------------------------------------------------------------------------
    # Statuses
    # -------------------------------------------------------------------------

    def get_active_statuses_feed(self, viewer_id: int) -> list[StatusFeedItem]:
        """
        Status summary feed for a viewer.

        One entry per author (their most recent active status). The viewer's
        own entry comes first, then statuses the viewer has not seen, then
        seen ones; each group newest first.
        """
        with self.store.lock:
            now = self.store.now()
            latest: dict[int, Status] = {}
            for status in self.store.statuses.all():
                if not status.is_active(now):
                    continue
                current = latest.get(status.author_id)
                if current is None or _recency(status) > _recency(current):
                    latest[status.author_id] = status
            items = [self._feed_item(s, viewer_id) for s in latest.values()]

        items.sort(key=lambda item: _recency(item.status), reverse=True)
        items.sort(key=lambda item: (not item.is_own, item.viewed))
        return items

    def list_active_statuses(self, viewer_id: int | None = None) -> list[StatusFeedItem]:
        """Every active status, newest first."""
        with self.store.lock:
            now = self.store.now()
            items = [
                self._feed_item(status, viewer_id)
                for status in self.store.statuses.all()
                if status.is_active(now)
            ]
        items.sort(key=lambda item: _recency(item.status), reverse=True)
        return items

    def get_user_statuses(
        self, author_id: int, viewer_id: int | None = None
    ) -> list[StatusFeedItem]:
        """An author's active statuses in posting order."""
        with self.store.lock:
            now = self.store.now()
            return [
                self._feed_item(status, viewer_id)
                for status in sorted(
                    self.store.statuses.filter_by("author_id", author_id),
                    key=_recency,
                )
                if status.is_active(now)
            ]

    def get_status(
        self, status_id: int, viewer_id: int | None = None
    ) -> StatusFeedItem | None:
        """One status annotated for viewer_id, or None if absent."""
        with self.store.lock:
            status = self.store.statuses.get(status_id)
            if status is None:
                return None
            return self._feed_item(status, viewer_id)

    def _feed_item(self, status: Status, viewer_id: int | None) -> StatusFeedItem:
        return StatusFeedItem(
            status=status,
            author=self.store.users.get(status.author_id),
            view_count=status.view_count,
            viewed=viewer_id in status.viewed_by,
            is_own=status.author_id == viewer_id,
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def list_users(self, exclude_id: int | None = None) -> list[User]:
        with self.store.lock:
            return [u for u in self.store.users.all() if u.id != exclude_id]

    def get_contact_ids(self, user_id: int) -> set[int]:
        """Ids of users who share at least one chat with user_id."""
        with self.store.lock:
            contact_ids: set[int] = set()
            for chat_id in {
                m.chat_id for m in self.store.memberships.filter_by("user_id", user_id)
            }:
                contact_ids |= {
                    m.user_id for m in self.store.memberships.filter_by("chat_id", chat_id)
                }
        contact_ids.discard(user_id)
        return contact_ids

    def get_contacts(self, user_id: int) -> list[User]:
        with self.store.lock:
            users = [self.store.users.get(uid) for uid in self.get_contact_ids(user_id)]
        return sorted((u for u in users if u is not None), key=lambda u: u.id)


def _recency(status: Status) -> tuple:
    return (status.created_at, status.id)
