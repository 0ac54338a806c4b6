"""
Access to the chat runtime owned by ChatConfig.

Views and consumers build services through these helpers so that tests can
reset or replace the store without touching import-time state.

Usage:
    from chat.dependencies import get_services

    services = get_services()
    services.messages.send_message(chat_id, user.id, text="hi")
"""

from __future__ import annotations

from dataclasses import dataclass

from django.apps import apps

from authentication.services import UserService
from chat.fanout import NotificationFanout
from chat.queries import ChatQueries
from chat.services import (
    ChatService,
    InviteService,
    MembershipService,
    MessageService,
    PresenceService,
    StatusService,
)
from chat.store import EntityStore


def get_store() -> EntityStore:
    return apps.get_app_config("chat").store


def get_fanout() -> NotificationFanout:
    return apps.get_app_config("chat").fanout


@dataclass
class Services:
    """Service instances bound to one store and fan-out."""

    users: UserService
    chats: ChatService
    members: MembershipService
    invites: InviteService
    messages: MessageService
    statuses: StatusService
    presence: PresenceService
    queries: ChatQueries


def build_services(store: EntityStore, fanout: NotificationFanout) -> Services:
    return Services(
        users=UserService(store),
        chats=ChatService(store, fanout),
        members=MembershipService(store, fanout),
        invites=InviteService(store, fanout),
        messages=MessageService(store, fanout),
        statuses=StatusService(store, fanout),
        presence=PresenceService(store, fanout),
        queries=ChatQueries(store),
    )


def get_services() -> Services:
    """Services bound to the running app's store and fan-out."""
    return build_services(get_store(), get_fanout())
