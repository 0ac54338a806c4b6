"""
Notification fan-out to live connections.

NotificationFanout keeps a process-local map from user id to that user's
current live connection and pushes JSON events to sets of users.

Connection protocol:
    Anything registered must expose:
        is_open: bool
        deliver(text: str) -> None   (hands the text to the transport)

    ChannelConnection implements it on top of the Channels layer: deliver()
    sends a "chat.event" message to one consumer's channel_name, and the
    consumer writes it to its socket from its own event loop.

Semantics:
    - At most one connection per user; a later register() replaces it
    - Delivery is best-effort and fire-and-forget: absent, closed or failing
      connections are skipped and the failure is logged, never raised
    - Mutations commit before notify() is called, so a delivery failure can
      never roll back a write

Usage:
    fanout = NotificationFanout()
    fanout.register(user.id, ChannelConnection(consumer.channel_name))
    fanout.notify({1, 2, 3}, {"type": "new_message", "chat_id": 7, ...})
"""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Protocol

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Live bidirectional channel to one client."""

    @property
    def is_open(self) -> bool: ...

    def deliver(self, text: str) -> None: ...


class ChannelConnection:
    """
    Connection that forwards events to a consumer through the channel layer.

    deliver() must be called from sync code (a view, or a service run via
    sync_to_async); async_to_sync hands the send to the running event loop.
    """

    EVENT_TYPE = "chat.event"

    def __init__(self, channel_name: str, channel_layer=None):
        self.channel_name = channel_name
        if channel_layer is None:
            channel_layer = get_channel_layer()
        self.channel_layer = channel_layer
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    def deliver(self, text: str) -> None:
        async_to_sync(self.channel_layer.send)(
            self.channel_name, {"type": self.EVENT_TYPE, "text": text}
        )


class NotificationFanout:
    """
    Registry of live connections keyed by user id.

    Thread-safe: HTTP views notify from worker threads while consumers
    register and unregister on the event loop.
    """

    def __init__(self):
        self._connections: dict[int, Connection] = {}
        self._lock = threading.Lock()

    def register(self, user_id: int, connection: Connection) -> None:
        """Record connection as the user's current connection."""
        with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info(f"Replaced live connection for user {user_id}")
        else:
            logger.debug(f"Registered live connection for user {user_id}")

    def unregister(self, user_id: int, connection: Connection | None = None) -> None:
        """
        Remove the user's connection.

        When connection is given, the entry is only removed if it is still
        the registered one, so a stale socket closing late cannot evict the
        user's newer connection.
        """
        with self._lock:
            current = self._connections.get(user_id)
            if current is None:
                return
            if connection is not None and current is not connection:
                return
            del self._connections[user_id]
        logger.debug(f"Unregistered live connection for user {user_id}")

    def is_connected(self, user_id: int) -> bool:
        with self._lock:
            connection = self._connections.get(user_id)
        return connection is not None and connection.is_open

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()

    def notify(self, user_ids: Iterable[int], payload: dict[str, Any]) -> int:
        """
        Push payload to every listed user with an open connection.

        Args:
            user_ids: Recipients; duplicates are collapsed
            payload: JSON-serializable event

        Returns:
            Number of connections the event was handed to
        """
        text = json.dumps(payload, cls=DjangoJSONEncoder)
        recipients = set(user_ids)

        with self._lock:
            targets = [
                (user_id, self._connections[user_id])
                for user_id in recipients
                if user_id in self._connections
            ]

        delivered = 0
        for user_id, connection in targets:
            if not connection.is_open:
                continue
            try:
                connection.deliver(text)
            except Exception as e:
                logger.warning(
                    f"Dropped {payload.get('type')} event for user {user_id}: {e}"
                )
                continue
            delivered += 1

        logger.debug(
            f"Fan-out {payload.get('type')}: {delivered}/{len(recipients)} delivered"
        )
        return delivered
