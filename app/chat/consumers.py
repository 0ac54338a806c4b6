"""
WebSocket consumers for the chat application.

This module implements the per-user WebSocket consumer. Each authenticated
socket registers its channel name with the NotificationFanout as its user's
live connection and receives pushed events, through the channel layer, for
every chat the user belongs to.

Consumers:
    ChatConsumer: One live connection per authenticated user

Authentication:
    Users are authenticated via identity token passed as query parameter or
    subprotocol. JWTAuthMiddleware attaches the user to self.scope["user"].

Message Types (from client):
    - read: Mark a message as read ({"type": "read", "message_id": 12})
    - heartbeat: Refresh presence ({"type": "heartbeat"})

Message Types (to client):
    - new_message: {"type", "chat_id", "message_id", "sender_id"}
    - status_update: {"type", "status_id", "author_id"}
    - new_conversation: {"type", "chat_id"}
    - error: Error response to an inbound frame on this socket only

Close Codes:
    4001: Unauthenticated
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from core.exceptions import BaseApplicationError

from chat.dependencies import get_fanout, get_services
from chat.fanout import ChannelConnection

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat events.

    Handles:
        - Connection authentication
        - Fan-out registration of this consumer's channel (last one per
          user wins)
        - Presence stamping on connect, heartbeat, and disconnect
        - Read receipts sent over the socket

    Pushed events arrive through the channel layer as "chat.event"
    messages (see chat.fanout.ChannelConnection) and are handled by
    chat_event(). Store access runs in a worker thread via
    database_sync_to_async so the event loop never waits on the store lock.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.connection: ChannelConnection | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        """Accept authenticated sockets and register them with the fan-out."""
        user = self.scope.get("user")

        if not user or isinstance(user, AnonymousUser):
            logger.warning("Rejected unauthenticated WebSocket connection")
            await self.close(code=4001)
            return

        self.user = user

        # Echo the token subprotocol so browsers keep the socket open
        subprotocol = "jwt" if "jwt" in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)

        self.connection = ChannelConnection(self.channel_name, self.channel_layer)
        get_fanout().register(user.id, self.connection)
        await self._mark_online(user.id)
        logger.info(f"User {user.id} connected")

    async def disconnect(self, close_code):
        """Unregister this socket; a newer socket for the same user stays."""
        if self.connection is None:
            return

        self.connection.close()
        get_fanout().unregister(self.user.id, self.connection)
        await self._mark_offline(self.user.id)
        logger.info(f"User {self.user.id} disconnected ({close_code})")

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming WebSocket frames.

        Expected frame format:
            {"type": "read", "message_id": 12}
            {"type": "heartbeat"}
        """
        frame_type = content.get("type") if isinstance(content, dict) else None

        try:
            if frame_type == "read":
                await self._handle_read(content)
            elif frame_type == "heartbeat":
                await self._heartbeat(self.user.id)
            else:
                await self._send_error(
                    f"Unknown message type: {frame_type}", "UNKNOWN_TYPE"
                )
        except BaseApplicationError as e:
            await self._send_error(e.message, e.error_code)

    async def _handle_read(self, content):
        message_id = content.get("message_id")
        if not isinstance(message_id, int):
            await self._send_error("message_id must be an integer", "INVALID_FRAME")
            return

        await self._mark_message_read(message_id, self.user.id)

    async def _send_error(self, message: str, error_code: str):
        await self.send_json(
            {
                "type": "error",
                "error_code": error_code,
                "message": message,
            }
        )

    # -------------------------------------------------------------------------
    # Channel layer handlers
    # -------------------------------------------------------------------------

    async def chat_event(self, event):
        """Forward a fan-out event (already JSON) to the socket."""
        await self.send(text_data=event["text"])

    # -------------------------------------------------------------------------
    # Store access
    # -------------------------------------------------------------------------

    @database_sync_to_async
    def _mark_online(self, user_id: int):
        return get_services().presence.mark_online(user_id)

    @database_sync_to_async
    def _mark_offline(self, user_id: int):
        return get_services().presence.mark_offline(user_id)

    @database_sync_to_async
    def _heartbeat(self, user_id: int):
        return get_services().presence.heartbeat(user_id)

    @database_sync_to_async
    def _mark_message_read(self, message_id: int, user_id: int):
        return get_services().messages.mark_message_read(message_id, user_id)
