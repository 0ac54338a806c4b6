"""
Chat application configuration.

This app provides the chat system with:
- The in-memory entity store shared by every request and socket
- The notification fan-out registry of live WebSocket connections
- Direct and group chats, messages, statuses, and presence
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """
    Configuration for the chat application.

    Owns the process-wide runtime objects. They are built in ready() and
    reached through chat.dependencies, never imported as module globals.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat.fanout import NotificationFanout
        from chat.store import EntityStore

        self.store = EntityStore()
        self.fanout = NotificationFanout()

    def reset(self):
        """Empty the store and drop registered connections."""
        self.store.reset()
        self.fanout.clear()
