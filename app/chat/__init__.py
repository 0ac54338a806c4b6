"""
Chat app for real-time messaging.

This app handles:
- Direct and group chats with capped membership
- Message sending, history, and read receipts
- Ephemeral statuses that expire after 24 hours
- WebSocket push of new_message, status_update, and new_conversation events

Related apps:
    - authentication: User entity and identity token sync
    - media: Image validation and upload for attachments

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the WebSocket handler.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.dependencies import get_store, get_fanout
    from chat.services import MessageService

    messages = MessageService(get_store(), get_fanout())
    message = messages.send_message(chat_id, sender_id, text="Hello!")
"""
