"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and storage.
    Views handle HTTP concerns, the store handles data, services handle logic.

Error Handling:
    Services fail fast by raising a core.exceptions error before touching
    any state. Views never catch them individually; the DRF exception handler
    in core.handlers maps them onto responses.

Usage:
    from core.services import BaseService

    class ChatService(BaseService):
        def create_chat(self, chat_type, name, creator_id):
            if chat_type == ChatType.GROUP and not name:
                raise ValidationError("Group chats require a name")

            with self.atomic():
                chat = self.store.chats.insert(Chat(...))
                self.store.memberships.insert(Membership(...))

            self.get_logger().info(f"Created chat {chat.id}")
            return chat

Related:
    - core.exceptions: Error hierarchy raised by services
    - chat.store: The in-memory store services write through
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

    from chat.store import EntityStore


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Store transaction management (check-then-act under the store lock)
    - Required field validation

    Usage:
        class MessageService(BaseService):
            def send_message(self, chat_id, sender_id, text):
                with self.atomic():
                    # No other writer can interleave with this block
                    membership = self.store.memberships.get_by(...)
                    message = self.store.messages.insert(...)

                self.get_logger().info(f"Stored message {message.id}")
                return message

    Design Notes:
        - Services receive the store they operate on (no global state)
        - Never await or perform I/O inside atomic()
        - Raise core.exceptions errors for expected failures
    """

    def __init__(self, store: EntityStore):
        self.store = store

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @contextmanager
    def atomic(self) -> Generator[None, None, None]:
        """
        Execute a check-then-act sequence atomically.

        Holds the store's re-entrant lock for the duration of the block, so
        a lookup followed by an insert cannot interleave with another
        request's writes (sync views run in a worker thread next to the
        Channels event loop).

        Example:
            with self.atomic():
                if self.store.memberships.get_by(key, value) is None:
                    self.store.memberships.insert(draft)

        Note:
            Nothing inside the block may suspend or perform network I/O.
        """
        with self.store.lock:
            yield

    @classmethod
    def validate_required(cls, **kwargs) -> dict[str, list[str]]:
        """
        Collect field errors for required values that are None or blank.

        Args:
            **kwargs: Field names and their values

        Returns:
            Mapping of field name to error list (empty if all present)

        Example:
            errors = cls.validate_required(name=name)
            if errors:
                raise ValidationError("Required fields missing", details=errors)
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]
        return errors
