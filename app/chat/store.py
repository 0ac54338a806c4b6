"""
In-memory entity store.

This module owns every entity instance in the process. It provides:
- Repository: one generic keyed collection per entity type with a
  monotonic id counter, unique keys, and foreign-key indices
- EntityStore: the set of repositories plus the lock that mutation
  services hold for check-then-act sequences

Contract:
    - Lookups are total: a missing id returns None, never raises
    - insert() allocates the next id, stamps the creation timestamp, and
      raises ConflictError when a unique key is already taken
    - Callers always receive copies; the only way to change a stored entity
      is update_fields()
    - Indices are maintained incrementally on insert/update/delete, so
      lookups cost O(result) rather than O(rows)

Usage:
    store = EntityStore()
    user = store.users.insert(User(uid="u1", email="a@example.com"))
    store.users.get_by("uid", "u1")
    store.memberships.filter_by("chat_id", chat.id)
    store.memberships.get_by(("chat_id", "user_id"), (chat.id, user.id))

Note:
    The store is volatile. A fresh EntityStore is empty; ids restart at 1.
"""

from __future__ import annotations

import copy
import dataclasses
import itertools
import logging
import threading
from typing import TYPE_CHECKING, Generic, TypeVar

from django.utils import timezone

from authentication.models import User
from chat.models import Chat, Membership, Message, Status, StatusView
from core.exceptions import ConflictError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from typing import Any

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _normalize_key(fields) -> tuple[str, ...]:
    """Turn "uid" or ("chat_id", "user_id") into a tuple of field names."""
    if isinstance(fields, str):
        return (fields,)
    return tuple(fields)


class Repository(Generic[T]):
    """
    Keyed collection of one entity type.

    Attributes:
        name: Collection name (used in logs, errors, and stats)
        entity_class: Dataclass stored in this repository

    Args:
        unique: Field names or tuples of field names whose values must be
            unique across rows. Rows where any of the fields is None are
            not indexed (so optional unique fields may repeat as None).
        indexed: Field names with a non-unique index (foreign keys).
        timestamp_field: Field stamped with the store clock on insert.
    """

    def __init__(
        self,
        name: str,
        entity_class: type[T],
        *,
        clock: Callable[[], datetime],
        unique: Iterable = (),
        indexed: Iterable[str] = (),
        timestamp_field: str = "created_at",
    ):
        self.name = name
        self.entity_class = entity_class
        self._clock = clock
        self._timestamp_field = timestamp_field
        self._field_names = {f.name for f in dataclasses.fields(entity_class)}

        self._rows: dict[int, T] = {}
        self._ids = itertools.count(1)
        self._unique: dict[tuple[str, ...], dict[tuple, int]] = {
            _normalize_key(key): {} for key in unique
        }
        self._indexes: dict[str, dict[Any, set[int]]] = {
            field_name: {} for field_name in indexed
        }

        for key in [*self._unique, *((f,) for f in self._indexes)]:
            missing = set(key) - self._field_names
            if missing:
                raise ValueError(
                    f"{name}: unknown fields {sorted(missing)} in index definition"
                )

    def __len__(self) -> int:
        return len(self._rows)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, entity_id: int | None) -> T | None:
        """Return a copy of the row with this id, or None."""
        row = self._rows.get(entity_id)
        if row is None:
            return None
        return copy.deepcopy(row)

    def exists(self, entity_id: int | None) -> bool:
        return entity_id in self._rows

    def get_by(self, fields, value) -> T | None:
        """
        Look up a row through a unique key.

        Args:
            fields: Field name or tuple of field names declared as unique
            value: Field value, or tuple of values for a composite key

        Raises:
            LookupError: If no unique key is declared on these fields
        """
        key = _normalize_key(fields)
        index = self._unique.get(key)
        if index is None:
            raise LookupError(f"{self.name}: no unique key on {key}")
        values = tuple(value) if len(key) > 1 else (value,)
        return self.get(index.get(values))

    def filter_by(self, field_name: str, value) -> list[T]:
        """Return copies of all rows whose indexed field equals value, by id."""
        ids = self._index_for(field_name).get(value, ())
        return [copy.deepcopy(self._rows[entity_id]) for entity_id in sorted(ids)]

    def ids_by(self, field_name: str, value) -> set[int]:
        """Return the ids of rows whose indexed field equals value."""
        return set(self._index_for(field_name).get(value, ()))

    def count_by(self, field_name: str, value) -> int:
        return len(self._index_for(field_name).get(value, ()))

    def all(self) -> list[T]:
        """Return copies of all rows in id order."""
        return [copy.deepcopy(row) for row in self._rows.values()]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, draft: T) -> T:
        """
        Store a new row.

        The draft is copied; its id and timestamp fields are overwritten.

        Returns:
            Copy of the stored row, including generated fields

        Raises:
            TypeError: If draft is not an instance of entity_class
            ConflictError: If a unique key is already taken
        """
        if not isinstance(draft, self.entity_class):
            raise TypeError(
                f"{self.name} stores {self.entity_class.__name__}, "
                f"got {type(draft).__name__}"
            )

        row = copy.deepcopy(draft)
        self._check_unique(row, exclude_id=None)

        row.id = next(self._ids)
        setattr(row, self._timestamp_field, self._clock())

        self._rows[row.id] = row
        self._add_to_indexes(row)
        return copy.deepcopy(row)

    def update_fields(self, entity_id: int, **fields) -> T | None:
        """
        Merge fields into a stored row.

        Returns:
            Copy of the updated row, or None if the id is absent

        Raises:
            ValueError: For unknown fields or attempts to change the id
            ConflictError: If the change collides with a unique key
        """
        current = self._rows.get(entity_id)
        if current is None:
            return None

        unknown = set(fields) - self._field_names
        if unknown:
            raise ValueError(f"{self.name}: unknown fields {sorted(unknown)}")
        if "id" in fields:
            raise ValueError(f"{self.name}: id cannot be changed")

        candidate = dataclasses.replace(current, **copy.deepcopy(fields))
        self._check_unique(candidate, exclude_id=entity_id)

        self._remove_from_indexes(current)
        self._rows[entity_id] = candidate
        self._add_to_indexes(candidate)
        return copy.deepcopy(candidate)

    def delete(self, entity_id: int) -> None:
        """Remove a row. No-op if the id is absent."""
        row = self._rows.pop(entity_id, None)
        if row is not None:
            self._remove_from_indexes(row)

    # -------------------------------------------------------------------------
    # Index maintenance
    # -------------------------------------------------------------------------

    def _index_for(self, field_name: str) -> dict[Any, set[int]]:
        index = self._indexes.get(field_name)
        if index is None:
            raise LookupError(f"{self.name}: no index on {field_name!r}")
        return index

    @staticmethod
    def _unique_value(row, key: tuple[str, ...]) -> tuple | None:
        values = tuple(getattr(row, field_name) for field_name in key)
        if any(value is None for value in values):
            return None
        return values

    def _check_unique(self, row, exclude_id: int | None) -> None:
        for key, index in self._unique.items():
            value = self._unique_value(row, key)
            if value is None:
                continue
            owner = index.get(value)
            if owner is not None and owner != exclude_id:
                raise ConflictError(
                    f"{self.name} with this {'/'.join(key)} already exists",
                    error_code="DUPLICATE_KEY",
                    details={"collection": self.name, "fields": list(key)},
                )

    def _add_to_indexes(self, row) -> None:
        for key, index in self._unique.items():
            value = self._unique_value(row, key)
            if value is not None:
                index[value] = row.id
        for field_name, index in self._indexes.items():
            index.setdefault(getattr(row, field_name), set()).add(row.id)

    def _remove_from_indexes(self, row) -> None:
        for key, index in self._unique.items():
            value = self._unique_value(row, key)
            if value is not None and index.get(value) == row.id:
                del index[value]
        for field_name, index in self._indexes.items():
            value = getattr(row, field_name)
            ids = index.get(value)
            if ids is not None:
                ids.discard(row.id)
                if not ids:
                    del index[value]


class EntityStore:
    """
    Process-local store for every entity type.

    Repositories:
        users: unique uid, email, username
        chats: unique invite_code
        memberships: unique (chat_id, user_id); indexed chat_id, user_id
        messages: indexed chat_id, sender_id
        statuses: indexed author_id
        status_views: unique (status_id, viewer_id); indexed status_id

    Attributes:
        lock: Re-entrant lock held by services around check-then-act sequences

    The store is created by ChatConfig at startup and passed to services
    explicitly. Tests build their own instance.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self.lock = threading.RLock()
        self._clock = clock or timezone.now
        self._build()

    def _build(self) -> None:
        clock = self._clock
        self.users: Repository[User] = Repository(
            "users",
            User,
            clock=clock,
            unique=["uid", "email", "username"],
        )
        self.chats: Repository[Chat] = Repository(
            "chats",
            Chat,
            clock=clock,
            unique=["invite_code"],
        )
        self.memberships: Repository[Membership] = Repository(
            "memberships",
            Membership,
            clock=clock,
            unique=[("chat_id", "user_id")],
            indexed=["chat_id", "user_id"],
            timestamp_field="joined_at",
        )
        self.messages: Repository[Message] = Repository(
            "messages",
            Message,
            clock=clock,
            indexed=["chat_id", "sender_id"],
        )
        self.statuses: Repository[Status] = Repository(
            "statuses",
            Status,
            clock=clock,
            indexed=["author_id"],
        )
        self.status_views: Repository[StatusView] = Repository(
            "status_views",
            StatusView,
            clock=clock,
            unique=[("status_id", "viewer_id")],
            indexed=["status_id", "viewer_id"],
            timestamp_field="viewed_at",
        )

    @property
    def repositories(self) -> list[Repository]:
        return [
            self.users,
            self.chats,
            self.memberships,
            self.messages,
            self.statuses,
            self.status_views,
        ]

    def now(self) -> datetime:
        """Current time from the store clock."""
        return self._clock()

    def stats(self) -> dict[str, int]:
        """Row counts per repository."""
        with self.lock:
            return {repo.name: len(repo) for repo in self.repositories}

    def reset(self) -> None:
        """Drop every row and restart id counters."""
        with self.lock:
            self._build()
        logger.info("Entity store reset")
