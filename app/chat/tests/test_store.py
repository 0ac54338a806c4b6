"""
Tests for the in-memory entity store.

Covers Repository and EntityStore:
- Id allocation and creation timestamps
- Unique keys (single and composite) and conflict errors
- Foreign-key indices kept in step with updates and deletes
- Copy semantics: callers can never mutate stored rows in place
"""

from datetime import datetime, timezone as dt_timezone

import pytest

from authentication.models import User
from chat.models import Chat, ChatType, Membership, Message
from chat.store import EntityStore, Repository
from core.exceptions import ConflictError

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def fresh_store():
    """Standalone store with a fixed clock."""
    return EntityStore(clock=lambda: FIXED_NOW)


# =============================================================================
# Insert & Get
# =============================================================================


class TestRepositoryInsert:
    """Tests for Repository.insert()."""

    def test_assigns_increasing_ids_starting_at_one(self, fresh_store):
        """
        Ids are allocated by the store in insertion order.

        Why it matters: Message ordering ties are broken by id, so ids
        must grow monotonically.
        """
        first = fresh_store.users.insert(User(uid="a"))
        second = fresh_store.users.insert(User(uid="b"))

        assert first.id == 1
        assert second.id == 2

    def test_caller_supplied_id_and_timestamp_are_overwritten(self, fresh_store):
        """
        Why it matters: Clients must not be able to forge ids or backdate rows.
        """
        user = fresh_store.users.insert(
            User(uid="a", id=99, created_at=datetime(2000, 1, 1, tzinfo=dt_timezone.utc))
        )

        assert user.id == 1
        assert user.created_at == FIXED_NOW

    def test_membership_uses_joined_at_timestamp(self, fresh_store):
        membership = fresh_store.memberships.insert(Membership(chat_id=1, user_id=1))

        assert membership.joined_at == FIXED_NOW

    def test_rejects_wrong_entity_type(self, fresh_store):
        with pytest.raises(TypeError):
            fresh_store.users.insert(Chat(chat_type=ChatType.GROUP))

    def test_duplicate_unique_key_raises_conflict(self, fresh_store):
        """
        Why it matters: uid identifies the external identity; two rows for
        one identity would split a user's chats.
        """
        fresh_store.users.insert(User(uid="same"))

        with pytest.raises(ConflictError) as exc_info:
            fresh_store.users.insert(User(uid="same"))

        assert exc_info.value.error_code == "DUPLICATE_KEY"
        assert exc_info.value.details == {"collection": "users", "fields": ["uid"]}
        assert len(fresh_store.users) == 1

    def test_none_values_do_not_collide_on_unique_keys(self, fresh_store):
        """
        Why it matters: email and username are optional; many users may
        lack them.
        """
        fresh_store.users.insert(User(uid="a", email=None))
        fresh_store.users.insert(User(uid="b", email=None))

        assert len(fresh_store.users) == 2

    def test_composite_unique_key(self, fresh_store):
        """
        A user can be in many chats, but only once per chat.

        Why it matters: Duplicate memberships would double-count capacity.
        """
        fresh_store.memberships.insert(Membership(chat_id=1, user_id=1))
        fresh_store.memberships.insert(Membership(chat_id=2, user_id=1))

        with pytest.raises(ConflictError):
            fresh_store.memberships.insert(Membership(chat_id=1, user_id=1))


class TestRepositoryReads:
    """Tests for get/get_by/filter_by/count_by."""

    def test_get_missing_returns_none(self, fresh_store):
        assert fresh_store.chats.get(42) is None
        assert fresh_store.chats.get(None) is None

    def test_get_returns_a_copy(self, fresh_store):
        """
        Mutating a returned row does not change the store.

        Why it matters: The only write path is update_fields, which keeps
        indices consistent.
        """
        message = fresh_store.messages.insert(
            Message(chat_id=1, sender_id=1, text="hi", read_by=[1])
        )

        message.read_by.append(2)
        message.text = "changed"

        stored = fresh_store.messages.get(message.id)
        assert stored.read_by == [1]
        assert stored.text == "hi"

    def test_insert_copies_the_draft(self, fresh_store):
        draft = Message(chat_id=1, sender_id=1, text="hi", read_by=[1])
        stored = fresh_store.messages.insert(draft)

        draft.read_by.append(5)

        assert fresh_store.messages.get(stored.id).read_by == [1]

    def test_get_by_single_and_composite_keys(self, fresh_store):
        user = fresh_store.users.insert(User(uid="abc", email="a@example.com"))
        membership = fresh_store.memberships.insert(Membership(chat_id=3, user_id=4))

        assert fresh_store.users.get_by("uid", "abc").id == user.id
        assert fresh_store.users.get_by("email", "a@example.com").id == user.id
        assert fresh_store.users.get_by("uid", "missing") is None
        assert (
            fresh_store.memberships.get_by(("chat_id", "user_id"), (3, 4)).id
            == membership.id
        )

    def test_get_by_undeclared_key_raises_lookup_error(self, fresh_store):
        with pytest.raises(LookupError):
            fresh_store.users.get_by("display_name", "Alice")

    def test_filter_by_returns_rows_in_id_order(self, fresh_store):
        for user_id in (5, 3, 9):
            fresh_store.memberships.insert(Membership(chat_id=1, user_id=user_id))
        fresh_store.memberships.insert(Membership(chat_id=2, user_id=3))

        rows = fresh_store.memberships.filter_by("chat_id", 1)

        assert [m.user_id for m in rows] == [5, 3, 9]
        assert fresh_store.memberships.count_by("chat_id", 1) == 3
        assert fresh_store.memberships.ids_by("user_id", 3) == {2, 4}
        assert fresh_store.memberships.filter_by("chat_id", 77) == []

    def test_all_returns_every_row(self, fresh_store):
        fresh_store.users.insert(User(uid="a"))
        fresh_store.users.insert(User(uid="b"))

        assert [u.uid for u in fresh_store.users.all()] == ["a", "b"]


class TestRepositoryUpdate:
    """Tests for Repository.update_fields()."""

    def test_merges_fields(self, fresh_store):
        user = fresh_store.users.insert(User(uid="a", display_name="Old"))

        updated = fresh_store.users.update_fields(user.id, display_name="New")

        assert updated.display_name == "New"
        assert updated.uid == "a"
        assert fresh_store.users.get(user.id).display_name == "New"

    def test_missing_id_returns_none(self, fresh_store):
        assert fresh_store.users.update_fields(404, display_name="x") is None

    def test_unknown_field_raises_value_error(self, fresh_store):
        user = fresh_store.users.insert(User(uid="a"))

        with pytest.raises(ValueError):
            fresh_store.users.update_fields(user.id, favourite_colour="blue")

    def test_id_cannot_change(self, fresh_store):
        user = fresh_store.users.insert(User(uid="a"))

        with pytest.raises(ValueError):
            fresh_store.users.update_fields(user.id, id=7)

    def test_unique_collision_raises_and_leaves_row_unchanged(self, fresh_store):
        fresh_store.users.insert(User(uid="a", username="taken"))
        other = fresh_store.users.insert(User(uid="b", username="free"))

        with pytest.raises(ConflictError):
            fresh_store.users.update_fields(other.id, username="taken")

        assert fresh_store.users.get(other.id).username == "free"
        assert fresh_store.users.get_by("username", "free").id == other.id

    def test_updating_unique_value_moves_the_index(self, fresh_store):
        """
        Why it matters: A regenerated invite code must free the old code
        and resolve the new one.
        """
        chat = fresh_store.chats.insert(
            Chat(chat_type=ChatType.GROUP, name="g", invite_code="OLDCODE1")
        )

        fresh_store.chats.update_fields(chat.id, invite_code="NEWCODE1")

        assert fresh_store.chats.get_by("invite_code", "OLDCODE1") is None
        assert fresh_store.chats.get_by("invite_code", "NEWCODE1").id == chat.id

    def test_updating_indexed_field_moves_the_index(self, fresh_store):
        message = fresh_store.messages.insert(Message(chat_id=1, sender_id=1, text="x"))

        fresh_store.messages.update_fields(message.id, chat_id=2)

        assert fresh_store.messages.filter_by("chat_id", 1) == []
        assert [m.id for m in fresh_store.messages.filter_by("chat_id", 2)] == [
            message.id
        ]


class TestRepositoryDelete:
    """Tests for Repository.delete()."""

    def test_delete_removes_row_and_index_entries(self, fresh_store):
        membership = fresh_store.memberships.insert(Membership(chat_id=1, user_id=2))

        fresh_store.memberships.delete(membership.id)

        assert fresh_store.memberships.get(membership.id) is None
        assert fresh_store.memberships.get_by(("chat_id", "user_id"), (1, 2)) is None
        assert fresh_store.memberships.count_by("chat_id", 1) == 0

    def test_delete_missing_is_a_no_op(self, fresh_store):
        fresh_store.memberships.delete(12345)

        assert len(fresh_store.memberships) == 0

    def test_ids_are_not_reused_after_delete(self, fresh_store):
        first = fresh_store.memberships.insert(Membership(chat_id=1, user_id=1))
        fresh_store.memberships.delete(first.id)

        second = fresh_store.memberships.insert(Membership(chat_id=1, user_id=1))

        assert second.id == first.id + 1


class TestEntityStore:
    """Tests for EntityStore-level helpers."""

    def test_stats_counts_rows_per_repository(self, fresh_store):
        fresh_store.users.insert(User(uid="a"))

        stats = fresh_store.stats()

        assert stats["users"] == 1
        assert stats["chats"] == 0
        assert set(stats) == {
            "users",
            "chats",
            "memberships",
            "messages",
            "statuses",
            "status_views",
        }

    def test_reset_empties_store_and_restarts_ids(self, fresh_store):
        fresh_store.users.insert(User(uid="a"))

        fresh_store.reset()

        assert len(fresh_store.users) == 0
        assert fresh_store.users.insert(User(uid="b")).id == 1

    def test_now_uses_the_store_clock(self, fresh_store):
        assert fresh_store.now() == FIXED_NOW

    def test_index_definition_must_name_real_fields(self):
        with pytest.raises(ValueError):
            Repository("users", User, clock=lambda: FIXED_NOW, indexed=["nope"])
