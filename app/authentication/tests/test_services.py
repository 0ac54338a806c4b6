"""
Tests for UserService.

Covers identity sync (find-or-create from token claims), lookups, and
profile updates with username validation.
"""

import pytest

from authentication.services import UserService
from authentication.tests.factories import UserFactory
from core.exceptions import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def users(store):
    return UserService(store)


class TestEnsureUser:
    """Tests for UserService.ensure_user()."""

    def test_creates_user_from_claims(self, users):
        user = users.ensure_user(
            "uid-1",
            {"email": "Alice@Example.com", "name": "Alice", "picture": "https://x/a.png"},
        )

        assert user.id == 1
        assert user.uid == "uid-1"
        assert user.email == "alice@example.com"
        assert user.username == "alice@example.com"
        assert user.display_name == "Alice"
        assert user.photo_url == "https://x/a.png"

    def test_second_call_returns_same_user(self, users, store):
        """
        Why it matters: Every request syncs; it must never duplicate users.
        """
        first = users.ensure_user("uid-1", {"email": "a@example.com"})
        second = users.ensure_user("uid-1", {"email": "a@example.com"})

        assert second.id == first.id
        assert len(store.users) == 1

    def test_existing_profile_is_not_overwritten(self, users):
        """
        Why it matters: A user's edited display name must survive sign-in.
        """
        user = users.ensure_user("uid-1", {"name": "Original"})
        users.update_profile(user.id, display_name="Edited")

        again = users.ensure_user("uid-1", {"name": "Original"})

        assert again.display_name == "Edited"

    def test_display_name_falls_back_to_email_then_uid(self, users):
        from_email = users.ensure_user("uid-1", {"email": "bob@example.com"})
        from_uid = users.ensure_user("uid-2")

        assert from_email.display_name == "bob"
        assert from_uid.display_name == "uid-2"
        assert from_uid.username == "uid-2"
        assert from_uid.email is None

    def test_claimed_username_does_not_block_first_sign_in(self, users):
        """
        Another user already took this uid as their username.

        Why it matters: Usernames are user-chosen; picking someone's uid
        must not lock that identity out of its first sign-in.
        """
        squatter = users.ensure_user("first-user")
        users.update_profile(squatter.id, username="victimuid123")

        newcomer = users.ensure_user("victimuid123", {})

        assert newcomer.uid == "victimuid123"
        assert newcomer.username == "victimuid123-2"
        assert users.get_user(squatter.id).username == "victimuid123"

    def test_username_suffix_skips_taken_values(self, users):
        first = users.ensure_user("seed")
        users.update_profile(first.id, username="dupe")
        second = users.ensure_user("other")
        users.update_profile(second.id, username="dupe-2")

        assert users.ensure_user("dupe").username == "dupe-3"

    def test_blank_uid_rejected(self, users):
        with pytest.raises(ValidationError) as exc_info:
            users.ensure_user("  ")

        assert exc_info.value.error_code == "UID_REQUIRED"

    def test_email_held_by_another_identity_conflicts(self, users):
        users.ensure_user("uid-1", {"email": "shared@example.com"})

        with pytest.raises(ConflictError):
            users.ensure_user("uid-2", {"email": "shared@example.com"})


class TestGetUser:
    def test_missing_user(self, users):
        with pytest.raises(NotFoundError) as exc_info:
            users.get_user(404)

        assert exc_info.value.error_code == "USER_NOT_FOUND"


class TestValidateUsername:
    """Tests for UserService.validate_username()."""

    @pytest.mark.parametrize("username", ["ab", "has space", "emoji🙂", "x" * 31])
    def test_invalid_format(self, username):
        with pytest.raises(ValidationError) as exc_info:
            UserService.validate_username(username)

        assert exc_info.value.error_code == "INVALID_USERNAME"

    def test_reserved(self):
        with pytest.raises(ValidationError) as exc_info:
            UserService.validate_username("Admin")

        assert exc_info.value.error_code == "RESERVED_USERNAME"

    def test_normalizes_case(self):
        assert UserService.validate_username("  Alice_99 ") == "alice_99"


class TestUpdateProfile:
    """Tests for UserService.update_profile()."""

    def test_updates_given_fields_only(self, users):
        user = UserFactory(display_name="Old", photo_url="https://x/old.png")

        updated = users.update_profile(user.id, display_name="  New  ")

        assert updated.display_name == "New"
        assert updated.photo_url == "https://x/old.png"

    def test_username_taken(self, users):
        UserFactory(username="taken")
        user = UserFactory()

        with pytest.raises(ConflictError) as exc_info:
            users.update_profile(user.id, username="TAKEN")

        assert exc_info.value.error_code == "USERNAME_TAKEN"

    def test_keeping_own_username_is_allowed(self, users):
        user = UserFactory(username="mine")

        assert users.update_profile(user.id, username="mine").username == "mine"

    def test_blank_display_name(self, users):
        user = UserFactory()

        with pytest.raises(ValidationError) as exc_info:
            users.update_profile(user.id, display_name="   ")

        assert exc_info.value.error_code == "DISPLAY_NAME_REQUIRED"

    def test_blank_photo_url_clears_avatar(self, users):
        user = UserFactory(photo_url="https://x/a.png")

        assert users.update_profile(user.id, photo_url="").photo_url is None

    def test_unknown_user(self, users):
        with pytest.raises(NotFoundError):
            users.update_profile(404, display_name="x")
