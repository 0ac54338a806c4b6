"""
Tests for chat API views.

Exercises the REST endpoints end to end through APIClient with identity
tokens:
- Chats: list, create (direct/group), detail, read, members, invites
- Messages: list, send, read receipts
- Statuses: feed, post, view, per-user and all-active lists
- Presence
"""

from datetime import timedelta

from freezegun import freeze_time
from rest_framework import status

CHATS_URL = "/api/v1/chat/chats/"
STATUSES_URL = "/api/v1/chat/statuses/"


def chat_url(chat_id, suffix=""):
    return f"{CHATS_URL}{chat_id}/{suffix}"


class TestAuthentication:
    def test_requires_token(self, api_client):
        response = api_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_rejects_bad_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer nope")

        response = api_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestChatEndpoints:
    """Tests for /chats/ list, create and detail."""

    def test_create_group(self, client_for, alice, bob):
        response = client_for(alice).post(
            CHATS_URL,
            {"chat_type": "group", "name": "Trip", "member_ids": [bob.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Trip"
        assert response.data["member_count"] == 2
        assert response.data["unread_count"] == 0
        assert {m["user"]["id"] for m in response.data["members"]} == {alice.id, bob.id}

    def test_group_without_name_is_400(self, client_for, alice):
        response = client_for(alice).post(
            CHATS_URL, {"chat_type": "group", "name": ""}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "name" in response.data

    def test_direct_chat_is_get_or_create(self, client_for, alice, bob):
        """
        Why it matters: Tapping "message" on a contact twice must open the
        same conversation.
        """
        client = client_for(alice)
        payload = {"chat_type": "direct", "member_ids": [bob.id]}

        first = client.post(CHATS_URL, payload, format="json")
        second = client_for(bob).post(
            CHATS_URL, {"chat_type": "direct", "member_ids": [alice.id]}, format="json"
        )

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_200_OK
        assert second.data["id"] == first.data["id"]
        assert first.data["other_member"]["id"] == bob.id
        assert second.data["other_member"]["id"] == alice.id

    def test_direct_chat_needs_one_member(self, client_for, alice, bob, carol):
        response = client_for(alice).post(
            CHATS_URL,
            {"chat_type": "direct", "member_ids": [bob.id, carol.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_direct_chat_with_unknown_user_is_404(self, client_for, alice):
        response = client_for(alice).post(
            CHATS_URL, {"chat_type": "direct", "member_ids": [999]}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"

    def test_list_shows_member_chats(self, client_for, group_chat, direct_chat, alice, carol):
        alice_chats = client_for(alice).get(CHATS_URL)
        carol_chats = client_for(carol).get(CHATS_URL)

        assert len(alice_chats.data) == 2
        assert [c["id"] for c in carol_chats.data] == [group_chat.id]

    def test_detail_for_non_member_is_403(self, client_for, group_chat, outsider):
        response = client_for(outsider).get(chat_url(group_chat.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_MEMBER"

    def test_detail_missing_chat_is_404(self, client_for, alice):
        response = client_for(alice).get(chat_url(999))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_mark_chat_read(self, client_for, services, group_chat, alice, bob):
        services.messages.send_message(group_chat.id, bob.id, text="hi")

        response = client_for(alice).post(chat_url(group_chat.id, "read/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"status": "read", "marked": 1}


class TestMemberEndpoints:
    """Tests for /chats/{id}/members/."""

    def test_list_members(self, client_for, group_chat, bob):
        response = client_for(bob).get(chat_url(group_chat.id, "members/"))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 3

    def test_admin_adds_member(self, client_for, group_chat, alice, outsider):
        response = client_for(alice).post(
            chat_url(group_chat.id, "members/"), {"user_id": outsider.id}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert outsider.id in [m["user"]["id"] for m in response.data]

    def test_non_admin_cannot_add(self, client_for, group_chat, bob, outsider):
        response = client_for(bob).post(
            chat_url(group_chat.id, "members/"), {"user_id": outsider.id}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "ADMIN_REQUIRED"

    def test_adding_existing_member_is_409(self, client_for, group_chat, alice, bob):
        response = client_for(alice).post(
            chat_url(group_chat.id, "members/"), {"user_id": bob.id}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_full_chat_is_422(self, client_for, group_chat, alice, outsider, settings):
        """
        Why it matters: Clients distinguish "full" from other failures.
        """
        settings.CHAT_MAX_GROUP_MEMBERS = 3

        response = client_for(alice).post(
            chat_url(group_chat.id, "members/"), {"user_id": outsider.id}, format="json"
        )

        assert response.status_code == 422
        assert response.data["error_code"] == "CAPACITY_EXCEEDED"
        assert response.data["details"] == {"chat_id": group_chat.id, "limit": 3}

    def test_direct_chat_members_are_fixed(self, client_for, direct_chat, alice, bob, carol):
        client = client_for(alice)

        added = client.post(
            chat_url(direct_chat.id, "members/"), {"user_id": carol.id}, format="json"
        )
        removed = client.delete(chat_url(direct_chat.id, f"members/{bob.id}/"))

        assert added.status_code == status.HTTP_403_FORBIDDEN
        assert removed.status_code == status.HTTP_403_FORBIDDEN
        assert added.data["error_code"] == "DIRECT_CHAT_FIXED"
        assert client_for(carol).get(chat_url(direct_chat.id, "messages/")).status_code == 403

    def test_leave_chat(self, client_for, group_chat, bob, services):
        response = client_for(bob).delete(chat_url(group_chat.id, f"members/{bob.id}/"))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not services.queries.is_member(group_chat.id, bob.id)


class TestMessageEndpoints:
    """Tests for /chats/{id}/messages/ and /messages/{id}/read/."""

    def test_send_and_list(self, client_for, group_chat, alice, bob):
        sent = client_for(bob).post(
            chat_url(group_chat.id, "messages/"), {"text": "hello"}, format="json"
        )
        thread = client_for(alice).get(chat_url(group_chat.id, "messages/"))

        assert sent.status_code == status.HTTP_201_CREATED
        assert sent.data["sender"]["id"] == bob.id
        assert sent.data["read_by"] == [bob.id]
        assert [m["text"] for m in thread.data] == ["hello"]

    def test_send_requires_content(self, client_for, group_chat, bob):
        response = client_for(bob).post(
            chat_url(group_chat.id, "messages/"), {"text": ""}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_member_send_is_400(self, client_for, group_chat, outsider, store):
        response = client_for(outsider).post(
            chat_url(group_chat.id, "messages/"), {"text": "hi"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "NOT_MEMBER"
        assert len(store.messages) == 0

    def test_non_member_cannot_read_thread(self, client_for, group_chat, outsider):
        response = client_for(outsider).get(chat_url(group_chat.id, "messages/"))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_mark_message_read_twice(self, client_for, services, group_chat, alice, bob):
        message = services.messages.send_message(group_chat.id, bob.id, text="hi")
        client = client_for(alice)
        url = f"/api/v1/chat/messages/{message.id}/read/"

        client.post(url)
        response = client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["read_by"] == [bob.id, alice.id]


class TestInviteEndpoints:
    def test_generate_and_join(self, client_for, group_chat, alice, outsider):
        code = client_for(alice).post(chat_url(group_chat.id, "invite/")).data["invite_code"]

        response = client_for(outsider).post(
            "/api/v1/chat/invites/join/", {"code": code}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == group_chat.id
        assert response.data["member_count"] == 4

    def test_regenerate(self, client_for, group_chat, alice):
        client = client_for(alice)
        old = client.post(chat_url(group_chat.id, "invite/")).data["invite_code"]

        response = client.post(chat_url(group_chat.id, "invite/regenerate/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["invite_code"] != old

    def test_unknown_code_is_404(self, client_for, outsider):
        response = client_for(outsider).post(
            "/api/v1/chat/invites/join/", {"code": "NOPE1234"}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "INVITE_NOT_FOUND"


class TestStatusEndpoints:
    """Tests for /statuses/."""

    def test_post_status_ignores_client_expiry(self, client_for, alice):
        response = client_for(alice).post(
            STATUSES_URL,
            {"text": "hello", "expires_at": "2099-01-01T00:00:00Z"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["is_own"] is True
        assert response.data["view_count"] == 0
        assert not response.data["expires_at"].startswith("2099")

    def test_feed_and_view(self, client_for, services, alice, bob):
        created = services.statuses.create_status(alice.id, text="hello")
        bob_client = client_for(bob)

        before = bob_client.get(STATUSES_URL)
        viewed = bob_client.post(f"{STATUSES_URL}{created.id}/view/")
        bob_client.post(f"{STATUSES_URL}{created.id}/view/")

        assert [s["viewed"] for s in before.data] == [False]
        assert viewed.data["viewed"] is True
        assert services.queries.get_status(created.id).view_count == 1

    def test_view_missing_status_is_404(self, client_for, alice):
        response = client_for(alice).post(f"{STATUSES_URL}999/view/")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_expired_status_disappears(self, client_for, services, alice, bob):
        with freeze_time("2024-05-01 12:00:00") as frozen:
            services.statuses.create_status(alice.id, text="hello")
            frozen.tick(timedelta(hours=24, minutes=1))
            response = client_for(bob).get(STATUSES_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

    def test_user_and_all_lists(self, client_for, services, alice, bob):
        services.statuses.create_status(alice.id, text="a")
        services.statuses.create_status(bob.id, text="b")
        client = client_for(alice)

        mine = client.get(f"{STATUSES_URL}users/{alice.id}/")
        everything = client.get(f"{STATUSES_URL}all/")

        assert [s["text"] for s in mine.data] == ["a"]
        assert len(everything.data) == 2


class TestPresenceEndpoint:
    def test_presence(self, client_for, alice, bob, connect):
        connect(bob)

        response = client_for(alice).get(f"/api/v1/chat/presence/{bob.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["online"] is True

    def test_unknown_user_is_404(self, client_for, alice):
        response = client_for(alice).get("/api/v1/chat/presence/999/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
