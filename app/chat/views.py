"""
Views for chat API.

This module provides REST API endpoints for the chat system:
- ChatViewSet: Chat list/create/detail and nested actions
- MessageReadView: Read receipts for single messages
- InviteJoinView: Join a group through its invite code
- StatusViewSet: Status feed, posting, and views
- UserPresenceView: Online state and last seen

URL Structure:
    /api/v1/chat/chats/                              GET, POST
    /api/v1/chat/chats/{id}/                         GET
    /api/v1/chat/chats/{id}/read/                    POST
    /api/v1/chat/chats/{id}/members/                 GET, POST
    /api/v1/chat/chats/{id}/members/{user_id}/       DELETE
    /api/v1/chat/chats/{id}/messages/                GET, POST
    /api/v1/chat/chats/{id}/invite/                  POST
    /api/v1/chat/chats/{id}/invite/regenerate/       POST
    /api/v1/chat/invites/join/                       POST
    /api/v1/chat/messages/{id}/read/                 POST
    /api/v1/chat/statuses/                           GET (feed), POST
    /api/v1/chat/statuses/all/                       GET
    /api/v1/chat/statuses/users/{user_id}/           GET
    /api/v1/chat/statuses/{id}/view/                 POST
    /api/v1/chat/presence/{user_id}/                 GET

Design Decisions:
    - ViewSets over the entity store (no querysets)
    - Responses are built from chat.queries projections
    - Service errors propagate to core.handlers.api_exception_handler
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError

from chat.dependencies import get_services
from chat.models import ChatType
from chat.queries import MessageView
from chat.serializers import (
    ChatCreateSerializer,
    ChatSerializer,
    InviteCodeSerializer,
    InviteJoinSerializer,
    MemberAddSerializer,
    MemberSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    PresenceSerializer,
    StatusCreateSerializer,
    StatusSerializer,
)


def _chat_response(services, chat_id: int, user_id: int, status_code=status.HTTP_200_OK):
    summary = services.queries.get_chat(chat_id, user_id)
    if summary is None:
        raise NotFoundError(
            f"Chat {chat_id} not found",
            error_code="CHAT_NOT_FOUND",
            details={"chat_id": chat_id},
        )
    return Response(ChatSerializer(summary).data, status=status_code)


# =============================================================================
# Chats
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chats",
        summary="List chats",
        description="Caller's chats, most recently active first.",
        tags=["Chat - Chats"],
        responses={200: ChatSerializer(many=True)},
    ),
    create=extend_schema(
        operation_id="create_chat",
        summary="Create chat",
        tags=["Chat - Chats"],
        request=ChatCreateSerializer,
        responses={200: ChatSerializer, 201: ChatSerializer},
    ),
    retrieve=extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        tags=["Chat - Chats"],
        responses={200: ChatSerializer},
    ),
)
class ChatViewSet(viewsets.ViewSet):
    """
    ViewSet for chat operations.

    list:
        Chats the caller belongs to, with members and unread counts.

    create:
        Direct chats are get-or-create (200 when it already existed).
        Group chats are always new (201); the caller becomes admin.

    retrieve:
        One chat; members only.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request):
        summaries = get_services().queries.get_chats_for_user(request.user.id)
        return Response(ChatSerializer(summaries, many=True).data)

    def create(self, request):
        serializer = ChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        services = get_services()

        if data["chat_type"] == ChatType.DIRECT:
            chat, created = services.chats.open_direct_chat(
                request.user.id, data["member_ids"][0]
            )
        else:
            chat = services.chats.create_group(
                name=data["name"],
                creator_id=request.user.id,
                member_ids=data["member_ids"],
                photo_url=data.get("photo_url") or None,
            )
            created = True

        return _chat_response(
            services,
            chat.id,
            request.user.id,
            status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        services = get_services()
        chat = services.chats.get_chat_for_member(int(pk), request.user.id)
        return _chat_response(services, chat.id, request.user.id)

    @extend_schema(
        operation_id="mark_chat_read",
        summary="Mark chat as read",
        tags=["Chat - Chats"],
        request=None,
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        """Mark every message in the chat as read by the caller."""
        marked = get_services().messages.mark_chat_read(int(pk), request.user.id)
        return Response({"status": "read", "marked": marked})

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    @extend_schema(
        methods=["GET"],
        operation_id="list_chat_members",
        summary="List members",
        tags=["Chat - Members"],
        responses={200: MemberSerializer(many=True)},
    )
    @extend_schema(
        methods=["POST"],
        operation_id="add_chat_member",
        summary="Add member",
        description=(
            "Group admins add members; a group holds at most 2000. "
            "Direct chats never take new members."
        ),
        tags=["Chat - Members"],
        request=MemberAddSerializer,
        responses={
            201: MemberSerializer(many=True),
            409: OpenApiResponse(description="Already a member"),
            422: OpenApiResponse(description="Chat is full"),
        },
    )
    @action(detail=True, methods=["get", "post"])
    def members(self, request, pk=None):
        services = get_services()
        chat_id = int(pk)

        if request.method == "POST":
            serializer = MemberAddSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            services.members.add_member(
                chat_id,
                serializer.validated_data["user_id"],
                as_admin=serializer.validated_data["is_admin"],
                actor_id=request.user.id,
            )
            response_status = status.HTTP_201_CREATED
        else:
            services.chats.get_chat_for_member(chat_id, request.user.id)
            response_status = status.HTTP_200_OK

        members = services.queries.get_chat_members(chat_id)
        return Response(
            MemberSerializer(members, many=True).data, status=response_status
        )

    @extend_schema(
        operation_id="remove_chat_member",
        summary="Remove member",
        description=(
            "Members may remove themselves (leave); group admins may remove "
            "anyone else. In a direct chat only self-removal is allowed. "
            "Removing a non-member is a no-op."
        ),
        tags=["Chat - Members"],
        responses={204: None},
    )
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>\d+)",
        url_name="member-detail",
    )
    def remove_member(self, request, pk=None, user_id=None):
        get_services().members.remove_member(
            int(pk), int(user_id), actor_id=request.user.id
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    @extend_schema(
        methods=["GET"],
        operation_id="list_messages",
        summary="List messages",
        description="Messages oldest first, with sender attached.",
        tags=["Chat - Messages"],
        responses={200: MessageSerializer(many=True)},
    )
    @extend_schema(
        methods=["POST"],
        operation_id="send_message",
        summary="Send message",
        tags=["Chat - Messages"],
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        services = get_services()
        chat_id = int(pk)

        if request.method == "POST":
            serializer = MessageCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            message = services.messages.send_message(
                chat_id,
                request.user.id,
                text=serializer.validated_data.get("text"),
                image_url=serializer.validated_data.get("image_url"),
            )
            view = MessageView(message=message, sender=request.user)
            return Response(
                MessageSerializer(view).data, status=status.HTTP_201_CREATED
            )

        services.chats.get_chat_for_member(chat_id, request.user.id)
        thread = services.queries.get_messages_for_chat(chat_id)
        return Response(MessageSerializer(thread, many=True).data)

    # -------------------------------------------------------------------------
    # Invite codes
    # -------------------------------------------------------------------------

    @extend_schema(
        operation_id="get_invite_code",
        summary="Get or create invite code",
        description="Group admins only. Returns the existing code if there is one.",
        tags=["Chat - Invites"],
        request=None,
        responses={200: InviteCodeSerializer},
    )
    @action(detail=True, methods=["post"])
    def invite(self, request, pk=None):
        code = get_services().invites.generate_invite_code(int(pk), request.user.id)
        return Response(
            InviteCodeSerializer({"chat_id": int(pk), "invite_code": code}).data
        )

    @extend_schema(
        operation_id="regenerate_invite_code",
        summary="Regenerate invite code",
        description="Group admins only. The previous code stops working.",
        tags=["Chat - Invites"],
        request=None,
        responses={200: InviteCodeSerializer},
    )
    @action(detail=True, methods=["post"], url_path="invite/regenerate")
    def regenerate_invite(self, request, pk=None):
        code = get_services().invites.regenerate_invite_code(int(pk), request.user.id)
        return Response(
            InviteCodeSerializer({"chat_id": int(pk), "invite_code": code}).data
        )


class InviteJoinView(APIView):
    """
    Join a group via invite code.

    POST /api/v1/chat/invites/join/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="join_with_invite_code",
        summary="Join group by invite code",
        tags=["Chat - Invites"],
        request=InviteJoinSerializer,
        responses={
            200: ChatSerializer,
            404: OpenApiResponse(description="Unknown invite code"),
        },
    )
    def post(self, request):
        serializer = InviteJoinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        services = get_services()
        chat = services.invites.join_with_invite_code(
            serializer.validated_data["code"], request.user.id
        )
        return _chat_response(services, chat.id, request.user.id)


class MessageReadView(APIView):
    """
    Mark one message as read.

    POST /api/v1/chat/messages/{id}/read/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="mark_message_read",
        summary="Mark message as read",
        description="Idempotent: reading twice records the reader once.",
        tags=["Chat - Messages"],
        request=None,
        responses={200: MessageSerializer},
    )
    def post(self, request, message_id):
        services = get_services()
        services.messages.mark_message_read(message_id, request.user.id)
        view = services.queries.get_message(message_id)
        return Response(MessageSerializer(view).data)


# =============================================================================
# Statuses
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="status_feed",
        summary="Status feed",
        description=(
            "One most-recent active status per author. The caller's own "
            "status comes first, then unseen, then seen; newest first."
        ),
        tags=["Chat - Statuses"],
        responses={200: StatusSerializer(many=True)},
    ),
    create=extend_schema(
        operation_id="create_status",
        summary="Post status",
        description="Expires 24 hours after creation. expires_at is ignored.",
        tags=["Chat - Statuses"],
        request=StatusCreateSerializer,
        responses={201: StatusSerializer},
    ),
)
class StatusViewSet(viewsets.ViewSet):
    """ViewSet for ephemeral statuses."""

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request):
        feed = get_services().queries.get_active_statuses_feed(request.user.id)
        return Response(StatusSerializer(feed, many=True).data)

    def create(self, request):
        serializer = StatusCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        services = get_services()
        created = services.statuses.create_status(
            request.user.id,
            text=serializer.validated_data.get("text"),
            image_url=serializer.validated_data.get("image_url"),
            expires_at=serializer.validated_data.get("expires_at"),
        )
        item = services.queries.get_status(created.id, request.user.id)
        return Response(StatusSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="list_all_statuses",
        summary="All active statuses",
        description="Every active status, newest first.",
        tags=["Chat - Statuses"],
        responses={200: StatusSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="all")
    def all_active(self, request):
        items = get_services().queries.list_active_statuses(request.user.id)
        return Response(StatusSerializer(items, many=True).data)

    @extend_schema(
        operation_id="list_user_statuses",
        summary="A user's active statuses",
        description="Oldest first, for sequential playback.",
        tags=["Chat - Statuses"],
        responses={200: StatusSerializer(many=True)},
    )
    @action(
        detail=False,
        methods=["get"],
        url_path=r"users/(?P<user_id>\d+)",
        url_name="user-statuses",
    )
    def user_statuses(self, request, user_id=None):
        items = get_services().queries.get_user_statuses(int(user_id), request.user.id)
        return Response(StatusSerializer(items, many=True).data)

    @extend_schema(
        operation_id="view_status",
        summary="Record status view",
        description="Idempotent: only the first view by a user is counted.",
        tags=["Chat - Statuses"],
        request=None,
        responses={200: StatusSerializer},
    )
    @action(detail=True, methods=["post"])
    def view(self, request, pk=None):
        services = get_services()
        services.statuses.view_status(int(pk), request.user.id)
        item = services.queries.get_status(int(pk), request.user.id)
        return Response(StatusSerializer(item).data)


# =============================================================================
# Presence
# =============================================================================


class UserPresenceView(APIView):
    """
    Get presence status for a specific user.

    GET /api/v1/chat/presence/{user_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_user_presence",
        summary="Get user presence",
        description=(
            "Whether the user has a live connection, and when they were "
            "last seen. Useful for online indicators in chat headers."
        ),
        parameters=[
            OpenApiParameter(
                name="user_id",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description="Id of the user to query",
            ),
        ],
        responses={200: PresenceSerializer},
        tags=["Chat - Presence"],
    )
    def get(self, request, user_id):
        presence = get_services().presence.get_presence(user_id)
        return Response(PresenceSerializer(presence).data)
