"""
Authentication views.

This module provides API views for:
- Session sync with the external identity provider
- Current user profile (read/update)
- User directory and contacts

Related files:
    - serializers.py: Request/response serialization
    - services.py: UserService
    - backends.py: IdentityTokenAuthentication (creates users on first request)
    - urls.py: URL routing

Note:
    Every endpoint here requires a valid identity token. By the time a view
    runs, IdentityTokenAuthentication has already synced the user into the
    entity store, so session sync simply returns request.user.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import ProfileUpdateSerializer, UserSerializer
from chat.dependencies import get_services


class SessionSyncView(APIView):
    """
    Sync the identity provider session into the local user store.

    POST: Find or create the user named by the token and return it

    URL: /api/v1/auth/session/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Sync identity session",
        description=(
            "Creates the local user on first sign-in from the token's "
            "uid, email, name, and picture claims. Idempotent."
        ),
        tags=["Auth"],
        request=None,
        responses={200: UserSerializer},
    )
    def post(self, request):
        return Response(
            {"success": True, "user": UserSerializer(request.user).data},
            status=status.HTTP_200_OK,
        )


class CurrentUserView(APIView):
    """
    API view for the current user's profile.

    GET: Retrieve current user
    PATCH: Update display name, username, or avatar

    URL: /api/v1/users/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Users"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        user = get_services().users.get_user(request.user.id)
        return Response(UserSerializer(user).data)

    @extend_schema(
        summary="Update profile",
        description="Partial profile update. Usernames are unique.",
        tags=["Users"],
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer},
    )
    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = get_services().users.update_profile(
            request.user.id, **serializer.validated_data
        )
        return Response(UserSerializer(user).data)


class UserListView(APIView):
    """
    API view for the user directory.

    GET: Every user except the caller (for starting chats)

    URL: /api/v1/users/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List users",
        tags=["Users"],
        responses={200: UserSerializer(many=True)},
    )
    def get(self, request):
        users = get_services().queries.list_users(exclude_id=request.user.id)
        return Response(UserSerializer(users, many=True).data)


class ContactListView(APIView):
    """
    API view for the caller's contacts (users sharing at least one chat).

    URL: /api/v1/users/contacts/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List contacts",
        tags=["Users"],
        responses={200: UserSerializer(many=True)},
    )
    def get(self, request):
        contacts = get_services().queries.get_contacts(request.user.id)
        return Response(UserSerializer(contacts, many=True).data)
