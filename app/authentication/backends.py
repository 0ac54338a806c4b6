"""
Identity token authentication.

Requests carry a signed access token issued for the external identity
provider's user. The token is verified with djangorestframework-simplejwt;
its claims identify the user:

    uid      (required) stable external id, trusted as User.uid
    email    optional contact address
    name     optional display name
    picture  optional avatar URL

Every successful verification calls UserService.ensure_user, so the first
authenticated request creates the local user.

Usage (settings.py):
    REST_FRAMEWORK = {
        "DEFAULT_AUTHENTICATION_CLASSES": [
            "authentication.backends.IdentityTokenAuthentication",
        ],
    }
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from chat.dependencies import get_services

if TYPE_CHECKING:
    from authentication.models import User
    from authentication.services import UserService

logger = logging.getLogger(__name__)

IDENTITY_CLAIMS = ("email", "name", "picture")


class IdentityError(Exception):
    """Token is malformed, expired, or lacks a uid claim."""


def verify_token(raw_token: str) -> AccessToken:
    """
    Verify signature, expiry, and token type.

    Raises:
        IdentityError: If verification fails or uid is missing
    """
    try:
        token = AccessToken(raw_token)
    except TokenError as e:
        raise IdentityError(str(e)) from e

    if not token.get("uid"):
        raise IdentityError("Token has no uid claim")
    return token


def user_from_token(token: AccessToken, users: UserService) -> User:
    """Find or create the local user named by a verified token."""
    claims = {claim: token.get(claim) for claim in IDENTITY_CLAIMS}
    return users.ensure_user(str(token["uid"]), claims)


class IdentityTokenAuthentication(BaseAuthentication):
    """
    DRF authentication via "Authorization: Bearer <token>".

    Returns None (anonymous) when no bearer header is present so that
    AllowAny endpoints like /health/ keep working.
    """

    keyword = "Bearer"

    def authenticate(self, request):
        header = get_authorization_header(request).split()
        if not header or header[0].lower() != self.keyword.lower().encode():
            return None

        if len(header) != 2:
            raise AuthenticationFailed("Invalid authorization header.")

        try:
            raw_token = header[1].decode()
            token = verify_token(raw_token)
        except UnicodeError as e:
            raise AuthenticationFailed("Invalid authorization header.") from e
        except IdentityError as e:
            logger.info(f"Rejected identity token: {e}")
            raise AuthenticationFailed("Invalid or expired token.") from e

        user = user_from_token(token, get_services().users)
        return (user, token)

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
