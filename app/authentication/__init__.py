"""
Authentication application.

This app connects the external identity provider to the local user store.

Key components:
    - User: Dataclass entity held by the chat entity store
    - UserService: ensure_user (find-or-create) and profile updates
    - IdentityTokenAuthentication: DRF bearer token authentication

Usage:
    from authentication.models import User
    from authentication.services import UserService
"""
