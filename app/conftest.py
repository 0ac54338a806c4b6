"""
Shared pytest configuration for the Django apps.

Provides:
- Automatic unit/integration/e2e markers based on test file names
- A fresh entity store and fan-out for every test
- Identity token helpers and authenticated API clients
"""

import pytest
from django.apps import apps
from rest_framework.test import APIClient


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full user journey workflows)
    - test_views.py, test_services.py, test_consumers.py, etc. → integration
    - test_store.py, test_queries.py, test_validators.py, etc. → unit
    - Unmatched files → integration

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_consumers.py",
        "test_handlers.py",
        "test_backends.py",
    ]

    unit_patterns = [
        "test_store.py",
        "test_queries.py",
        "test_fanout.py",
        "test_models.py",
        "test_serializers.py",
        "test_validators.py",
        "test_helpers.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Chat Runtime
# =============================================================================


@pytest.fixture(autouse=True)
def reset_chat_runtime():
    """Start every test with an empty store and no live connections."""
    chat_app = apps.get_app_config("chat")
    chat_app.reset()
    yield
    chat_app.reset()


@pytest.fixture
def store():
    """The running app's entity store."""
    from chat.dependencies import get_store

    return get_store()


@pytest.fixture
def fanout():
    """The running app's notification fan-out."""
    from chat.dependencies import get_fanout

    return get_fanout()


@pytest.fixture
def services(store, fanout):
    """Service bundle bound to the app's store and fan-out."""
    from chat.dependencies import build_services

    return build_services(store, fanout)


# =============================================================================
# Identity Tokens & API Clients
# =============================================================================


@pytest.fixture
def api_client() -> APIClient:
    """Return unauthenticated API client."""
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as a stored user.

    Usage:
        def test_example(client_for, alice):
            response = client_for(alice).get("/api/v1/users/me/")
    """

    from authentication.tests.factories import make_identity_token

    def _client_for(user) -> APIClient:
        client = APIClient()
        token = make_identity_token(user.uid, email=user.email)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client

    return _client_for
