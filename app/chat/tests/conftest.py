"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (alice, bob, carol, outsider)
- Chat fixtures (direct and group) built through the services
- connect: registers a FakeConnection for observing fan-out deliveries

Usage:
    def test_example(services, group_chat, alice, connect):
        inbox = connect(alice)
        services.messages.send_message(group_chat.id, bob.id, text="hi")
        assert inbox.events[0]["type"] == "new_message"
"""

import pytest

from authentication.tests.factories import UserFactory
from chat.tests.factories import FakeConnection


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice():
    """Create the user who creates most test chats."""
    return UserFactory(display_name="Alice")


@pytest.fixture
def bob():
    return UserFactory(display_name="Bob")


@pytest.fixture
def carol():
    return UserFactory(display_name="Carol")


@pytest.fixture
def outsider():
    """Create a user who is not a member of any test chat."""
    return UserFactory(display_name="Outsider")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def direct_chat(services, alice, bob):
    """Direct chat between alice and bob (alice opened it)."""
    chat, _ = services.chats.open_direct_chat(alice.id, bob.id)
    return chat


@pytest.fixture
def group_chat(services, alice, bob, carol):
    """Group with alice as admin and bob and carol as members."""
    return services.chats.create_group("Weekend Plans", alice.id, [bob.id, carol.id])


# =============================================================================
# Fan-out Fixtures
# =============================================================================


@pytest.fixture
def connect(fanout):
    """
    Register a FakeConnection for a user and return it.

    Usage:
        inbox = connect(bob)
    """

    def _connect(user, **kwargs) -> FakeConnection:
        connection = FakeConnection(**kwargs)
        fanout.register(user.id, connection)
        return connection

    return _connect
