"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures with different group roles
- Group fixtures built through the service layer
- Message fixtures (text and file)
- API client helpers for authenticated requests

Usage:
    def test_example(group, admin_client):
        response = admin_client.get(f"/api/v1/chat/groups/{group.id}/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.content import FileContent, TextContent
from chat.services import MembershipService, MessageService


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db):
    """Create a user who will create and administer the test group."""
    return UserFactory(display_name="Alice Admin")


@pytest.fixture
def member_user(db):
    """Create a user who will be a regular member of the test group."""
    return UserFactory(display_name="Bob Member")


@pytest.fixture
def other_user(db):
    """Create a third member of the test group."""
    return UserFactory(display_name="Carol Other")


@pytest.fixture
def outsider_user(db):
    """Create a user who is not in any test group."""
    return UserFactory(display_name="Dan Outsider")


@pytest.fixture
def staff_user(db):
    """Create a staff user."""
    return UserFactory(is_staff=True)


# =============================================================================
# Group Fixtures
# =============================================================================


@pytest.fixture
def group(db, admin_user, member_user, other_user):
    """
    Create a group through MembershipService.

    admin_user is the only admin; member_user and other_user are members.
    """
    result = MembershipService.create_group(
        creator=admin_user,
        name="Test Group",
        initial_members=[member_user, other_user],
    )
    assert result.success, result.error
    return result.data


@pytest.fixture
def solo_group(db, admin_user):
    """Create a group whose only member is its admin."""
    return MembershipService.create_group(creator=admin_user, name="Solo").data


# =============================================================================
# Message Fixtures
# =============================================================================


@pytest.fixture
def text_message(group, admin_user):
    """Post a text message from the admin; member_user and other_user get receipts."""
    result = MessageService.post_message(
        group.id, admin_user, TextContent(body="Hello, group!")
    )
    assert result.success, result.error
    return result.data


@pytest.fixture
def file_message(group, member_user):
    """Post a file message from member_user."""
    result = MessageService.post_message(
        group.id,
        member_user,
        FileContent(
            payload=b"%PDF-1.4 minutes",
            content_type="application/pdf",
            file_name="minutes.pdf",
        ),
    )
    assert result.success, result.error
    return result.data


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, some_user):
            client = authenticated_client_factory(some_user)
            response = client.get("/api/v1/chat/groups/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def admin_client(authenticated_client_factory, admin_user):
    """API client authenticated as the group admin."""
    return authenticated_client_factory(admin_user)


@pytest.fixture
def member_client(authenticated_client_factory, member_user):
    """API client authenticated as a regular member."""
    return authenticated_client_factory(member_user)


@pytest.fixture
def other_client(authenticated_client_factory, other_user):
    """API client authenticated as the other member."""
    return authenticated_client_factory(other_user)


@pytest.fixture
def outsider_client(authenticated_client_factory, outsider_user):
    """API client authenticated as a user outside the group."""
    return authenticated_client_factory(outsider_user)


@pytest.fixture
def staff_client(authenticated_client_factory, staff_user):
    """API client authenticated as staff."""
    return authenticated_client_factory(staff_user)
