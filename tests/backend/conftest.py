"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with mocked services and
dependency overrides for testing FastAPI routes in isolation.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest


# =============================================================================
# Current User Fixtures
# =============================================================================

def make_user(account_type: str = "investor", **overrides):
    """Build a User model as get_current_active_user would return it."""
    from skalebitz.models.user import User

    data = {
        "_id": "507f1f77bcf86cd799439011",
        "email": f"{account_type}@example.com",
        "hashed_password": "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.qOZ3q7K9V6X6Hy",
        "name": f"Test {account_type}",
        "account_type": account_type,
        "status": "active",
        "balance": 1000.0,
        "created_at": datetime.now(timezone.utc),
    }
    data.update(overrides)
    return User(**data)


@pytest.fixture
def mock_investor_user():
    """An active investor user."""
    return make_user("investor")


@pytest.fixture
def mock_msme_user():
    """An active MSME user owning a deal."""
    return make_user(
        "msme",
        _id="507f1f77bcf86cd799439012",
        deal_id="507f1f77bcf86cd799439099",
        balance=0.0,
    )


@pytest.fixture
def login_as(app):
    """
    Override the authenticated user for route tests.

    Usage:
        def test_route(client, login_as, mock_investor_user):
            login_as(mock_investor_user)
            response = client.get("/stats/investor/dashboard")
    """
    from skalebitz.dependencies.auth import get_current_user

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def mock_auth_service():
    """
    Create a fully mocked AuthService.

    All methods are AsyncMock, allowing you to configure return values:

        mock_auth_service.register_user.return_value = {...}
    """
    service = MagicMock()
    service.register_user = AsyncMock()
    service.login = AsyncMock()
    service.refresh_token = AsyncMock()
    service.change_password = AsyncMock()
    service.get_user_by_id = AsyncMock()
    service.get_user_by_email = AsyncMock()
    service.request_password_reset = AsyncMock()
    service.reset_password = AsyncMock()
    service.verify_email = AsyncMock()
    return service


@pytest.fixture
def mock_deal_service():
    """Create a fully mocked DealService."""
    service = MagicMock()
    service.list_deals = AsyncMock()
    service.get_deal = AsyncMock()
    service.create_deal = AsyncMock()
    service.update_deal = AsyncMock()
    service.list_deal_investors = AsyncMock()
    service.allocate = AsyncMock()
    return service


@pytest.fixture
def override_service(app):
    """
    Replace a service dependency with a mock.

    Usage:
        override_service(get_deal_service, mock_deal_service)
    """
    def _override(dependency, service):
        app.dependency_overrides[dependency] = lambda: service
        return service

    return _override


# =============================================================================
# Response Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_error_response():
    """Helper to assert error response structure."""
    def _assert(response, status_code: int, detail_contains: str = None):
        assert response.status_code == status_code, response.text
        data = response.json()
        assert "detail" in data
        if detail_contains:
            assert detail_contains.lower() in str(data["detail"]).lower()
    return _assert


@pytest.fixture
def assert_pagination_response():
    """Helper to assert paginated response structure."""
    def _assert(response, items_key: str):
        assert response.status_code == 200, response.text
        data = response.json()
        for key in ("total", "page", "page_size", "has_more", items_key):
            assert key in data
        return data
    return _assert
