"""
Frontend test fixtures and mocks.

Mocks Streamlit session_state and API client for isolated testing.
"""
import sys
from pathlib import Path

import pytest
from unittest.mock import MagicMock, patch

# Views and utils import each other as top-level modules (streamlit run from frontend/)
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "frontend"))


class MockSessionState(dict):
    """Mock st.session_state that behaves like both dict and attribute access."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Default state
        self.update({
            "is_authenticated": False,
            "user_id": None,
            "user": None,
            "account_type": None,
            "token": None,
            "selected_deal_id": None,
            "nav_page": None,
            "nav_override": None,
        })

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"'SessionState' has no attribute '{name}'")

    def __setattr__(self, name, value):
        self[name] = value


@pytest.fixture
def mock_session_state():
    """Provide a mock session state for testing."""
    return MockSessionState()


@pytest.fixture
def authenticated_session_state():
    """Provide an authenticated mock session state."""
    state = MockSessionState()
    state.update({
        "is_authenticated": True,
        "user_id": "user-123",
        "account_type": "investor",
        "token": "test-jwt-token",
    })
    return state


@pytest.fixture
def mock_streamlit(mock_session_state):
    """Patch streamlit module with mocks."""
    with patch.dict("sys.modules", {"streamlit": MagicMock()}):
        st_mock = sys.modules["streamlit"]
        st_mock.session_state = mock_session_state
        yield st_mock


@pytest.fixture
def api_client(mock_streamlit):
    """
    APIClient bound to the mocked streamlit module.

    utils.api is re-imported so it picks up the patched `streamlit`.
    """
    sys.modules.pop("utils.api", None)
    from utils.api import APIClient
    yield APIClient("http://api.test")
    sys.modules.pop("utils.api", None)


def make_response(status_code: int, json_data=None, text: str = None):
    """Build a fake requests.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    if text is not None:
        resp.text = text
        resp.json.side_effect = ValueError("not json")
    else:
        resp.text = "" if json_data is None else "json"
    return resp


@pytest.fixture
def fake_response():
    """Factory for fake requests responses."""
    return make_response


@pytest.fixture
def mock_api_responses():
    """Common API response fixtures."""
    return {
        "health_ok": {"status": 200, "data": {"status": "healthy"}},
        "login_success": {
            "status": 200,
            "data": {
                "access_token": "jwt-token-abc123",
                "token_type": "bearer",
                "expires_in": 86400,
                "user": {"id": "user-123", "email": "ada@example.com", "account_type": "investor"},
            },
        },
        "login_invalid": {
            "status": 401,
            "data": {"detail": "Invalid email or password"},
        },
        "validation_error": {
            "status": 422,
            "data": {"detail": [{"loc": ["body", "amount"], "msg": "Field required"}]},
        },
        "connection_error": {"status": 0, "error": "Cannot connect to backend"},
    }


@pytest.fixture
def sample_deal():
    """Sample deal data for testing."""
    return {
        "id": "deal-123",
        "owner_id": "msme-1",
        "name": "Kofi Textiles Working Capital",
        "sector": "Manufacturing",
        "location": "Accra, Ghana",
        "facility_size": 10000.0,
        "utilized_amount": 2500.0,
        "remaining_capacity": 7500.0,
        "utilization": 0.25,
        "target_yield": 0.12,
        "status": "open",
        "created_at": "2025-01-01T00:00:00Z",
    }


@pytest.fixture
def sample_investments():
    """Sample investment history for testing."""
    return [
        {
            "id": "inv-1",
            "deal_id": "deal-123",
            "deal_name": "Kofi Textiles Working Capital",
            "deal_sector": "Manufacturing",
            "amount": 1500.0,
            "status": "active",
            "created_at": "2025-01-15T10:00:00Z",
        },
        {
            "id": "inv-2",
            "deal_id": "deal-456",
            "deal_name": "Ama Farms Inputs",
            "deal_sector": "Agriculture",
            "amount": 500.0,
            "status": "refunded",
            "created_at": "2025-01-16T14:30:00Z",
        },
    ]
