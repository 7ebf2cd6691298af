"""
Global test fixtures for SkaleBitz.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor)
- Mock Redis (fakeredis)
- App/TestClient wired to the mocks
- Helpers to register users and seed deals through the API
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


DEFAULT_PASSWORD = "SecurePassword123!"


# =============================================================================
# MongoDB / Redis Fixtures
# =============================================================================

@pytest.fixture
def mock_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.

    Constructed synchronously so it can be shared with TestClient's event loop.
    """
    from mongomock_motor import AsyncMongoMockClient
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest.fixture
def mock_redis():
    """Create an async fake Redis client (connects lazily on first command)."""
    import fakeredis
    import fakeredis.aioredis
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(autouse=True)
def isolated_connections(mock_mongo_client, mock_redis):
    """
    Point the connection singletons at the in-memory fakes for every test,
    so nothing ever reaches a real MongoDB or Redis.
    """
    from skalebitz.database import connections

    with patch.object(connections, "_mongo_client", mock_mongo_client), \
         patch.object(connections, "_redis_client", mock_redis):
        yield


@pytest_asyncio.fixture
async def auth_database(mock_mongo_client):
    """Provide mock auth_db database with the real indexes."""
    db = mock_mongo_client["auth_db"]
    await db.users.create_index("email", unique=True)
    yield db


@pytest_asyncio.fixture
async def deals_database(mock_mongo_client):
    """Provide mock deals_db database with the real indexes."""
    from skalebitz.database.databases.deals_db import create_deal_indexes

    db = mock_mongo_client["deals_db"]
    await create_deal_indexes(db)
    yield db


# =============================================================================
# User / Deal Fixtures
# =============================================================================

@pytest.fixture
def investor_registration() -> dict:
    """Registration payload for an investor."""
    return {
        "name": "Ada Investor",
        "email": "ada@example.com",
        "password": DEFAULT_PASSWORD,
        "password_confirm": DEFAULT_PASSWORD,
        "account_type": "investor",
    }


@pytest.fixture
def msme_registration() -> dict:
    """Registration payload for an MSME."""
    return {
        "name": "Kofi Textiles",
        "email": "kofi@example.com",
        "password": DEFAULT_PASSWORD,
        "password_confirm": DEFAULT_PASSWORD,
        "account_type": "msme",
    }


@pytest.fixture
def deal_payload() -> dict:
    """A complete deal creation payload."""
    return {
        "name": "Kofi Textiles Working Capital",
        "sector": "Manufacturing",
        "facility_size": 10000,
        "target_yield": 0.12,
        "tenor_months": 12,
        "risk_label": "B",
        "location": "Accra, Ghana",
        "repayment_cadence": "monthly",
        "contact_name": "Kofi Mensah",
        "contact_email": "finance@kofi.example.com",
        "cashflows": [
            {"due_date": "2025-01-31T00:00:00Z", "amount": 900, "status": "settled"},
            {"due_date": "2025-02-28T00:00:00Z", "amount": 900, "status": "scheduled"},
        ],
        "monthly_financials": [
            {"month": "2024-10", "revenue": 20000, "expenses": 15000, "marketing_spend": 1000,
             "customers": 100, "new_customers": 10, "churned_customers": 2},
            {"month": "2024-11", "revenue": 22000, "expenses": 16000, "marketing_spend": 1000,
             "customers": 108, "new_customers": 10, "churned_customers": 2},
            {"month": "2024-12", "revenue": 24000, "expenses": 17000, "marketing_spend": 1000,
             "customers": 116, "new_customers": 10, "churned_customers": 2},
        ],
        "cash_balance": 50000,
    }


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Create FastAPI app for testing (connections already point at fakes)."""
    from skalebitz.main import app
    return app


@pytest.fixture
def client(app) -> Generator:
    """
    Create a TestClient for the FastAPI app.

    Entering the context runs the lifespan (registry sync + indexes) against
    the mock database.
    """
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict:
    """Bearer header for a token."""
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, payload: dict) -> dict:
    """Register through the API and return the response body."""
    response = client.post("/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def register_user(client):
    """
    Register an extra account and return {"token", "user", "headers"}.

    Usage:
        other = register_user(name="Bea", email="bea@example.com", account_type="investor")
    """
    def _register(name: str, email: str, account_type: str) -> dict:
        body = register(client, {
            "name": name,
            "email": email,
            "password": DEFAULT_PASSWORD,
            "password_confirm": DEFAULT_PASSWORD,
            "account_type": account_type,
        })
        return {
            "token": body["access_token"],
            "user": body["user"],
            "headers": auth_headers(body["access_token"]),
        }

    return _register


@pytest.fixture
def investor(client, investor_registration) -> dict:
    """A registered investor: {"token", "user", "headers"}."""
    body = register(client, investor_registration)
    return {
        "token": body["access_token"],
        "user": body["user"],
        "headers": auth_headers(body["access_token"]),
    }


@pytest.fixture
def funded_investor(client, investor) -> dict:
    """An investor with 50,000 available balance."""
    response = client.post("/users/me/top-up", json={"amount": 50000}, headers=investor["headers"])
    assert response.status_code == 200, response.text
    investor["user"] = response.json()
    return investor


@pytest.fixture
def msme(client, msme_registration) -> dict:
    """A registered MSME without a deal yet."""
    body = register(client, msme_registration)
    return {
        "token": body["access_token"],
        "user": body["user"],
        "headers": auth_headers(body["access_token"]),
    }


@pytest.fixture
def deal(client, msme, deal_payload) -> dict:
    """An open deal owned by the `msme` fixture."""
    response = client.post("/deals", json=deal_payload, headers=msme["headers"])
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def assert_datetime_recent():
    """
    Fixture providing a helper to assert a datetime is recent.

    Usage:
        def test_something(assert_datetime_recent):
            assert_datetime_recent(response["created_at"], max_age_seconds=60)
    """
    def _assert_recent(datetime_str: str, max_age_seconds: int = 60):
        if datetime_str.endswith("Z"):
            datetime_str = datetime_str.replace("Z", "+00:00")

        dt = datetime.fromisoformat(datetime_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        now = datetime.now(timezone.utc)
        age = (now - dt).total_seconds()

        assert age < max_age_seconds, f"Datetime {datetime_str} is {age}s old, expected < {max_age_seconds}s"
        assert age >= -1, f"Datetime {datetime_str} is in the future"

    return _assert_recent
