"""
Integration test fixtures.

These tests require a running backend with MongoDB and Redis.
Mark with @pytest.mark.integration to skip in normal test runs.
"""
import os
import time

import httpx
import pytest


@pytest.fixture
def live_backend_url():
    """Get base URL for live backend tests (if running)."""
    return os.getenv("BACKEND_URL", "http://localhost:8000")


@pytest.fixture
def test_timeout():
    """Timeout for network requests in integration tests."""
    return 30


@pytest.fixture
def unique_suffix():
    """Suffix that keeps emails unique across runs."""
    return str(int(time.time() * 1000))


@pytest.fixture
def skip_if_no_backend(live_backend_url, test_timeout):
    """Skip test if the backend is not reachable."""
    try:
        httpx.get(f"{live_backend_url}/health", timeout=test_timeout)
    except httpx.ConnectError:
        pytest.skip("Backend not running")
