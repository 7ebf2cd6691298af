"""
Tests for Redis-backed rate limiting and login lockout.
"""

import pytest
from unittest.mock import AsyncMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError


class TestRateLimit:
    """Tests for check_rate_limit."""

    @pytest.mark.asyncio
    async def test_requests_within_limit_are_allowed(self):
        from skalebitz.core.rate_limit import check_rate_limit

        results = [await check_rate_limit("1.2.3.4", "auth", limit=3, window_seconds=60) for _ in range(3)]

        assert results == [True, True, True]

    @pytest.mark.asyncio
    async def test_request_over_limit_is_rejected(self):
        from skalebitz.core.rate_limit import check_rate_limit

        for _ in range(3):
            await check_rate_limit("1.2.3.4", "auth", limit=3, window_seconds=60)

        assert await check_rate_limit("1.2.3.4", "auth", limit=3, window_seconds=60) is False
        # Other clients keep their own budget
        assert await check_rate_limit("5.6.7.8", "auth", limit=3, window_seconds=60) is True

    @pytest.mark.asyncio
    async def test_window_expiry_is_set(self, mock_redis):
        from skalebitz.core.rate_limit import check_rate_limit

        await check_rate_limit("1.2.3.4", "auth", limit=3, window_seconds=60)

        ttl = await mock_redis.ttl("ratelimit:auth:1.2.3.4")
        assert 0 < ttl <= 60

    @pytest.mark.asyncio
    async def test_fails_open_when_redis_unavailable(self):
        """A Redis outage must not lock everyone out."""
        from skalebitz.core import rate_limit

        broken = AsyncMock()
        broken.incr.side_effect = RedisConnectionError("down")
        with patch.object(rate_limit, "get_redis_client", AsyncMock(return_value=broken)):
            assert await rate_limit.check_rate_limit("1.2.3.4", "auth", limit=1) is True
            assert await rate_limit.increment_failed_login("user-1") == 0


class TestLockout:
    """Tests for failed-login counters and lockout keys."""

    @pytest.mark.asyncio
    async def test_failed_logins_accumulate_and_reset(self):
        from skalebitz.core.rate_limit import increment_failed_login, reset_failed_attempts

        assert await increment_failed_login("user-1") == 1
        assert await increment_failed_login("user-1") == 2

        await reset_failed_attempts("user-1")

        assert await increment_failed_login("user-1") == 1

    @pytest.mark.asyncio
    async def test_lockout_is_set_and_detected(self, mock_redis):
        from skalebitz.core.rate_limit import check_user_lockout, set_user_lockout

        assert await check_user_lockout("user-1") is False

        await set_user_lockout("user-1", duration_minutes=30)

        assert await check_user_lockout("user-1") is True
        assert 0 < await mock_redis.ttl("lockout:user-1") <= 30 * 60


class TestAuthRouteRateLimit:
    """The /auth router answers 429 once the per-IP budget is spent."""

    def test_auth_routes_return_429_when_limited(self, client, assert_error_response):
        with patch("skalebitz.routers.auth.check_rate_limit", AsyncMock(return_value=False)):
            response = client.post("/auth/login", json={"email": "a@example.com", "password": "x"})

        assert_error_response(response, 429, "too many requests")

    def test_other_routes_are_not_rate_limited(self, client):
        with patch("skalebitz.routers.auth.check_rate_limit", AsyncMock(return_value=False)):
            response = client.get("/stats/overview")

        assert response.status_code == 200
