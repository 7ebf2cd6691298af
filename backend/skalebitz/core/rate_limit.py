"""
Rate limiting and login lockout backed by Redis.

Counters use INCR with an EXPIRE set on the first hit, giving a fixed
window per key. When Redis is unreachable every check fails open and a
warning is logged.
"""
import logging
from typing import Optional

from redis.exceptions import RedisError

from skalebitz.config import get_settings
from skalebitz.database.connections import get_redis_client

logger = logging.getLogger(__name__)


def _rate_limit_key(endpoint: str, ip: str) -> str:
    return f"ratelimit:{endpoint}:{ip}"


def _failed_login_key(user_id: str) -> str:
    return f"failed_login:{user_id}"


def _lockout_key(user_id: str) -> str:
    return f"lockout:{user_id}"


async def check_rate_limit(
    ip: str,
    endpoint: str,
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
) -> bool:
    """
    Count a request and report whether it is still within the limit.

    Args:
        ip: Client IP address
        endpoint: Endpoint identifier (e.g., "auth")
        limit: Max requests allowed (defaults to config value)
        window_seconds: Time window in seconds (defaults to config value)

    Returns:
        True if request is allowed, False if rate limited
    """
    settings = get_settings()
    limit = limit or settings.auth_rate_limit_attempts
    window_seconds = window_seconds or settings.auth_rate_limit_window_seconds

    try:
        redis = await get_redis_client()
        key = _rate_limit_key(endpoint, ip)
        current = await redis.incr(key)
        if current == 1:
            await redis.expire(key, window_seconds)
    except (RedisError, OSError) as e:
        logger.warning("Rate limit check skipped, Redis unavailable: %s", e)
        return True

    if current > limit:
        logger.warning("Rate limit exceeded for %s on %s (%d/%d)", ip, endpoint, current, limit)
        return False
    return True


async def increment_failed_login(user_id: str) -> int:
    """
    Increment failed login attempts counter for a user.

    Returns:
        Current number of failed attempts (0 when Redis is unavailable)
    """
    settings = get_settings()
    try:
        redis = await get_redis_client()
        key = _failed_login_key(user_id)
        count = await redis.incr(key)
        await redis.expire(key, settings.user_lockout_duration_minutes * 60)
        return int(count)
    except (RedisError, OSError) as e:
        logger.warning("Failed login not recorded, Redis unavailable: %s", e)
        return 0


async def check_user_lockout(user_id: str) -> bool:
    """Check if a user is currently locked out due to too many failed attempts."""
    try:
        redis = await get_redis_client()
        return bool(await redis.exists(_lockout_key(user_id)))
    except (RedisError, OSError) as e:
        logger.warning("Lockout check skipped, Redis unavailable: %s", e)
        return False


async def set_user_lockout(user_id: str, duration_minutes: int) -> None:
    """Lock out a user for a specified duration."""
    try:
        redis = await get_redis_client()
        await redis.setex(_lockout_key(user_id), duration_minutes * 60, "1")
        logger.warning("User %s locked out for %d minutes", user_id, duration_minutes)
    except (RedisError, OSError) as e:
        logger.warning("Lockout not set, Redis unavailable: %s", e)


async def reset_failed_attempts(user_id: str) -> None:
    """Reset failed login attempts counter after successful login."""
    try:
        redis = await get_redis_client()
        await redis.delete(_failed_login_key(user_id))
    except (RedisError, OSError) as e:
        logger.warning("Failed login counter not reset, Redis unavailable: %s", e)
