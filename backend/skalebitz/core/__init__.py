"""
Core module - Security, rate limiting, logging and other core utilities.
"""
from skalebitz.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_token,
    generate_one_time_token,
    hash_one_time_token,
)
from skalebitz.core.rate_limit import (
    check_rate_limit,
    increment_failed_login,
    check_user_lockout,
    reset_failed_attempts,
)
from skalebitz.core.logging import configure_logging

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "generate_one_time_token",
    "hash_one_time_token",
    "check_rate_limit",
    "increment_failed_login",
    "check_user_lockout",
    "reset_failed_attempts",
    "configure_logging",
]
