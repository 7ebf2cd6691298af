"""
Dependencies for dependency injection in routes.
"""
from skalebitz.dependencies.auth import (
    CurrentUser,
    get_auth_service,
    get_current_user,
    get_current_active_user,
)
from skalebitz.dependencies.roles import require_account_types, require_investor, require_msme

__all__ = [
    "CurrentUser",
    "get_auth_service",
    "get_current_user",
    "get_current_active_user",
    "require_account_types",
    "require_investor",
    "require_msme",
]
