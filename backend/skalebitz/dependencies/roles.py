"""
Account-type access control dependencies.
"""
from typing import Callable

from fastapi import Depends, HTTPException, status

from skalebitz.dependencies.auth import get_current_active_user
from skalebitz.models.user import AccountType, User


def require_account_types(*allowed_types: AccountType) -> Callable:
    """
    Dependency factory restricting a route to some account types.

    Usage:
        @router.post("/deals")
        async def create(user: User = Depends(require_account_types(AccountType.MSME))):
            ...
    """
    allowed = {t.value for t in allowed_types}

    async def account_type_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        account_type = getattr(current_user.account_type, "value", current_user.account_type)
        if account_type not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires a {' or '.join(sorted(allowed))} account",
            )
        return current_user

    return account_type_checker


def require_investor() -> Callable:
    """Shortcut dependency for investor-only routes."""
    return require_account_types(AccountType.INVESTOR)


def require_msme() -> Callable:
    """Shortcut dependency for MSME-only routes."""
    return require_account_types(AccountType.MSME)
