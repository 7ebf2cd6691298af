"""
Authentication dependencies for route protection.
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from skalebitz.core.security import decode_token
from skalebitz.database.connections import get_mongo_client
from skalebitz.database.databases import auth_db
from skalebitz.models.user import User, UserStatus
from skalebitz.services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_auth_service() -> AuthService:
    """Dependency to get AuthService instance."""
    client = await get_mongo_client()
    db = client[auth_db.DB_NAME]
    return AuthService(db)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    token: Annotated[Optional[str], Query(description="JWT access token")] = None,
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    The token is read from `Authorization: Bearer xxx`, falling back to
    the `?token=xxx` query parameter.

    Raises:
        HTTPException 401: If token is missing, invalid or expired
        HTTPException 401: If user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = credentials.credentials if credentials else token
    if not raw_token:
        raise credentials_exception

    try:
        payload = decode_token(raw_token)
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await auth_service.get_user_by_id(user_id)

    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Dependency to ensure the current user is active (not disabled).

    Raises:
        HTTPException 403: If user account is disabled
    """
    if current_user.status == UserStatus.DISABLED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )
    return current_user


# Type alias for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_active_user)]
