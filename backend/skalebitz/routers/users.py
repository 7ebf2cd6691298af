"""
Users router for profiles, balance top-ups and account deletion.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from skalebitz.database.connections import get_mongo_client
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.dependencies.auth import get_current_active_user
from skalebitz.dependencies.roles import require_investor
from skalebitz.models.user import User
from skalebitz.schemas.auth import UserInfoResponse
from skalebitz.schemas.user import PublicProfileResponse, TopUpRequest, UserUpdate
from skalebitz.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


async def get_user_service() -> UserService:
    """Dependency to get UserService instance."""
    client = await get_mongo_client()
    return UserService(client[auth_db.DB_NAME], client[deals_db.DB_NAME])


@router.patch(
    "/me",
    response_model=UserInfoResponse,
    summary="Update profile",
)
async def update_profile(
    body: UserUpdate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    user_service: UserService = Depends(get_user_service),
):
    """
    Update name, about and avatar. A new email is stored as
    `pending_email` and applied once verified via `/auth/verify-email`.
    """
    try:
        user = await user_service.update_profile(current_user.id, body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete account",
)
async def delete_account(
    current_user: Annotated[User, Depends(get_current_active_user)],
    user_service: UserService = Depends(get_user_service),
):
    """Delete the signed-in account once no money is tied up in deals."""
    try:
        deleted = await user_service.delete_account(current_user.id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )


@router.post(
    "/me/top-up",
    response_model=UserInfoResponse,
    summary="Top up investor balance",
)
async def top_up(
    body: TopUpRequest,
    current_user: Annotated[User, Depends(require_investor())],
    user_service: UserService = Depends(get_user_service),
):
    """Credit funds to the investor balance used for allocations."""
    try:
        user = await user_service.top_up(current_user.id, body.amount)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get(
    "/{user_id}",
    response_model=PublicProfileResponse,
    summary="Get public profile",
)
async def get_profile(
    user_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    user_service: UserService = Depends(get_user_service),
):
    """Public profile of any user. Email is only included for yourself."""
    profile = await user_service.get_public_profile(user_id, viewer_id=current_user.id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return profile
