"""
Authentication router for registration, login, token refresh and
password/email recovery flows.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from skalebitz.core.rate_limit import check_rate_limit
from skalebitz.dependencies.auth import get_auth_service, get_current_active_user
from skalebitz.models.user import User
from skalebitz.schemas.auth import (
    ChangePasswordRequest,
    EmailVerificationRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    RegisterResponse,
    TokenRefreshResponse,
    UserInfoResponse,
)
from skalebitz.services.auth_service import AuthService, user_to_info_response

RESET_REQUEST_MESSAGE = "If that email is registered, a reset link has been sent."


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_auth_rate_limit(request: Request) -> None:
    """Per-IP request budget shared by every /auth endpoint."""
    if not await check_rate_limit(get_client_ip(request), "auth"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
        )


router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    dependencies=[Depends(enforce_auth_rate_limit)],
)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new investor or MSME",
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account and receive an access token.

    - **name**: Display name
    - **email**: Valid email address (must be unique)
    - **password**: Password (minimum 8 characters)
    - **password_confirm**: Must match password
    - **account_type**: `investor` or `msme`
    """
    try:
        return await auth_service.register_user(body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login and get access token",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password to receive a JWT token.

    Send the token as `Authorization: Bearer <token>` (or `?token=`).

    Accounts are locked temporarily after repeated failures.
    """
    try:
        return await auth_service.login(body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post(
    "/refresh",
    response_model=TokenRefreshResponse,
    summary="Refresh access token",
)
async def refresh_token(
    current_user: Annotated[User, Depends(get_current_active_user)],
    auth_service: AuthService = Depends(get_auth_service),
):
    """Issue a fresh JWT for the signed-in user."""
    try:
        result = await auth_service.refresh_token(current_user.id)
        return TokenRefreshResponse(
            access_token=result.access_token,
            token_type=result.token_type,
            expires_in=result.expires_in,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


@router.get(
    "/me",
    response_model=UserInfoResponse,
    summary="Get current user info",
)
async def get_current_user_info(
    current_user: Annotated[User, Depends(get_current_active_user)],
):
    """Get the signed-in user, including balance and deal id."""
    return user_to_info_response(current_user.model_dump())


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    auth_service: AuthService = Depends(get_auth_service),
):
    """Change the password after confirming the current one."""
    if not body.passwords_match():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match",
        )
    try:
        result = await auth_service.change_password(
            current_user.id, body.current_password, body.new_password
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return MessageResponse(message=result["message"])


@router.post(
    "/password-reset/request",
    response_model=MessageResponse,
    summary="Request a password reset link",
)
async def request_password_reset(
    body: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Always answers the same way so account existence is not revealed."""
    await auth_service.request_password_reset(body.email)
    return MessageResponse(message=RESET_REQUEST_MESSAGE)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Set a new password with a reset token",
)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Consume a reset token and set the new password."""
    if not body.passwords_match():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match",
        )
    try:
        await auth_service.reset_password(body.token, body.new_password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return MessageResponse(message="Password has been reset")


@router.post(
    "/verify-email",
    response_model=UserInfoResponse,
    summary="Confirm a pending email change",
)
async def verify_email(
    body: EmailVerificationRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Apply the pending email for the account that owns the token."""
    try:
        return await auth_service.verify_email(body.token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
