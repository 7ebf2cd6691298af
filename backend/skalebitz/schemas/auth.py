"""
Authentication request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from skalebitz.models.user import AccountType, UserStatus


class UserInfoResponse(BaseModel):
    """Current user information response."""
    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    name: str = Field(..., description="Display name")
    account_type: AccountType = Field(..., description="investor or msme")
    status: UserStatus = Field(..., description="Account status")
    balance: float = Field(0.0, description="Funds available for allocation")
    deal_id: Optional[str] = Field(None, description="MSME's own deal")
    about: Optional[str] = None
    avatar_url: Optional[str] = None
    pending_email: Optional[str] = Field(None, description="Email change awaiting verification")
    created_at: datetime = Field(..., description="Account creation timestamp")


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class LoginResponse(BaseModel):
    """Login response with JWT token."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserInfoResponse = Field(..., description="Authenticated user")


class RegisterRequest(BaseModel):
    """Registration request body."""
    name: str = Field(..., min_length=1, max_length=120, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        min_length=8,
        description="User password (min 8 characters)"
    )
    password_confirm: str = Field(..., description="Password confirmation")
    account_type: AccountType = Field(..., description="investor or msme")

    def passwords_match(self) -> bool:
        """Check if password and confirmation match."""
        return self.password == self.password_confirm


class RegisterResponse(LoginResponse):
    """Registration response - the new account is signed in straight away."""
    message: str = Field(
        default="Registration successful",
        description="Success message"
    )


class TokenRefreshResponse(BaseModel):
    """Token refresh response."""
    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")


class TokenPayload(BaseModel):
    """Decoded JWT token payload."""
    sub: str = Field(..., description="Subject (user ID)")
    email: str = Field(..., description="User email")
    account_type: str = Field(..., description="investor or msme")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(..., description="Issued at time")


class ChangePasswordRequest(BaseModel):
    """Change password for the signed-in user."""
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")
    new_password_confirm: str = Field(..., description="New password confirmation")

    def passwords_match(self) -> bool:
        return self.new_password == self.new_password_confirm


class PasswordResetRequest(BaseModel):
    """Ask for a password reset link."""
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Set a new password with a reset token."""
    token: str = Field(..., min_length=1, description="Token from the reset link")
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")
    new_password_confirm: str = Field(..., description="New password confirmation")

    def passwords_match(self) -> bool:
        return self.new_password == self.new_password_confirm


class EmailVerificationRequest(BaseModel):
    """Confirm a pending email change."""
    token: str = Field(..., min_length=1, description="Token from the verification link")


class MessageResponse(BaseModel):
    """Generic acknowledgement."""
    message: str
