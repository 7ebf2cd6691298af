"""
User profile request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class PublicProfileResponse(BaseModel):
    """Profile as seen by other users. Email is only filled in for the owner."""
    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    account_type: str = Field(..., description="investor or msme")
    about: Optional[str] = None
    avatar_url: Optional[str] = None
    deal_id: Optional[str] = None
    email: Optional[str] = Field(None, description="Only visible on your own profile")
    created_at: datetime = Field(..., description="Account creation date")


class UserUpdate(BaseModel):
    """Profile update request. Only supplied fields are changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[EmailStr] = Field(
        None,
        description="New email address, applied after verification"
    )
    about: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = Field(None, max_length=500)


class TopUpRequest(BaseModel):
    """Add funds to an investor balance."""
    amount: float = Field(..., description="Amount to add")
