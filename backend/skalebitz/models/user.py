"""
User model for authentication database.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AccountType(str, Enum):
    """Which side of the marketplace an account is on."""
    INVESTOR = "investor"
    MSME = "msme"


class UserStatus(str, Enum):
    """User account status."""
    ACTIVE = "active"
    DISABLED = "disabled"


class User(BaseModel):
    """
    User document model for MongoDB auth_db.users collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    email: EmailStr = Field(..., description="Unique email address")
    hashed_password: str = Field(..., description="Bcrypt hashed password")
    name: str = Field(..., description="Display name")
    account_type: AccountType = Field(..., description="investor or msme")
    status: UserStatus = Field(
        default=UserStatus.ACTIVE,
        description="Account status"
    )
    balance: float = Field(
        default=0.0,
        description="Funds available for allocation (investors)"
    )
    deal_id: Optional[str] = Field(None, description="Deal owned by this MSME")
    about: Optional[str] = Field(None, description="Profile bio")
    avatar_url: Optional[str] = Field(None, description="Profile picture URL")
    pending_email: Optional[str] = Field(
        None,
        description="New email awaiting verification"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation timestamp"
    )
    updated_at: Optional[datetime] = Field(None, description="Last profile update")

    class Config:
        populate_by_name = True
        use_enum_values = True
