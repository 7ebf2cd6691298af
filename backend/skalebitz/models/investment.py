"""
Investment model for deals database.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class InvestmentStatus(str, Enum):
    """Investment lifecycle status."""
    ACTIVE = "active"
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Investment(BaseModel):
    """
    Investment document model for MongoDB deals_db.investments collection.
    One document per allocation an investor makes to a deal.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    investor_id: str = Field(..., description="Investor user ID")
    deal_id: str = Field(..., description="Deal ID")
    amount: float = Field(..., gt=0, description="Allocated amount")
    status: InvestmentStatus = Field(default=InvestmentStatus.ACTIVE)
    idempotency_key: Optional[str] = Field(
        None,
        description="Client supplied key making retries of the same allocation safe"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        use_enum_values = True
