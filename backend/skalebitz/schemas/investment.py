"""
Investment request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class InvestmentResponse(BaseModel):
    """Investment response."""
    id: str = Field(..., description="Investment ID")
    investor_id: str = Field(..., description="Investor user ID")
    deal_id: str = Field(..., description="Deal ID")
    amount: float = Field(..., description="Allocated amount")
    status: str = Field(..., description="active, completed or refunded")
    idempotency_key: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Optional enrichment from the deal
    deal_name: Optional[str] = None
    deal_sector: Optional[str] = None


class InvestmentHistory(BaseModel):
    """Paginated investment history response."""
    investments: list[InvestmentResponse] = Field(..., description="List of investments")
    total: int = Field(..., description="Total number of investments")
    page: int = Field(..., description="Current page")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether more pages exist")
