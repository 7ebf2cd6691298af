"""
Dashboard statistics schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from skalebitz.models.deal import Cashflow


class PlatformOverview(BaseModel):
    """Public platform totals."""
    total_deals: int = 0
    open_deals: int = 0
    total_facility: float = 0.0
    total_utilized: float = 0.0
    total_remaining: float = 0.0
    investor_count: int = 0
    msme_count: int = 0
    total_invested: float = 0.0
    average_target_yield: Optional[float] = None


class SectorAllocation(BaseModel):
    """Share of an investor's book in one sector."""
    sector: str
    amount: float
    percent: float = Field(..., description="Fraction of total invested")


class RecentDeal(BaseModel):
    """Recent allocation shown on the investor dashboard."""
    investment_id: str
    deal_id: str
    deal_name: Optional[str] = None
    sector: Optional[str] = None
    amount: float
    status: str
    target_yield: Optional[float] = None
    created_at: datetime


class ActivityItem(BaseModel):
    """Investor activity feed entry."""
    type: str = Field(..., description="allocation, refund or repayment")
    deal_id: str
    deal_name: Optional[str] = None
    amount: float
    timestamp: datetime


class InvestorDashboard(BaseModel):
    """Investor dashboard summary."""
    balance: float = 0.0
    total_invested: float = 0.0
    average_yield: Optional[float] = Field(None, description="Amount weighted target yield")
    active_deals: int = 0
    allocation: list[SectorAllocation] = Field(default_factory=list)
    recent_deals: list[RecentDeal] = Field(default_factory=list)
    activity: list[ActivityItem] = Field(default_factory=list)


class InvestorDealHolding(BaseModel):
    """A deal the investor holds, with their invested amount."""
    deal_id: str
    name: str
    sector: str
    target_yield: float
    status: str
    invested_amount: float
    investment_count: int
    remaining_capacity: float
    facility_size: float


class MsmeDashboard(BaseModel):
    """MSME dashboard summary for its own deal."""
    has_deal: bool = False
    deal_id: Optional[str] = None
    deal_name: Optional[str] = None
    status: Optional[str] = None
    facility_size: float = 0.0
    utilized_amount: float = 0.0
    remaining_capacity: float = 0.0
    utilization: float = 0.0
    investor_count: int = 0
    total_raised: float = 0.0
    recent_investments: list[RecentDeal] = Field(default_factory=list)
    next_cashflow: Optional[Cashflow] = None
