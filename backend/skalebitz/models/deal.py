"""
Deal model for deals database.

A deal is an MSME credit facility. `facility_size` is the lending limit,
`utilized_amount` the sum of live allocations, and `remaining_capacity`
is kept equal to their difference on every write.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DealStatus(str, Enum):
    """Deal lifecycle status."""
    OPEN = "open"
    FUNDED = "funded"
    CLOSED = "closed"


class CashflowStatus(str, Enum):
    """Repayment schedule entry status."""
    SCHEDULED = "scheduled"
    SETTLED = "settled"
    LATE = "late"


class Cashflow(BaseModel):
    """One entry in a deal's repayment schedule."""
    due_date: datetime = Field(..., description="When the repayment is due")
    amount: float = Field(..., ge=0, description="Repayment amount")
    status: CashflowStatus = Field(default=CashflowStatus.SCHEDULED)

    class Config:
        use_enum_values = True


class MonthlyFinancials(BaseModel):
    """Reported operating figures for one month."""
    month: str = Field(..., description="Month label, e.g. 2024-01")
    revenue: float = Field(0.0, ge=0)
    expenses: float = Field(0.0, ge=0)
    marketing_spend: Optional[float] = Field(None, ge=0)
    customers: Optional[int] = Field(None, ge=0, description="Customers at month end")
    new_customers: Optional[int] = Field(None, ge=0)
    churned_customers: Optional[int] = Field(None, ge=0)


class Deal(BaseModel):
    """
    Deal document model for MongoDB deals_db.deals collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    owner_id: str = Field(..., description="MSME user ID")
    name: str = Field(..., description="Deal / business name")
    sector: str = Field(..., description="Industry sector")
    facility_size: float = Field(..., gt=0, description="Lending limit")
    utilized_amount: float = Field(default=0.0, ge=0, description="Allocated so far")
    remaining_capacity: float = Field(..., ge=0, description="facility_size - utilized_amount")
    target_yield: float = Field(..., ge=0, description="Target annual yield as a fraction")
    tenor_months: Optional[int] = Field(None, gt=0)
    status: DealStatus = Field(default=DealStatus.OPEN)
    risk_label: Optional[str] = None
    location: Optional[str] = None
    repayment_cadence: Optional[str] = None
    description: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    registered_address: Optional[str] = None
    cashflows: list[Cashflow] = Field(default_factory=list)
    monthly_financials: list[MonthlyFinancials] = Field(default_factory=list)
    cash_balance: Optional[float] = Field(None, description="Cash on hand, used for runway")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        use_enum_values = True
