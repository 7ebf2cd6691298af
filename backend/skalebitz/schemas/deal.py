"""
Deal request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from skalebitz.models.deal import Cashflow, MonthlyFinancials
from skalebitz.schemas.auth import UserInfoResponse
from skalebitz.schemas.investment import InvestmentResponse


class DealCreate(BaseModel):
    """Create deal request (MSME only)."""
    name: str = Field(..., min_length=1, max_length=200, description="Deal / business name")
    sector: str = Field(..., min_length=1, max_length=100, description="Industry sector")
    facility_size: Optional[float] = Field(
        None,
        gt=0,
        description="Lending limit (defaults to the platform default)"
    )
    target_yield: float = Field(..., ge=0, le=1, description="Target annual yield as a fraction")
    tenor_months: Optional[int] = Field(None, gt=0, le=360)
    risk_label: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    repayment_cadence: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=5000)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    registered_address: Optional[str] = None
    cashflows: list[Cashflow] = Field(default_factory=list)
    monthly_financials: list[MonthlyFinancials] = Field(default_factory=list)
    cash_balance: Optional[float] = None


class DealUpdate(BaseModel):
    """Update deal request. Capacity fields are derived and cannot be set."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sector: Optional[str] = Field(None, min_length=1, max_length=100)
    facility_size: Optional[float] = Field(None, gt=0)
    target_yield: Optional[float] = Field(None, ge=0, le=1)
    tenor_months: Optional[int] = Field(None, gt=0, le=360)
    risk_label: Optional[str] = None
    location: Optional[str] = None
    repayment_cadence: Optional[str] = None
    description: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    registered_address: Optional[str] = None
    cashflows: Optional[list[Cashflow]] = None
    monthly_financials: Optional[list[MonthlyFinancials]] = None
    cash_balance: Optional[float] = None


class DealResponse(BaseModel):
    """Deal summary as shown in the marketplace list."""
    id: str = Field(..., description="Deal ID")
    owner_id: str = Field(..., description="MSME user ID")
    name: str
    sector: str
    facility_size: float = Field(..., description="Lending limit")
    utilized_amount: float = Field(..., description="Allocated so far")
    remaining_capacity: float = Field(..., description="Still available to allocate")
    utilization: float = Field(..., description="utilized_amount / facility_size")
    target_yield: float
    tenor_months: Optional[int] = None
    status: str
    risk_label: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime


class FinancialMetrics(BaseModel):
    """Health indicators derived from reported monthly financials."""
    total_revenue: Optional[float] = None
    total_expenses: Optional[float] = None
    net_profit_loss: Optional[float] = None
    profit_margin: Optional[float] = None
    expense_ratio: Optional[float] = None
    avg_monthly_revenue: Optional[float] = None
    avg_monthly_expenses: Optional[float] = None
    profitability_health: Optional[str] = None
    runway_months: Optional[float] = None
    survival_probability: Optional[float] = None
    ltv_cac_ratio: Optional[float] = None
    marketing_efficiency: Optional[str] = None
    customer_growth_rate: Optional[float] = None
    growth_status: Optional[str] = None
    avg_churn_rate: Optional[float] = None
    retention_health: Optional[str] = None


class DealDetailResponse(DealResponse):
    """Full deal view with contacts, schedule and financial metrics."""
    repayment_cadence: Optional[str] = None
    description: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    registered_address: Optional[str] = None
    cashflows: list[Cashflow] = Field(default_factory=list)
    next_cashflow: Optional[Cashflow] = Field(None, description="First unsettled repayment")
    monthly_financials: list[MonthlyFinancials] = Field(default_factory=list)
    cash_balance: Optional[float] = None
    financial_metrics: FinancialMetrics = Field(default_factory=FinancialMetrics)
    updated_at: Optional[datetime] = None


class DealList(BaseModel):
    """Paginated deal list response."""
    deals: list[DealResponse] = Field(..., description="Deals on this page")
    total: int = Field(..., description="Total number of matching deals")
    page: int = Field(..., description="Current page")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether more pages exist")


class DealInvestorResponse(BaseModel):
    """One row in an MSME's investor roster."""
    investment_id: str
    investor_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    amount: float
    status: str
    created_at: datetime


class AllocationRequest(BaseModel):
    """Investor allocation request."""
    amount: float = Field(..., description="Amount to allocate")
    idempotency_key: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Retrying with the same key returns the original allocation"
    )


class AllocationResponse(BaseModel):
    """Result of an allocation: the investment, the debited investor and the deal."""
    investment: InvestmentResponse
    user: UserInfoResponse
    deal: DealResponse
