"""
Pydantic models for MongoDB documents.
"""
from skalebitz.models.user import User, AccountType, UserStatus
from skalebitz.models.deal import Deal, DealStatus, Cashflow, CashflowStatus, MonthlyFinancials
from skalebitz.models.investment import Investment, InvestmentStatus

__all__ = [
    "User",
    "AccountType",
    "UserStatus",
    "Deal",
    "DealStatus",
    "Cashflow",
    "CashflowStatus",
    "MonthlyFinancials",
    "Investment",
    "InvestmentStatus",
]
