"""
Service layer for business logic.
"""
from skalebitz.services.auth_service import AuthService
from skalebitz.services.user_service import UserService
from skalebitz.services.deal_service import DealService
from skalebitz.services.investment_service import InvestmentService
from skalebitz.services.stats_service import StatsService

__all__ = [
    "AuthService",
    "UserService",
    "DealService",
    "InvestmentService",
    "StatsService",
]
