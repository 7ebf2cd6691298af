"""
Request and response schemas for API endpoints.
"""
from skalebitz.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    TokenRefreshResponse,
    TokenPayload,
    UserInfoResponse,
)
from skalebitz.schemas.user import PublicProfileResponse, UserUpdate, TopUpRequest
from skalebitz.schemas.investment import InvestmentResponse, InvestmentHistory
from skalebitz.schemas.deal import (
    DealCreate,
    DealUpdate,
    DealResponse,
    DealDetailResponse,
    DealList,
    AllocationRequest,
    AllocationResponse,
)
from skalebitz.schemas.stats import PlatformOverview, InvestorDashboard, MsmeDashboard

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TokenRefreshResponse",
    "TokenPayload",
    "UserInfoResponse",
    # User
    "PublicProfileResponse",
    "UserUpdate",
    "TopUpRequest",
    # Investment
    "InvestmentResponse",
    "InvestmentHistory",
    # Deal
    "DealCreate",
    "DealUpdate",
    "DealResponse",
    "DealDetailResponse",
    "DealList",
    "AllocationRequest",
    "AllocationResponse",
    # Stats
    "PlatformOverview",
    "InvestorDashboard",
    "MsmeDashboard",
]
