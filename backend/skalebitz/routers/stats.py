"""
Stats router for platform and dashboard statistics.
"""
from typing import Annotated

from fastapi import APIRouter, Depends

from skalebitz.database.connections import get_mongo_client
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.dependencies.roles import require_investor, require_msme
from skalebitz.models.user import User
from skalebitz.schemas.stats import (
    InvestorDashboard,
    InvestorDealHolding,
    MsmeDashboard,
    PlatformOverview,
)
from skalebitz.services.stats_service import StatsService

router = APIRouter(prefix="/stats", tags=["Stats"])


async def get_stats_service() -> StatsService:
    """Dependency to get StatsService instance."""
    client = await get_mongo_client()
    return StatsService(client[deals_db.DB_NAME], client[auth_db.DB_NAME])


@router.get(
    "/overview",
    response_model=PlatformOverview,
    summary="Platform overview",
)
async def overview(stats_service: StatsService = Depends(get_stats_service)):
    """Public platform totals. No authentication required."""
    return await stats_service.platform_overview()


@router.get(
    "/investor/dashboard",
    response_model=InvestorDashboard,
    summary="Investor dashboard",
)
async def investor_dashboard(
    current_user: Annotated[User, Depends(require_investor())],
    stats_service: StatsService = Depends(get_stats_service),
):
    """Total invested, weighted yield, active deals, sector split and activity."""
    return await stats_service.investor_dashboard(current_user)


@router.get(
    "/investor/deals",
    response_model=list[InvestorDealHolding],
    summary="Deals you hold",
)
async def investor_deals(
    current_user: Annotated[User, Depends(require_investor())],
    stats_service: StatsService = Depends(get_stats_service),
):
    """Deals the investor has money in, with the invested amount per deal."""
    return await stats_service.investor_deals(current_user.id)


@router.get(
    "/msme/dashboard",
    response_model=MsmeDashboard,
    summary="MSME dashboard",
)
async def msme_dashboard(
    current_user: Annotated[User, Depends(require_msme())],
    stats_service: StatsService = Depends(get_stats_service),
):
    """Capacity, investor count and recent investments for your deal."""
    return await stats_service.msme_dashboard(current_user)
