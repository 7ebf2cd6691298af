"""
Deals router for the marketplace listing, deal management and allocation.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from skalebitz.database.connections import get_mongo_client
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.dependencies.auth import get_current_active_user
from skalebitz.dependencies.roles import require_investor, require_msme
from skalebitz.models.deal import DealStatus
from skalebitz.models.user import User
from skalebitz.schemas.deal import (
    AllocationRequest,
    AllocationResponse,
    DealCreate,
    DealDetailResponse,
    DealInvestorResponse,
    DealList,
    DealUpdate,
)
from skalebitz.services.deal_service import DealService

router = APIRouter(prefix="/deals", tags=["Deals"])


async def get_deal_service() -> DealService:
    """Dependency to get DealService instance."""
    client = await get_mongo_client()
    return DealService(client[deals_db.DB_NAME], client[auth_db.DB_NAME])


def _deal_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Deal not found",
    )


# ==================== Listing ====================


@router.get(
    "",
    response_model=DealList,
    summary="List deals",
)
async def list_deals(
    current_user: Annotated[User, Depends(get_current_active_user)],
    sector: Optional[str] = Query(None, description="Filter by sector"),
    deal_status: Optional[DealStatus] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    deal_service: DealService = Depends(get_deal_service),
):
    """List marketplace deals, newest first, with remaining capacity."""
    return await deal_service.list_deals(
        page=page,
        page_size=page_size,
        sector=sector,
        status=deal_status.value if deal_status else None,
    )


@router.get(
    "/{deal_id}",
    response_model=DealDetailResponse,
    summary="Get deal detail",
)
async def get_deal(
    deal_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    deal_service: DealService = Depends(get_deal_service),
):
    """Deal detail with capacity, next cashflow and financial metrics."""
    deal = await deal_service.get_deal(deal_id)
    if not deal:
        raise _deal_not_found()
    return deal


# ==================== Deal management ====================


@router.post(
    "",
    response_model=DealDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create your deal (MSME)",
)
async def create_deal(
    body: DealCreate,
    current_user: Annotated[User, Depends(require_msme())],
    deal_service: DealService = Depends(get_deal_service),
):
    """
    Create the MSME's deal listing.

    - **facility_size**: Lending limit (defaults to the platform default)
    - **target_yield**: Annual yield as a fraction (0.12 = 12%)
    """
    try:
        return await deal_service.create_deal(current_user, body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.patch(
    "/{deal_id}",
    response_model=DealDetailResponse,
    summary="Update your deal (MSME)",
)
async def update_deal(
    deal_id: str,
    body: DealUpdate,
    current_user: Annotated[User, Depends(require_msme())],
    deal_service: DealService = Depends(get_deal_service),
):
    """Update an owned deal. Facility size cannot drop below the utilized amount."""
    try:
        deal = await deal_service.update_deal(deal_id, current_user.id, body)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not deal:
        raise _deal_not_found()
    return deal


@router.get(
    "/{deal_id}/investors",
    response_model=list[DealInvestorResponse],
    summary="List investors in your deal (MSME)",
)
async def list_deal_investors(
    deal_id: str,
    current_user: Annotated[User, Depends(require_msme())],
    deal_service: DealService = Depends(get_deal_service),
):
    """Investor roster with amounts and status. Only the deal owner may view it."""
    try:
        roster = await deal_service.list_deal_investors(deal_id, current_user.id)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    if roster is None:
        raise _deal_not_found()
    return roster


# ==================== Allocation ====================


@router.post(
    "/{deal_id}/allocate",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Allocate funds to a deal (investor)",
)
async def allocate(
    deal_id: str,
    body: AllocationRequest,
    current_user: Annotated[User, Depends(require_investor())],
    deal_service: DealService = Depends(get_deal_service),
):
    """
    Allocate part of your balance to a deal.

    - **amount**: Positive, at most 2 decimal places, within the deal's
      remaining capacity and your balance
    - **idempotency_key**: Optional; retries with the same key return the
      original allocation
    """
    try:
        result = await deal_service.allocate(deal_id, current_user, body)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not result:
        raise _deal_not_found()
    return result
