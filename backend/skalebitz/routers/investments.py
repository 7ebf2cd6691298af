"""
Investments router for investor history and owner-side refunds/repayments.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from skalebitz.database.connections import get_mongo_client
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.dependencies.roles import require_investor, require_msme
from skalebitz.models.investment import InvestmentStatus
from skalebitz.models.user import User
from skalebitz.schemas.investment import InvestmentHistory, InvestmentResponse
from skalebitz.services.investment_service import InvestmentService

router = APIRouter(prefix="/investments", tags=["Investments"])


async def get_investment_service() -> InvestmentService:
    """Dependency to get InvestmentService instance."""
    client = await get_mongo_client()
    return InvestmentService(client[deals_db.DB_NAME], client[auth_db.DB_NAME])


@router.get(
    "",
    response_model=InvestmentHistory,
    summary="List your investments",
)
async def list_investments(
    current_user: Annotated[User, Depends(require_investor())],
    investment_status: Optional[InvestmentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    investment_service: InvestmentService = Depends(get_investment_service),
):
    """Paginated investment history of the signed-in investor."""
    return await investment_service.list_investments(
        current_user.id,
        page=page,
        page_size=page_size,
        status=investment_status.value if investment_status else None,
    )


async def _owner_action(action, investment_id: str, owner_id: str) -> InvestmentResponse:
    try:
        result = await action(investment_id, owner_id)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Investment not found",
        )
    return result


@router.post(
    "/{investment_id}/refund",
    response_model=InvestmentResponse,
    summary="Refund an investment (deal owner)",
)
async def refund_investment(
    investment_id: str,
    current_user: Annotated[User, Depends(require_msme())],
    investment_service: InvestmentService = Depends(get_investment_service),
):
    """Return an active investment to the investor and free the capacity."""
    return await _owner_action(investment_service.refund_investment, investment_id, current_user.id)


@router.post(
    "/{investment_id}/complete",
    response_model=InvestmentResponse,
    summary="Mark an investment repaid (deal owner)",
)
async def complete_investment(
    investment_id: str,
    current_user: Annotated[User, Depends(require_msme())],
    investment_service: InvestmentService = Depends(get_investment_service),
):
    """Mark an active investment as repaid and return the principal."""
    return await _owner_action(investment_service.complete_investment, investment_id, current_user.id)
