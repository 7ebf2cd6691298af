"""
Investment service for investor history, refunds and repayments.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from skalebitz.core.utils import to_object_id, utcnow
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.models.deal import DealStatus
from skalebitz.models.investment import InvestmentStatus
from skalebitz.schemas.investment import InvestmentHistory, InvestmentResponse
from skalebitz.services.deal_service import FUNDED_THRESHOLD, investment_to_response

logger = logging.getLogger(__name__)


class InvestmentService:
    """Service for operations on existing investments."""

    def __init__(self, db: AsyncIOMotorDatabase, auth_db_instance: AsyncIOMotorDatabase):
        """Initialize with deals database and auth database."""
        self.db = db
        self.deals = db[deals_db.Collections.DEALS]
        self.investments = db[deals_db.Collections.INVESTMENTS]
        self.users = auth_db_instance[auth_db.Collections.USERS]

    async def list_investments(
        self,
        investor_id: str,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
    ) -> InvestmentHistory:
        """Paginated investments of one investor, newest first."""
        query: dict = {"investor_id": investor_id}
        if status:
            query["status"] = status

        total = await self.investments.count_documents(query)

        skip = (page - 1) * page_size
        cursor = self.investments.find(query).sort("created_at", -1).skip(skip).limit(page_size)
        investments = await cursor.to_list(length=page_size)

        deal_ids = list({to_object_id(i["deal_id"]) for i in investments} - {None})
        deals = {}
        if deal_ids:
            deal_cursor = self.deals.find({"_id": {"$in": deal_ids}}, {"name": 1, "sector": 1})
            deals = {str(d["_id"]): d for d in await deal_cursor.to_list(length=None)}

        return InvestmentHistory(
            investments=[investment_to_response(i, deals.get(i["deal_id"])) for i in investments],
            total=total,
            page=page,
            page_size=page_size,
            has_more=(skip + len(investments)) < total,
        )

    async def refund_investment(
        self, investment_id: str, owner_id: str
    ) -> Optional[InvestmentResponse]:
        """
        Refund an active investment back to its investor.

        Capacity is released on the deal (a funded deal reopens) and the
        amount is credited to the investor balance.

        Raises:
            PermissionError: If the caller does not own the deal
            ValueError: If the investment is no longer active
        """
        investment_doc, deal_doc = await self._load_owned(investment_id, owner_id)
        if investment_doc is None:
            return None

        now = utcnow()
        refunded = await self._transition(investment_doc, InvestmentStatus.REFUNDED, now)
        amount = refunded["amount"]

        await self.deals.update_one(
            {"_id": deal_doc["_id"]},
            {
                "$inc": {"utilized_amount": -amount, "remaining_capacity": amount},
                "$set": {"updated_at": now},
            },
        )
        await self.deals.update_one(
            {"_id": deal_doc["_id"], "status": DealStatus.FUNDED.value, "remaining_capacity": {"$gte": FUNDED_THRESHOLD}},
            {"$set": {"status": DealStatus.OPEN.value}},
        )
        await self.users.update_one(
            {"_id": to_object_id(refunded["investor_id"])},
            {"$inc": {"balance": amount}, "$set": {"updated_at": now}},
        )

        logger.info(
            "Refunded investment %s (%s) to investor %s", investment_id, amount, refunded["investor_id"]
        )
        return investment_to_response(refunded, deal_doc)

    async def complete_investment(
        self, investment_id: str, owner_id: str
    ) -> Optional[InvestmentResponse]:
        """
        Mark an active investment as repaid. The principal returns to the
        investor balance; the facility stays utilized.

        Raises:
            PermissionError: If the caller does not own the deal
            ValueError: If the investment is no longer active
        """
        investment_doc, deal_doc = await self._load_owned(investment_id, owner_id)
        if investment_doc is None:
            return None

        now = utcnow()
        completed = await self._transition(investment_doc, InvestmentStatus.COMPLETED, now)
        await self.users.update_one(
            {"_id": to_object_id(completed["investor_id"])},
            {"$inc": {"balance": completed["amount"]}, "$set": {"updated_at": now}},
        )

        logger.info("Investment %s repaid to investor %s", investment_id, completed["investor_id"])
        return investment_to_response(completed, deal_doc)

    # ==================== Helper Methods ====================

    async def _load_owned(self, investment_id: str, owner_id: str) -> tuple[Optional[dict], Optional[dict]]:
        oid = to_object_id(investment_id)
        if oid is None:
            return None, None

        investment_doc = await self.investments.find_one({"_id": oid})
        if not investment_doc:
            return None, None

        deal_doc = await self.deals.find_one({"_id": to_object_id(investment_doc["deal_id"])})
        if not deal_doc:
            return None, None
        if deal_doc["owner_id"] != owner_id:
            raise PermissionError("Only the deal owner can manage its investments")

        return investment_doc, deal_doc

    async def _transition(self, investment_doc: dict, new_status: InvestmentStatus, now) -> dict:
        """Move an investment out of `active`; only one caller can win."""
        updated = await self.investments.find_one_and_update(
            {"_id": investment_doc["_id"], "status": InvestmentStatus.ACTIVE.value},
            {"$set": {"status": new_status.value, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise ValueError("Investment is not active")
        return updated
