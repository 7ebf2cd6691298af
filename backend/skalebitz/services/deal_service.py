"""
Deal service for listings, deal management and investor allocation.

Capacity bookkeeping: every write that changes `utilized_amount` moves
`remaining_capacity` by the opposite amount in the same update, and
allocations only match a deal whose `remaining_capacity` still covers the
amount. Two investors racing for the last slice of a facility therefore
cannot both succeed.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from skalebitz.config import get_settings
from skalebitz.core.amounts import format_money, validate_amount
from skalebitz.core.utils import as_utc, to_object_id, utcnow
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.models.deal import CashflowStatus, DealStatus
from skalebitz.models.investment import InvestmentStatus
from skalebitz.models.user import User
from skalebitz.schemas.deal import (
    AllocationRequest,
    AllocationResponse,
    DealCreate,
    DealDetailResponse,
    DealInvestorResponse,
    DealList,
    DealResponse,
    DealUpdate,
)
from skalebitz.schemas.investment import InvestmentResponse
from skalebitz.services.auth_service import user_to_info_response
from skalebitz.services.financial_metrics import compute_financial_metrics

logger = logging.getLogger(__name__)

# Tolerance for float drift accumulated by repeated $inc on cents
CAPACITY_EPSILON = 1e-6

# A deal is funded once less than a cent of capacity is left
FUNDED_THRESHOLD = 0.01


def remaining_capacity_of(deal_doc: dict, default_facility_size: float) -> float:
    """Remaining capacity of a deal document, deriving it for legacy documents."""
    facility = deal_doc.get("facility_size") or default_facility_size
    utilized = deal_doc.get("utilized_amount") or 0.0
    remaining = deal_doc.get("remaining_capacity")
    if remaining is None:
        remaining = facility - utilized
    return max(round(remaining, 2), 0.0)


def next_cashflow_of(cashflows: list[dict]) -> Optional[dict]:
    """First repayment not yet settled, else the first one on the schedule."""
    if not cashflows:
        return None
    ordered = sorted(cashflows, key=lambda c: as_utc(c["due_date"]))
    for cashflow in ordered:
        if cashflow.get("status") != CashflowStatus.SETTLED.value:
            return cashflow
    return ordered[0]


def investment_to_response(doc: dict, deal_doc: Optional[dict] = None) -> InvestmentResponse:
    """Convert MongoDB investment document to InvestmentResponse."""
    return InvestmentResponse(
        id=str(doc["_id"]),
        investor_id=doc["investor_id"],
        deal_id=doc["deal_id"],
        amount=doc["amount"],
        status=doc["status"],
        idempotency_key=doc.get("idempotency_key"),
        created_at=as_utc(doc["created_at"]),
        updated_at=as_utc(doc.get("updated_at")),
        deal_name=deal_doc.get("name") if deal_doc else None,
        deal_sector=deal_doc.get("sector") if deal_doc else None,
    )


class DealService:
    """Service for deal and allocation operations."""

    def __init__(self, db: AsyncIOMotorDatabase, auth_db_instance: AsyncIOMotorDatabase):
        """Initialize with deals database and auth database (for balances)."""
        self.db = db
        self.deals = db[deals_db.Collections.DEALS]
        self.investments = db[deals_db.Collections.INVESTMENTS]
        self.users = auth_db_instance[auth_db.Collections.USERS]
        self.settings = get_settings()

    # ==================== Listing ====================

    async def list_deals(
        self,
        page: int = 1,
        page_size: int = 20,
        sector: Optional[str] = None,
        status: Optional[str] = None,
    ) -> DealList:
        """List deals newest first with optional sector/status filters."""
        query: dict = {}
        if sector:
            query["sector"] = sector
        if status:
            query["status"] = status

        total = await self.deals.count_documents(query)

        skip = (page - 1) * page_size
        cursor = self.deals.find(query).sort("created_at", -1).skip(skip).limit(page_size)
        deals = await cursor.to_list(length=page_size)

        return DealList(
            deals=[self._deal_to_response(d) for d in deals],
            total=total,
            page=page,
            page_size=page_size,
            has_more=(skip + len(deals)) < total,
        )

    async def get_deal(self, deal_id: str) -> Optional[DealDetailResponse]:
        """Get a deal with computed capacity, next cashflow and metrics."""
        deal_doc = await self._find_deal(deal_id)
        if not deal_doc:
            return None
        return self._deal_to_detail(deal_doc)

    # ==================== Deal management ====================

    async def create_deal(self, owner: User, request: DealCreate) -> DealDetailResponse:
        """
        Create the MSME's deal. Each MSME owns at most one deal.

        Raises:
            ValueError: If the MSME already has a deal
        """
        if owner.deal_id or await self.deals.find_one({"owner_id": owner.id}):
            raise ValueError("You already have a deal")

        facility_size = request.facility_size or self.settings.default_facility_size
        now = utcnow()
        deal_doc = request.model_dump(mode="python")
        deal_doc.update({
            "owner_id": owner.id,
            "facility_size": facility_size,
            "utilized_amount": 0.0,
            "remaining_capacity": facility_size,
            "status": DealStatus.OPEN.value,
            "created_at": now,
            "updated_at": now,
        })

        try:
            result = await self.deals.insert_one(deal_doc)
        except DuplicateKeyError:
            raise ValueError("You already have a deal")
        deal_doc["_id"] = result.inserted_id

        await self.users.update_one(
            {"_id": to_object_id(owner.id)},
            {"$set": {"deal_id": str(result.inserted_id), "updated_at": now}},
        )
        logger.info("MSME %s created deal %s (facility %s)", owner.id, result.inserted_id, facility_size)
        return self._deal_to_detail(deal_doc)

    async def update_deal(
        self, deal_id: str, owner_id: str, request: DealUpdate
    ) -> Optional[DealDetailResponse]:
        """
        Update descriptive fields of an owned deal.

        A new facility size must still cover what is already utilized;
        remaining capacity and funded/open status follow from it.

        Raises:
            PermissionError: If the requester does not own the deal
            ValueError: If the facility would drop below the utilized amount
        """
        deal_doc = await self._find_deal(deal_id)
        if not deal_doc:
            return None
        if deal_doc["owner_id"] != owner_id:
            raise PermissionError("Only the deal owner can update this deal")
        oid = deal_doc["_id"]

        update_data = request.model_dump(mode="python", exclude_unset=True)
        update_data = {k: v for k, v in update_data.items() if v is not None}
        if not update_data:
            return self._deal_to_detail(deal_doc)

        query: dict = {"_id": oid, "owner_id": owner_id}
        if "facility_size" in update_data:
            utilized = deal_doc.get("utilized_amount") or 0.0
            new_facility = update_data["facility_size"]
            if new_facility < utilized:
                raise ValueError(
                    f"Facility size cannot be below the utilized amount of {format_money(utilized)}."
                )
            remaining = round(new_facility - utilized, 2)
            update_data["remaining_capacity"] = remaining
            if deal_doc.get("status") != DealStatus.CLOSED.value:
                update_data["status"] = (
                    DealStatus.FUNDED.value if remaining < FUNDED_THRESHOLD else DealStatus.OPEN.value
                )
            # Guard against an allocation landing between read and write
            query["utilized_amount"] = deal_doc.get("utilized_amount", 0.0)

        update_data["updated_at"] = utcnow()
        result = await self.deals.find_one_and_update(
            query,
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )
        if not result:
            raise ValueError("Deal changed while updating, please retry")

        return self._deal_to_detail(result)

    async def list_deal_investors(
        self, deal_id: str, requester_id: str
    ) -> Optional[list[DealInvestorResponse]]:
        """
        Investor roster for a deal, visible only to its owner.

        Raises:
            PermissionError: If the requester does not own the deal
        """
        deal_doc = await self._find_deal(deal_id)
        if not deal_doc:
            return None
        if deal_doc["owner_id"] != requester_id:
            raise PermissionError("Only the deal owner can view its investors")

        cursor = self.investments.find({"deal_id": str(deal_doc["_id"])}).sort("created_at", -1)
        investments = await cursor.to_list(length=None)

        investor_ids = {to_object_id(i["investor_id"]) for i in investments}
        investor_ids.discard(None)
        investors = {}
        if investor_ids:
            user_cursor = self.users.find(
                {"_id": {"$in": list(investor_ids)}},
                {"name": 1, "email": 1},
            )
            for user_doc in await user_cursor.to_list(length=None):
                investors[str(user_doc["_id"])] = user_doc

        roster = []
        for inv in investments:
            investor = investors.get(inv["investor_id"], {})
            roster.append(DealInvestorResponse(
                investment_id=str(inv["_id"]),
                investor_id=inv["investor_id"],
                name=investor.get("name"),
                email=investor.get("email"),
                amount=inv["amount"],
                status=inv["status"],
                created_at=as_utc(inv["created_at"]),
            ))
        return roster

    # ==================== Allocation ====================

    async def allocate(
        self, deal_id: str, investor: User, request: AllocationRequest
    ) -> Optional[AllocationResponse]:
        """
        Allocate investor funds to a deal.

        The investor balance is debited with a conditional update first,
        then deal capacity is consumed with another conditional update. If
        capacity was taken in the meantime the debit is credited back.
        If the investment cannot be recorded, capacity and balance are given
        back; a duplicate idempotency key then replays the stored allocation.

        Returns:
            AllocationResponse, or None if the deal does not exist

        Raises:
            ValueError: For invalid amounts, closed deals, insufficient
                capacity or balance
        """
        amount = validate_amount(request.amount, self.settings.max_investment_amount)

        oid = to_object_id(deal_id)
        if oid is None:
            return None

        if request.idempotency_key:
            existing = await self.investments.find_one({
                "investor_id": investor.id,
                "idempotency_key": request.idempotency_key,
            })
            if existing:
                if existing["deal_id"] != deal_id:
                    raise ValueError("Idempotency key already used for another deal")
                logger.info("Replayed allocation %s for investor %s", existing["_id"], investor.id)
                return await self._allocation_response(existing)

        deal_doc = await self.deals.find_one({"_id": oid})
        if not deal_doc:
            return None
        deal_doc = await self._ensure_capacity_fields(deal_doc)

        if deal_doc.get("status", DealStatus.OPEN.value) != DealStatus.OPEN.value:
            raise ValueError("This deal is not open for allocation.")

        remaining = remaining_capacity_of(deal_doc, self.settings.default_facility_size)
        if amount > remaining:
            raise ValueError(f"Amount exceeds remaining capacity of {format_money(remaining)}.")

        investor_oid = to_object_id(investor.id)
        now = utcnow()

        debited = await self.users.find_one_and_update(
            {"_id": investor_oid, "balance": {"$gte": amount - CAPACITY_EPSILON}},
            {"$inc": {"balance": -amount}, "$set": {"updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not debited:
            raise ValueError("Insufficient balance")

        updated_deal = await self.deals.find_one_and_update(
            {
                "_id": oid,
                "status": DealStatus.OPEN.value,
                "remaining_capacity": {"$gte": amount - CAPACITY_EPSILON},
            },
            {
                "$inc": {"utilized_amount": amount, "remaining_capacity": -amount},
                "$set": {"updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if not updated_deal:
            await self.users.update_one({"_id": investor_oid}, {"$inc": {"balance": amount}})
            latest = await self.deals.find_one({"_id": oid}) or deal_doc
            remaining = remaining_capacity_of(latest, self.settings.default_facility_size)
            logger.warning(
                "Allocation of %s to deal %s lost a capacity race, balance restored", amount, deal_id
            )
            raise ValueError(f"Amount exceeds remaining capacity of {format_money(remaining)}.")

        if updated_deal["remaining_capacity"] < FUNDED_THRESHOLD:
            # A refund may have landed since the $inc above
            funded = await self.deals.find_one_and_update(
                {
                    "_id": oid,
                    "status": DealStatus.OPEN.value,
                    "remaining_capacity": {"$lt": FUNDED_THRESHOLD},
                },
                {"$set": {"status": DealStatus.FUNDED.value}},
                return_document=ReturnDocument.AFTER,
            )
            if funded:
                updated_deal = funded
                logger.info("Deal %s is fully funded", deal_id)

        investment_doc = {
            "investor_id": investor.id,
            "deal_id": deal_id,
            "amount": amount,
            "status": InvestmentStatus.ACTIVE.value,
            "idempotency_key": request.idempotency_key,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.investments.insert_one(investment_doc)
        except PyMongoError as e:
            await self._release_allocation(oid, investor_oid, amount)
            if isinstance(e, DuplicateKeyError) and request.idempotency_key:
                # Same key committed by a concurrent request
                existing = await self.investments.find_one({
                    "investor_id": investor.id,
                    "idempotency_key": request.idempotency_key,
                })
                if existing:
                    if existing["deal_id"] != deal_id:
                        raise ValueError("Idempotency key already used for another deal")
                    logger.info("Replayed allocation %s for investor %s", existing["_id"], investor.id)
                    return await self._allocation_response(existing)
            logger.error("Recording allocation to deal %s failed, funds released: %s", deal_id, e)
            raise
        investment_doc["_id"] = result.inserted_id

        logger.info(
            "Investor %s allocated %s to deal %s (remaining %s)",
            investor.id, amount, deal_id, updated_deal["remaining_capacity"],
        )
        return AllocationResponse(
            investment=investment_to_response(investment_doc, updated_deal),
            user=user_to_info_response(debited),
            deal=self._deal_to_response(updated_deal),
        )

    # ==================== Helper Methods ====================

    async def _find_deal(self, deal_id: str) -> Optional[dict]:
        oid = to_object_id(deal_id)
        if oid is None:
            return None
        deal_doc = await self.deals.find_one({"_id": oid})
        if not deal_doc:
            return None
        return await self._ensure_capacity_fields(deal_doc)

    async def _ensure_capacity_fields(self, deal_doc: dict) -> dict:
        """Backfill facility/utilized/remaining on documents created without them."""
        if deal_doc.get("remaining_capacity") is not None and deal_doc.get("facility_size"):
            return deal_doc

        facility = deal_doc.get("facility_size") or self.settings.default_facility_size
        utilized = deal_doc.get("utilized_amount") or 0.0
        backfill = {
            "facility_size": facility,
            "utilized_amount": utilized,
            "remaining_capacity": max(facility - utilized, 0.0),
        }
        await self.deals.update_one(
            {"_id": deal_doc["_id"], "remaining_capacity": deal_doc.get("remaining_capacity")},
            {"$set": backfill},
        )
        deal_doc.update(backfill)
        return deal_doc

    async def _release_allocation(self, deal_oid, investor_oid, amount: float) -> None:
        """Give back capacity and balance taken by an allocation that was not recorded."""
        now = utcnow()
        await self.deals.update_one(
            {"_id": deal_oid},
            {
                "$inc": {"utilized_amount": -amount, "remaining_capacity": amount},
                "$set": {"updated_at": now},
            },
        )
        await self.deals.update_one(
            {
                "_id": deal_oid,
                "status": DealStatus.FUNDED.value,
                "remaining_capacity": {"$gte": FUNDED_THRESHOLD},
            },
            {"$set": {"status": DealStatus.OPEN.value}},
        )
        await self.users.update_one(
            {"_id": investor_oid},
            {"$inc": {"balance": amount}, "$set": {"updated_at": now}},
        )

    async def _allocation_response(self, investment_doc: dict) -> AllocationResponse:
        deal_doc = await self.deals.find_one({"_id": to_object_id(investment_doc["deal_id"])})
        user_doc = await self.users.find_one({"_id": to_object_id(investment_doc["investor_id"])})
        return AllocationResponse(
            investment=investment_to_response(investment_doc, deal_doc),
            user=user_to_info_response(user_doc),
            deal=self._deal_to_response(deal_doc),
        )

    def _deal_to_response(self, doc: dict) -> DealResponse:
        """Convert MongoDB document to DealResponse."""
        facility = doc.get("facility_size") or self.settings.default_facility_size
        utilized = round(doc.get("utilized_amount") or 0.0, 2)
        return DealResponse(
            id=str(doc["_id"]),
            owner_id=doc["owner_id"],
            name=doc["name"],
            sector=doc["sector"],
            facility_size=facility,
            utilized_amount=utilized,
            remaining_capacity=remaining_capacity_of(doc, self.settings.default_facility_size),
            utilization=min(utilized / facility, 1.0) if facility else 0.0,
            target_yield=doc.get("target_yield", 0.0),
            tenor_months=doc.get("tenor_months"),
            status=doc.get("status", DealStatus.OPEN.value),
            risk_label=doc.get("risk_label"),
            location=doc.get("location"),
            created_at=as_utc(doc["created_at"]),
        )

    def _deal_to_detail(self, doc: dict) -> DealDetailResponse:
        """Convert MongoDB document to DealDetailResponse with derived fields."""
        summary = self._deal_to_response(doc)
        cashflows = doc.get("cashflows") or []
        return DealDetailResponse(
            **summary.model_dump(),
            repayment_cadence=doc.get("repayment_cadence"),
            description=doc.get("description"),
            contact_name=doc.get("contact_name"),
            contact_email=doc.get("contact_email"),
            contact_phone=doc.get("contact_phone"),
            website=doc.get("website"),
            registered_address=doc.get("registered_address"),
            cashflows=cashflows,
            next_cashflow=next_cashflow_of(cashflows),
            monthly_financials=doc.get("monthly_financials") or [],
            cash_balance=doc.get("cash_balance"),
            financial_metrics=compute_financial_metrics(
                doc.get("monthly_financials") or [], doc.get("cash_balance")
            ),
            updated_at=as_utc(doc.get("updated_at")),
        )
