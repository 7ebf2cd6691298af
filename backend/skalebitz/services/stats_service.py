"""
Dashboard statistics for the platform, investors and MSMEs.

Figures are aggregated in Python from the deal and investment documents;
the collections involved stay small per user.
"""
from collections import defaultdict
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from skalebitz.config import get_settings
from skalebitz.core.utils import as_utc, to_object_id
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.models.deal import DealStatus
from skalebitz.models.investment import InvestmentStatus
from skalebitz.models.user import AccountType, User
from skalebitz.schemas.stats import (
    ActivityItem,
    InvestorDashboard,
    InvestorDealHolding,
    MsmeDashboard,
    PlatformOverview,
    RecentDeal,
    SectorAllocation,
)
from skalebitz.services.deal_service import next_cashflow_of, remaining_capacity_of

RECENT_DEALS_LIMIT = 5
ACTIVITY_LIMIT = 10

# Money still (or ever) lent out counts towards totals; refunds do not
INVESTED_STATUSES = {InvestmentStatus.ACTIVE.value, InvestmentStatus.COMPLETED.value}

ACTIVITY_TYPE_BY_STATUS = {
    InvestmentStatus.REFUNDED.value: "refund",
    InvestmentStatus.COMPLETED.value: "repayment",
}


class StatsService:
    """Service computing dashboard statistics."""

    def __init__(self, db: AsyncIOMotorDatabase, auth_db_instance: AsyncIOMotorDatabase):
        """Initialize with deals database and auth database."""
        self.deals = db[deals_db.Collections.DEALS]
        self.investments = db[deals_db.Collections.INVESTMENTS]
        self.users = auth_db_instance[auth_db.Collections.USERS]
        self.settings = get_settings()

    # ==================== Platform ====================

    async def platform_overview(self) -> PlatformOverview:
        """Public totals across all deals and investments."""
        deals = await self.deals.find({}).to_list(length=None)
        default_facility = self.settings.default_facility_size

        total_facility = sum(d.get("facility_size") or default_facility for d in deals)
        total_utilized = sum(d.get("utilized_amount") or 0.0 for d in deals)
        total_remaining = sum(remaining_capacity_of(d, default_facility) for d in deals)
        yields = [d["target_yield"] for d in deals if d.get("target_yield") is not None]

        invested = await self.investments.find(
            {"status": {"$in": list(INVESTED_STATUSES)}}, {"amount": 1}
        ).to_list(length=None)

        return PlatformOverview(
            total_deals=len(deals),
            open_deals=sum(1 for d in deals if d.get("status", DealStatus.OPEN.value) == DealStatus.OPEN.value),
            total_facility=round(total_facility, 2),
            total_utilized=round(total_utilized, 2),
            total_remaining=round(total_remaining, 2),
            investor_count=await self.users.count_documents({"account_type": AccountType.INVESTOR.value}),
            msme_count=await self.users.count_documents({"account_type": AccountType.MSME.value}),
            total_invested=round(sum(i["amount"] for i in invested), 2),
            average_target_yield=sum(yields) / len(yields) if yields else None,
        )

    # ==================== Investor ====================

    async def investor_dashboard(self, investor: User) -> InvestorDashboard:
        """Summary cards, sector allocation, recent deals and activity feed."""
        investments = await self.investments.find(
            {"investor_id": investor.id}
        ).sort("created_at", -1).to_list(length=None)
        deals = await self._deals_by_id(investments)

        invested = [i for i in investments if i["status"] in INVESTED_STATUSES]
        total_invested = sum(i["amount"] for i in invested)

        weighted_yield = None
        if total_invested > 0:
            weighted_yield = sum(
                i["amount"] * deals.get(i["deal_id"], {}).get("target_yield", 0.0)
                for i in invested
            ) / total_invested

        active_deals = {
            i["deal_id"] for i in investments if i["status"] == InvestmentStatus.ACTIVE.value
        }

        by_sector: dict[str, float] = defaultdict(float)
        for inv in invested:
            sector = deals.get(inv["deal_id"], {}).get("sector") or "Other"
            by_sector[sector] += inv["amount"]
        allocation = [
            SectorAllocation(
                sector=sector,
                amount=round(amount, 2),
                percent=amount / total_invested if total_invested else 0.0,
            )
            for sector, amount in sorted(by_sector.items(), key=lambda kv: kv[1], reverse=True)
        ]

        recent_deals = [
            self._recent_deal(inv, deals.get(inv["deal_id"]))
            for inv in investments[:RECENT_DEALS_LIMIT]
        ]

        return InvestorDashboard(
            balance=round(investor.balance, 2),
            total_invested=round(total_invested, 2),
            average_yield=weighted_yield,
            active_deals=len(active_deals),
            allocation=allocation,
            recent_deals=recent_deals,
            activity=self._activity_feed(investments, deals)[:ACTIVITY_LIMIT],
        )

    async def investor_deals(self, investor_id: str) -> list[InvestorDealHolding]:
        """Deals the investor holds, with the amount they have in each."""
        investments = await self.investments.find({
            "investor_id": investor_id,
            "status": {"$in": list(INVESTED_STATUSES)},
        }).to_list(length=None)
        deals = await self._deals_by_id(investments)

        totals: dict[str, float] = defaultdict(float)
        counts: dict[str, int] = defaultdict(int)
        for inv in investments:
            totals[inv["deal_id"]] += inv["amount"]
            counts[inv["deal_id"]] += 1

        holdings = []
        for deal_id, amount in sorted(totals.items(), key=lambda kv: kv[1], reverse=True):
            deal = deals.get(deal_id)
            if deal is None:
                continue
            holdings.append(InvestorDealHolding(
                deal_id=deal_id,
                name=deal["name"],
                sector=deal["sector"],
                target_yield=deal.get("target_yield", 0.0),
                status=deal.get("status", DealStatus.OPEN.value),
                invested_amount=round(amount, 2),
                investment_count=counts[deal_id],
                remaining_capacity=remaining_capacity_of(deal, self.settings.default_facility_size),
                facility_size=deal.get("facility_size") or self.settings.default_facility_size,
            ))
        return holdings

    # ==================== MSME ====================

    async def msme_dashboard(self, msme: User) -> MsmeDashboard:
        """Capacity and investor summary for the MSME's own deal."""
        deal = await self.deals.find_one({"owner_id": msme.id})
        if not deal:
            return MsmeDashboard()

        deal_id = str(deal["_id"])
        investments = await self.investments.find(
            {"deal_id": deal_id}
        ).sort("created_at", -1).to_list(length=None)
        invested = [i for i in investments if i["status"] in INVESTED_STATUSES]

        facility = deal.get("facility_size") or self.settings.default_facility_size
        utilized = round(deal.get("utilized_amount") or 0.0, 2)

        return MsmeDashboard(
            has_deal=True,
            deal_id=deal_id,
            deal_name=deal["name"],
            status=deal.get("status", DealStatus.OPEN.value),
            facility_size=facility,
            utilized_amount=utilized,
            remaining_capacity=remaining_capacity_of(deal, self.settings.default_facility_size),
            utilization=min(utilized / facility, 1.0) if facility else 0.0,
            investor_count=len({i["investor_id"] for i in invested}),
            total_raised=round(sum(i["amount"] for i in invested), 2),
            recent_investments=[
                self._recent_deal(inv, deal) for inv in investments[:RECENT_DEALS_LIMIT]
            ],
            next_cashflow=next_cashflow_of(deal.get("cashflows") or []),
        )

    # ==================== Helper Methods ====================

    async def _deals_by_id(self, investments: list[dict]) -> dict[str, dict]:
        deal_ids = list({to_object_id(i["deal_id"]) for i in investments} - {None})
        if not deal_ids:
            return {}
        deals = await self.deals.find({"_id": {"$in": deal_ids}}).to_list(length=None)
        return {str(d["_id"]): d for d in deals}

    def _recent_deal(self, inv: dict, deal: Optional[dict]) -> RecentDeal:
        deal = deal or {}
        return RecentDeal(
            investment_id=str(inv["_id"]),
            deal_id=inv["deal_id"],
            deal_name=deal.get("name"),
            sector=deal.get("sector"),
            amount=inv["amount"],
            status=inv["status"],
            target_yield=deal.get("target_yield"),
            created_at=as_utc(inv["created_at"]),
        )

    def _activity_feed(self, investments: list[dict], deals: dict[str, dict]) -> list[ActivityItem]:
        """Allocation events plus refund/repayment events, newest first."""
        events = []
        for inv in investments:
            deal_name = deals.get(inv["deal_id"], {}).get("name")
            events.append(ActivityItem(
                type="allocation",
                deal_id=inv["deal_id"],
                deal_name=deal_name,
                amount=inv["amount"],
                timestamp=as_utc(inv["created_at"]),
            ))
            follow_up = ACTIVITY_TYPE_BY_STATUS.get(inv["status"])
            if follow_up:
                events.append(ActivityItem(
                    type=follow_up,
                    deal_id=inv["deal_id"],
                    deal_name=deal_name,
                    amount=inv["amount"],
                    timestamp=as_utc(inv.get("updated_at") or inv["created_at"]),
                ))
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events
