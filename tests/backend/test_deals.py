"""
Tests for deal endpoints and allocation.

These tests verify:
- Listing with filters and pagination
- Deal detail with capacity, next cashflow and metrics
- MSME-only creation (one deal each) and updates
- Allocation rules: amount validation, capacity, balance, funded status
- Idempotent retries and concurrent allocations against one facility
"""

import asyncio

import pytest


class TestListDeals:
    """Tests for GET /deals."""

    def test_list_requires_authentication(self, client):
        assert client.get("/deals").status_code == 401

    def test_list_returns_deals_with_capacity(self, client, investor, deal, assert_pagination_response):
        response = client.get("/deals", headers=investor["headers"])

        data = assert_pagination_response(response, "deals")
        assert data["total"] == 1
        listed = data["deals"][0]
        assert listed["id"] == deal["id"]
        assert listed["facility_size"] == 10000
        assert listed["utilized_amount"] == 0
        assert listed["remaining_capacity"] == 10000
        assert listed["utilization"] == 0
        assert listed["status"] == "open"

    def test_list_filters_by_sector_and_status(self, client, investor, deal):
        headers = investor["headers"]

        assert client.get("/deals", params={"sector": "Manufacturing"}, headers=headers).json()["total"] == 1
        assert client.get("/deals", params={"sector": "Agriculture"}, headers=headers).json()["total"] == 0
        assert client.get("/deals", params={"status": "funded"}, headers=headers).json()["total"] == 0

    def test_list_rejects_unknown_status(self, client, investor):
        response = client.get("/deals", params={"status": "bogus"}, headers=investor["headers"])

        assert response.status_code == 422

    def test_list_paginates(self, client, investor, register_user, deal_payload):
        for i in range(3):
            owner = register_user(f"MSME {i}", f"msme{i}@example.com", "msme")
            deal_payload["name"] = f"Deal {i}"
            client.post("/deals", json=deal_payload, headers=owner["headers"])

        first = client.get("/deals", params={"page": 1, "page_size": 2}, headers=investor["headers"]).json()
        second = client.get("/deals", params={"page": 2, "page_size": 2}, headers=investor["headers"]).json()

        assert first["total"] == 3
        assert len(first["deals"]) == 2
        assert first["has_more"] is True
        assert len(second["deals"]) == 1
        assert second["has_more"] is False
        # Newest first
        assert first["deals"][0]["name"] == "Deal 2"


class TestDealDetail:
    """Tests for GET /deals/{deal_id}."""

    def test_detail_includes_next_cashflow_and_metrics(self, client, investor, deal):
        response = client.get(f"/deals/{deal['id']}", headers=investor["headers"])

        assert response.status_code == 200
        data = response.json()
        assert data["next_cashflow"]["status"] == "scheduled"
        assert data["next_cashflow"]["due_date"].startswith("2025-02-28")
        metrics = data["financial_metrics"]
        assert metrics["total_revenue"] == 66000
        assert metrics["profitability_health"] == "Strong"
        assert metrics["survival_probability"] == 0.95

    def test_detail_unknown_id(self, client, investor, assert_error_response):
        response = client.get("/deals/507f1f77bcf86cd799439000", headers=investor["headers"])

        assert_error_response(response, 404, "deal not found")

    def test_detail_malformed_id(self, client, investor, assert_error_response):
        response = client.get("/deals/not-an-id", headers=investor["headers"])

        assert_error_response(response, 404, "deal not found")


class TestCreateDeal:
    """Tests for POST /deals."""

    def test_create_links_deal_to_msme(self, client, msme, deal):
        me = client.get("/auth/me", headers=msme["headers"]).json()

        assert me["deal_id"] == deal["id"]
        assert deal["owner_id"] == msme["user"]["id"]
        assert deal["remaining_capacity"] == deal["facility_size"]

    def test_create_uses_default_facility_size(self, client, msme, deal_payload):
        del deal_payload["facility_size"]

        response = client.post("/deals", json=deal_payload, headers=msme["headers"])

        assert response.status_code == 201
        assert response.json()["facility_size"] == 10000

    def test_investor_cannot_create_deal(self, client, investor, deal_payload, assert_error_response):
        response = client.post("/deals", json=deal_payload, headers=investor["headers"])

        assert_error_response(response, 403, "msme")

    def test_msme_can_only_have_one_deal(self, client, msme, deal, deal_payload, assert_error_response):
        response = client.post("/deals", json=deal_payload, headers=msme["headers"])

        assert_error_response(response, 400, "already have a deal")

    def test_create_validates_yield(self, client, msme, deal_payload):
        deal_payload["target_yield"] = 12

        assert client.post("/deals", json=deal_payload, headers=msme["headers"]).status_code == 422


class TestUpdateDeal:
    """Tests for PATCH /deals/{deal_id}."""

    def test_update_descriptive_fields(self, client, msme, deal):
        response = client.patch(
            f"/deals/{deal['id']}", json={"location": "Kumasi, Ghana"}, headers=msme["headers"]
        )

        assert response.status_code == 200
        assert response.json()["location"] == "Kumasi, Ghana"

    def test_facility_change_recomputes_remaining(self, client, msme, funded_investor, deal):
        client.post(f"/deals/{deal['id']}/allocate", json={"amount": 4000}, headers=funded_investor["headers"])

        response = client.patch(
            f"/deals/{deal['id']}", json={"facility_size": 6000}, headers=msme["headers"]
        )

        data = response.json()
        assert data["facility_size"] == 6000
        assert data["utilized_amount"] == 4000
        assert data["remaining_capacity"] == 2000

    def test_facility_cannot_drop_below_utilized(self, client, msme, funded_investor, deal, assert_error_response):
        client.post(f"/deals/{deal['id']}/allocate", json={"amount": 4000}, headers=funded_investor["headers"])

        response = client.patch(
            f"/deals/{deal['id']}", json={"facility_size": 3999.99}, headers=msme["headers"]
        )

        assert_error_response(response, 400, "below the utilized amount of $4,000.00")

    def test_facility_equal_to_utilized_marks_funded(self, client, msme, funded_investor, deal):
        client.post(f"/deals/{deal['id']}/allocate", json={"amount": 4000}, headers=funded_investor["headers"])

        data = client.patch(
            f"/deals/{deal['id']}", json={"facility_size": 4000}, headers=msme["headers"]
        ).json()

        assert data["remaining_capacity"] == 0
        assert data["status"] == "funded"

    def test_other_msme_cannot_update(self, client, deal, register_user, assert_error_response):
        other = register_user("Other MSME", "other@example.com", "msme")

        response = client.patch(f"/deals/{deal['id']}", json={"name": "Mine"}, headers=other["headers"])

        assert_error_response(response, 403, "only the deal owner")


class TestDealInvestors:
    """Tests for GET /deals/{deal_id}/investors."""

    def test_owner_sees_roster(self, client, msme, funded_investor, deal):
        client.post(f"/deals/{deal['id']}/allocate", json={"amount": 1500}, headers=funded_investor["headers"])

        response = client.get(f"/deals/{deal['id']}/investors", headers=msme["headers"])

        assert response.status_code == 200
        roster = response.json()
        assert len(roster) == 1
        assert roster[0]["name"] == "Ada Investor"
        assert roster[0]["email"] == "ada@example.com"
        assert roster[0]["amount"] == 1500
        assert roster[0]["status"] == "active"

    def test_other_msme_is_forbidden(self, client, deal, register_user, assert_error_response):
        other = register_user("Other MSME", "other@example.com", "msme")

        response = client.get(f"/deals/{deal['id']}/investors", headers=other["headers"])

        assert_error_response(response, 403, "only the deal owner")

    def test_investor_is_forbidden(self, client, investor, deal):
        response = client.get(f"/deals/{deal['id']}/investors", headers=investor["headers"])

        assert response.status_code == 403


class TestAllocate:
    """Tests for POST /deals/{deal_id}/allocate."""

    def _allocate(self, client, deal, user, amount, **extra):
        return client.post(
            f"/deals/{deal['id']}/allocate",
            json={"amount": amount, **extra},
            headers=user["headers"],
        )

    def test_allocation_updates_balance_and_capacity(self, client, funded_investor, deal):
        response = self._allocate(client, deal, funded_investor, 2500.5)

        assert response.status_code == 201
        data = response.json()
        assert data["investment"]["amount"] == 2500.5
        assert data["investment"]["status"] == "active"
        assert data["investment"]["deal_name"] == deal["name"]
        assert data["user"]["balance"] == 47499.5
        assert data["deal"]["utilized_amount"] == 2500.5
        assert data["deal"]["remaining_capacity"] == 7499.5
        assert data["deal"]["status"] == "open"

    def test_allocation_over_remaining_capacity(self, client, funded_investor, deal, assert_error_response):
        self._allocate(client, deal, funded_investor, 9000)

        response = self._allocate(client, deal, funded_investor, 1000.01)

        assert_error_response(response, 400, "Amount exceeds remaining capacity of $1,000.00.")
        me = client.get("/auth/me", headers=funded_investor["headers"]).json()
        assert me["balance"] == 41000

    def test_allocating_full_remaining_marks_funded(self, client, funded_investor, deal, assert_error_response):
        response = self._allocate(client, deal, funded_investor, 10000)

        assert response.json()["deal"]["status"] == "funded"
        assert response.json()["deal"]["remaining_capacity"] == 0

        again = self._allocate(client, deal, funded_investor, 1)
        assert_error_response(again, 400, "not open for allocation")

    @pytest.mark.parametrize("amount, message", [
        (0, "greater than 0"),
        (-5, "greater than 0"),
        (10.555, "2 decimal places"),
        (1_000_000_000.01, "under $1,000,000,000.00"),
    ])
    def test_invalid_amounts_rejected(self, client, funded_investor, deal, assert_error_response, amount, message):
        response = self._allocate(client, deal, funded_investor, amount)

        assert_error_response(response, 400, message)

    def test_insufficient_balance(self, client, investor, deal, assert_error_response):
        response = self._allocate(client, deal, investor, 100)

        assert_error_response(response, 400, "insufficient balance")
        detail = client.get(f"/deals/{deal['id']}", headers=investor["headers"]).json()
        assert detail["remaining_capacity"] == 10000

    def test_msme_cannot_allocate(self, client, msme, deal, assert_error_response):
        response = self._allocate(client, deal, msme, 100)

        assert_error_response(response, 403, "investor")

    def test_unknown_deal(self, client, funded_investor, assert_error_response):
        response = client.post(
            "/deals/507f1f77bcf86cd799439000/allocate",
            json={"amount": 10},
            headers=funded_investor["headers"],
        )

        assert_error_response(response, 404, "deal not found")

    def test_retry_with_idempotency_key_returns_original(self, client, funded_investor, deal):
        first = self._allocate(client, deal, funded_investor, 750, idempotency_key="alloc-1").json()
        retry = self._allocate(client, deal, funded_investor, 750, idempotency_key="alloc-1").json()

        assert retry["investment"]["id"] == first["investment"]["id"]
        assert retry["user"]["balance"] == 49250
        assert retry["deal"]["utilized_amount"] == 750

    def test_idempotency_key_cannot_move_to_another_deal(
        self, client, funded_investor, deal, register_user, deal_payload, assert_error_response
    ):
        other = register_user("Other MSME", "other@example.com", "msme")
        other_deal = client.post("/deals", json=deal_payload, headers=other["headers"]).json()
        self._allocate(client, deal, funded_investor, 100, idempotency_key="alloc-1")

        response = self._allocate(client, other_deal, funded_investor, 100, idempotency_key="alloc-1")

        assert_error_response(response, 400, "another deal")


class TestConcurrentAllocation:
    """Concurrent allocations must never overshoot the facility."""

    @pytest.mark.asyncio
    async def test_parallel_allocations_respect_capacity(self, auth_database, deals_database):
        from skalebitz.core.utils import utcnow
        from skalebitz.models.user import User
        from skalebitz.schemas.deal import AllocationRequest
        from skalebitz.services.deal_service import DealService

        now = utcnow()
        deal_id = (await deals_database.deals.insert_one({
            "owner_id": "owner-1",
            "name": "Small facility",
            "sector": "Retail",
            "facility_size": 1000.0,
            "utilized_amount": 0.0,
            "remaining_capacity": 1000.0,
            "target_yield": 0.1,
            "status": "open",
            "created_at": now,
        })).inserted_id

        investors = []
        for i in range(5):
            doc = {
                "email": f"inv{i}@example.com",
                "hashed_password": "x",
                "name": f"Investor {i}",
                "account_type": "investor",
                "status": "active",
                "balance": 1000.0,
                "created_at": now,
            }
            doc["_id"] = str((await auth_database.users.insert_one(doc)).inserted_id)
            investors.append(User(**doc))

        service = DealService(deals_database, auth_database)

        async def attempt(investor):
            try:
                return await service.allocate(str(deal_id), investor, AllocationRequest(amount=300))
            except ValueError:
                return None

        results = await asyncio.gather(*(attempt(inv) for inv in investors))

        successes = [r for r in results if r is not None]
        assert len(successes) == 3
        deal = await deals_database.deals.find_one({"_id": deal_id})
        assert deal["utilized_amount"] == 900
        assert deal["remaining_capacity"] == 100
        assert deal["utilized_amount"] + deal["remaining_capacity"] == deal["facility_size"]

        # Losers keep their money
        balances = sorted(u["balance"] for u in await auth_database.users.find({}).to_list(length=None))
        assert balances == [700.0, 700.0, 700.0, 1000.0, 1000.0]

    @pytest.mark.asyncio
    async def test_lost_capacity_race_restores_balance(self, auth_database, deals_database):
        """If capacity disappears between the check and the update, the debit is undone."""
        from unittest.mock import patch

        from skalebitz.core.utils import utcnow
        from skalebitz.models.user import User
        from skalebitz.schemas.deal import AllocationRequest
        from skalebitz.services.deal_service import DealService

        now = utcnow()
        deal_id = (await deals_database.deals.insert_one({
            "owner_id": "owner-1",
            "name": "Race",
            "sector": "Retail",
            "facility_size": 1000.0,
            "utilized_amount": 0.0,
            "remaining_capacity": 1000.0,
            "target_yield": 0.1,
            "status": "open",
            "created_at": now,
        })).inserted_id
        doc = {
            "email": "racer@example.com",
            "hashed_password": "x",
            "name": "Racer",
            "account_type": "investor",
            "balance": 500.0,
            "created_at": now,
        }
        doc["_id"] = str((await auth_database.users.insert_one(doc)).inserted_id)
        service = DealService(deals_database, auth_database)

        original = service.users.find_one_and_update

        async def debit_then_drain(*args, **kwargs):
            result = await original(*args, **kwargs)
            await deals_database.deals.update_one(
                {"_id": deal_id},
                {"$set": {"utilized_amount": 900.0, "remaining_capacity": 100.0}},
            )
            return result

        with patch.object(service.users, "find_one_and_update", debit_then_drain):
            with pytest.raises(ValueError, match=r"remaining capacity of \$100\.00"):
                await service.allocate(str(deal_id), User(**doc), AllocationRequest(amount=400))

        user = await auth_database.users.find_one({"email": "racer@example.com"})
        assert user["balance"] == 500.0
        assert await deals_database.investments.count_documents({}) == 0


def to_oid(deal_id: str):
    from bson import ObjectId

    return ObjectId(deal_id)


async def seed_deal(deals_database, facility_size: float = 1000.0, owner_id: str = "owner-1"):
    """Insert an open deal directly and return its id as a string."""
    from skalebitz.core.utils import utcnow

    result = await deals_database.deals.insert_one({
        "owner_id": owner_id,
        "name": "Seeded facility",
        "sector": "Retail",
        "facility_size": facility_size,
        "utilized_amount": 0.0,
        "remaining_capacity": facility_size,
        "target_yield": 0.1,
        "status": "open",
        "created_at": utcnow(),
    })
    return str(result.inserted_id)


async def seed_user(auth_database, email: str, account_type: str = "investor", balance: float = 0.0):
    """Insert a user directly and return it as a User model."""
    from skalebitz.core.utils import utcnow
    from skalebitz.models.user import User

    doc = {
        "email": email,
        "hashed_password": "x",
        "name": email.split("@")[0],
        "account_type": account_type,
        "balance": balance,
        "created_at": utcnow(),
    }
    doc["_id"] = str((await auth_database.users.insert_one(doc)).inserted_id)
    return User(**doc)


class TestAllocationConsistency:
    """Interleavings of allocations with refunds, retries and failed writes."""

    @pytest.mark.asyncio
    async def test_refund_during_funding_leaves_deal_open(self, auth_database, deals_database):
        """A refund landing just before the funded transition keeps the deal open."""
        from unittest.mock import patch

        from skalebitz.schemas.deal import AllocationRequest
        from skalebitz.services.deal_service import DealService
        from skalebitz.services.investment_service import InvestmentService

        deal_id = await seed_deal(deals_database)
        investor = await seed_user(auth_database, "ada@example.com", balance=2000.0)
        service = DealService(deals_database, auth_database)
        investments = InvestmentService(deals_database, auth_database)

        first = await service.allocate(deal_id, investor, AllocationRequest(amount=400))

        original = service.deals.find_one_and_update

        async def refund_before_funded(*args, **kwargs):
            if args[1] == {"$set": {"status": "funded"}}:
                await investments.refund_investment(first.investment.id, "owner-1")
            return await original(*args, **kwargs)

        with patch.object(service.deals, "find_one_and_update", refund_before_funded):
            second = await service.allocate(deal_id, investor, AllocationRequest(amount=600))

        assert second.deal.status == "open"
        deal = await deals_database.deals.find_one({"_id": to_oid(deal_id)})
        assert deal["status"] == "open"
        assert deal["remaining_capacity"] == 400.0
        assert deal["utilized_amount"] == 600.0

        # The freed capacity can still be taken, which funds the deal
        third = await service.allocate(deal_id, investor, AllocationRequest(amount=400))
        assert third.deal.status == "funded"

    @pytest.mark.asyncio
    async def test_in_flight_retry_moves_money_once(self, auth_database, deals_database):
        """A retry with the same key sent while the first request is running replays it."""
        from unittest.mock import patch

        from skalebitz.schemas.deal import AllocationRequest
        from skalebitz.services.deal_service import DealService

        deal_id = await seed_deal(deals_database, facility_size=10000.0)
        investor = await seed_user(auth_database, "ada@example.com", balance=5000.0)
        service = DealService(deals_database, auth_database)
        request = AllocationRequest(amount=200, idempotency_key="k1")

        original = service.users.find_one_and_update
        retried = []

        async def retry_during_debit(*args, **kwargs):
            if not retried:
                retried.append(None)
                retried[0] = await service.allocate(deal_id, investor, request)
            return await original(*args, **kwargs)

        with patch.object(service.users, "find_one_and_update", retry_during_debit):
            result = await service.allocate(deal_id, investor, request)

        assert result.investment.id == retried[0].investment.id
        assert await deals_database.investments.count_documents({"idempotency_key": "k1"}) == 1
        user = await auth_database.users.find_one({"email": "ada@example.com"})
        assert user["balance"] == 4800.0
        deal = await deals_database.deals.find_one({"_id": to_oid(deal_id)})
        assert deal["utilized_amount"] == 200.0
        assert deal["remaining_capacity"] == 9800.0

    @pytest.mark.asyncio
    async def test_failed_investment_write_releases_funds(self, auth_database, deals_database):
        """If the investment cannot be recorded, capacity, status and balance are restored."""
        from unittest.mock import AsyncMock, patch

        from pymongo.errors import PyMongoError

        from skalebitz.schemas.deal import AllocationRequest
        from skalebitz.services.deal_service import DealService

        deal_id = await seed_deal(deals_database)
        investor = await seed_user(auth_database, "ada@example.com", balance=1500.0)
        service = DealService(deals_database, auth_database)

        failing_insert = AsyncMock(side_effect=PyMongoError("write failed"))
        with patch.object(service.investments, "insert_one", failing_insert):
            with pytest.raises(PyMongoError):
                await service.allocate(deal_id, investor, AllocationRequest(amount=1000))

        deal = await deals_database.deals.find_one({"_id": to_oid(deal_id)})
        assert deal["status"] == "open"
        assert deal["utilized_amount"] == 0.0
        assert deal["remaining_capacity"] == 1000.0
        user = await auth_database.users.find_one({"email": "ada@example.com"})
        assert user["balance"] == 1500.0
        assert await deals_database.investments.count_documents({}) == 0


class TestDoubleSubmittedDeal:
    """Two create requests from the same MSME racing each other."""

    @pytest.mark.asyncio
    async def test_second_create_is_rejected(self, auth_database, deals_database):
        from unittest.mock import patch

        from skalebitz.schemas.deal import DealCreate
        from skalebitz.services.deal_service import DealService

        owner = await seed_user(auth_database, "kofi@example.com", account_type="msme")
        service = DealService(deals_database, auth_database)
        request = DealCreate(name="Kofi Textiles", sector="Manufacturing", target_yield=0.12)

        original = service.deals.insert_one
        raced = []

        async def create_during_insert(*args, **kwargs):
            if not raced:
                raced.append(None)
                raced[0] = await service.create_deal(owner, request)
            return await original(*args, **kwargs)

        with patch.object(service.deals, "insert_one", create_during_insert):
            with pytest.raises(ValueError, match="You already have a deal"):
                await service.create_deal(owner, request)

        assert await deals_database.deals.count_documents({"owner_id": owner.id}) == 1
        user = await auth_database.users.find_one({"email": "kofi@example.com"})
        assert user["deal_id"] == raced[0].id
