"""
Deals database configuration.
Stores MSME deals (credit facilities) and the investments allocated to them.
"""

DB_NAME = "deals_db"


class Collections:
    """Collection names in deals_db."""
    DEALS = "deals"
    INVESTMENTS = "investments"
    METADATA = "_metadata"


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Deal listings, capacity bookkeeping and investor allocations",
    "collections": [Collections.DEALS, Collections.INVESTMENTS, Collections.METADATA],
    "access_level": "user",
}


async def create_deal_indexes(db) -> None:
    """Create indexes used by deal listing and investment lookups."""
    deals = db[Collections.DEALS]
    await deals.create_index([("created_at", -1)])
    # One deal per MSME
    await deals.create_index("owner_id", unique=True)
    await deals.create_index([("sector", 1), ("status", 1)])

    investments = db[Collections.INVESTMENTS]
    await investments.create_index([("investor_id", 1), ("created_at", -1)])
    await investments.create_index([("deal_id", 1), ("status", 1)])
    # Allocation retries: a key is spent once per investor, keyless allocations are not indexed
    await investments.create_index(
        [("investor_id", 1), ("idempotency_key", 1)],
        unique=True,
        partialFilterExpression={"idempotency_key": {"$type": "string"}},
    )
