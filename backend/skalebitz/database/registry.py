"""
Database registry management.
Ensures all databases and collections are registered on startup.
"""
import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from skalebitz.database.databases import auth_db, deals_db, system_db

logger = logging.getLogger(__name__)

ALL_DB_MANIFESTS = [
    auth_db.DB_MANIFEST,
    deals_db.DB_MANIFEST,
    system_db.DB_MANIFEST,
]

SCHEMA_VERSION = "1.0"


async def sync_registry(client: AsyncIOMotorClient) -> None:
    """
    Synchronize the database registry on application startup.
    Every database is upserted into system_db.db_registry and gets a
    `_metadata` document of its own.
    """
    registry_collection = client[system_db.DB_NAME][system_db.Collections.DB_REGISTRY]
    now = datetime.now(timezone.utc)

    for manifest in ALL_DB_MANIFESTS:
        db_name = manifest["db_name"]

        await registry_collection.update_one(
            {"_id": db_name},
            {
                "$set": {
                    "purpose": manifest["purpose"],
                    "collections": manifest["collections"],
                    "access_level": manifest["access_level"],
                    "schema_version": SCHEMA_VERSION,
                    "updated_at": now,
                },
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

        await client[db_name]["_metadata"].update_one(
            {"_id": "db_metadata"},
            {
                "$set": {"db_name": db_name, "last_updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )
        logger.debug("Registered database %s", db_name)


async def create_indexes(client: AsyncIOMotorClient) -> None:
    """Create necessary indexes for all databases."""
    users = client[auth_db.DB_NAME][auth_db.Collections.USERS]
    await users.create_index("email", unique=True)
    await users.create_index("password_reset_token_hash", sparse=True)
    await users.create_index("email_verification_token_hash", sparse=True)

    await deals_db.create_deal_indexes(client[deals_db.DB_NAME])
