"""
Database module - MongoDB and Redis connections and database definitions.
"""
from skalebitz.database.connections import (
    get_mongo_client,
    get_redis_client,
    close_connections,
    get_database,
)
from skalebitz.database.databases import auth_db, deals_db, system_db

__all__ = [
    "get_mongo_client",
    "get_redis_client",
    "close_connections",
    "get_database",
    "auth_db",
    "deals_db",
    "system_db",
]
