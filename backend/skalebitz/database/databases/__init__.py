"""
Database definitions and collection constants.
"""
from skalebitz.database.databases import auth_db, deals_db, system_db

__all__ = ["auth_db", "deals_db", "system_db"]
