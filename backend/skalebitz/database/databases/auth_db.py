"""
Auth database configuration.
Stores user identity, profile and balance data for investors and MSMEs.
"""

DB_NAME = "auth_db"


class Collections:
    """Collection names in auth_db."""
    USERS = "users"
    METADATA = "_metadata"


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "User accounts, authentication and investor balances",
    "collections": [Collections.USERS, Collections.METADATA],
    "access_level": "restricted",
}
