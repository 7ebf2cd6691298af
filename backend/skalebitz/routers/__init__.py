"""
API Routers module.
"""
from skalebitz.routers import auth, deals, health, investments, stats, users

__all__ = ["auth", "deals", "health", "investments", "stats", "users"]
