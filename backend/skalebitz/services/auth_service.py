"""
Authentication service for user management and login.
"""
import logging
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from skalebitz.config import get_settings
from skalebitz.core.rate_limit import (
    check_user_lockout,
    increment_failed_login,
    reset_failed_attempts,
    set_user_lockout,
)
from skalebitz.core.security import (
    create_access_token,
    generate_one_time_token,
    hash_one_time_token,
    hash_password,
    verify_password,
)
from skalebitz.core.utils import as_utc, to_object_id, utcnow
from skalebitz.database.databases import auth_db
from skalebitz.models.user import AccountType, User, UserStatus
from skalebitz.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfoResponse,
)
from skalebitz.services import notification_service

logger = logging.getLogger(__name__)


def user_to_info_response(doc: dict) -> UserInfoResponse:
    """Convert a users document (or User dump) to UserInfoResponse."""
    return UserInfoResponse(
        id=str(doc.get("_id") or doc.get("id")),
        email=doc["email"],
        name=doc.get("name", ""),
        account_type=doc["account_type"],
        status=doc.get("status", UserStatus.ACTIVE.value),
        balance=round(doc.get("balance", 0.0), 2),
        deal_id=doc.get("deal_id"),
        about=doc.get("about"),
        avatar_url=doc.get("avatar_url"),
        pending_email=doc.get("pending_email"),
        created_at=as_utc(doc["created_at"]),
    )


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialize with auth database."""
        self.db = db
        self.users_collection = db[auth_db.Collections.USERS]
        self.settings = get_settings()

    def _token_response(self, user_doc: dict) -> LoginResponse:
        user_id = str(user_doc["_id"])
        access_token = create_access_token(
            user_id=user_id,
            email=user_doc["email"],
            account_type=user_doc["account_type"],
        )
        return LoginResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=self.settings.jwt_access_token_expire_minutes * 60,
            user=user_to_info_response(user_doc),
        )

    async def register_user(self, request: RegisterRequest) -> RegisterResponse:
        """
        Register a new user and sign them in.

        Raises:
            ValueError: If passwords don't match or email exists
        """
        if not request.passwords_match():
            raise ValueError("Passwords do not match")

        email = request.email.lower()
        existing = await self.users_collection.find_one({"email": email})
        if existing:
            raise ValueError("Email already registered")

        account_type = AccountType(request.account_type)
        now = utcnow()
        user_doc = {
            "email": email,
            "hashed_password": hash_password(request.password),
            "name": request.name.strip(),
            "account_type": account_type.value,
            "status": UserStatus.ACTIVE.value,
            "balance": 0.0,
            "deal_id": None,
            "about": None,
            "avatar_url": None,
            "pending_email": None,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.users_collection.insert_one(user_doc)
        except DuplicateKeyError:
            raise ValueError("Email already registered")
        user_doc["_id"] = result.inserted_id

        logger.info("Registered %s account %s", account_type.value, result.inserted_id)
        token = self._token_response(user_doc)
        return RegisterResponse(**token.model_dump())

    async def login(self, request: LoginRequest) -> LoginResponse:
        """
        Authenticate user and return JWT token.

        Raises:
            ValueError: If credentials are invalid or account is locked
        """
        user_doc = await self.users_collection.find_one({"email": request.email.lower()})

        if not user_doc:
            raise ValueError("Invalid email or password")

        user_id = str(user_doc["_id"])

        if await check_user_lockout(user_id):
            raise ValueError("Account temporarily locked due to too many failed attempts")

        if user_doc.get("status") == UserStatus.DISABLED.value:
            raise ValueError("Account is disabled")

        if not verify_password(request.password, user_doc["hashed_password"]):
            failed_count = await increment_failed_login(user_id)
            if failed_count >= self.settings.user_lockout_threshold:
                await set_user_lockout(user_id, self.settings.user_lockout_duration_minutes)
            raise ValueError("Invalid email or password")

        await reset_failed_attempts(user_id)
        return self._token_response(user_doc)

    async def refresh_token(self, user_id: str) -> LoginResponse:
        """
        Refresh JWT token for an authenticated user.

        Raises:
            ValueError: If user not found or disabled
        """
        user_doc = await self.users_collection.find_one({"_id": to_object_id(user_id)})

        if not user_doc:
            raise ValueError("User not found")

        if user_doc.get("status") == UserStatus.DISABLED.value:
            raise ValueError("Account is disabled")

        return self._token_response(user_doc)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID, or None if the id is malformed or unknown."""
        oid = to_object_id(user_id)
        if oid is None:
            return None

        user_doc = await self.users_collection.find_one({"_id": oid})
        if not user_doc:
            return None

        user_doc["_id"] = str(user_doc["_id"])
        return User(**user_doc)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        user_doc = await self.users_collection.find_one({"email": email.lower()})

        if not user_doc:
            return None

        user_doc["_id"] = str(user_doc["_id"])
        return User(**user_doc)

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> dict:
        """
        Change user password after verifying current password.

        Raises:
            ValueError: If current password is incorrect or user not found
        """
        oid = to_object_id(user_id)
        if oid is None:
            raise ValueError("Invalid user ID")

        user_doc = await self.users_collection.find_one({"_id": oid})
        if not user_doc:
            raise ValueError("User not found")

        if not verify_password(current_password, user_doc["hashed_password"]):
            raise ValueError("Current password is incorrect")

        await self.users_collection.update_one(
            {"_id": oid},
            {"$set": {"hashed_password": hash_password(new_password), "updated_at": utcnow()}},
        )

        return {
            "message": "Password changed successfully",
            "user_id": user_id,
            "email": user_doc["email"],
        }

    # ==================== Password reset ====================

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a single-use reset token if the email belongs to an account.

        Returns the raw token (already handed to the notifier) or None.
        Callers must answer identically in both cases.
        """
        user_doc = await self.users_collection.find_one({"email": email.lower()})
        if not user_doc:
            logger.info("Password reset requested for unknown email")
            return None

        raw_token, token_hash = generate_one_time_token()
        expires_at = utcnow() + timedelta(minutes=self.settings.password_reset_token_expire_minutes)
        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$set": {
                "password_reset_token_hash": token_hash,
                "password_reset_expires_at": expires_at,
            }},
        )
        notification_service.send_password_reset(user_doc["email"], raw_token)
        return raw_token

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password using a reset token. The token is consumed.

        Raises:
            ValueError: If the token is unknown or expired
        """
        token_hash = hash_one_time_token(token)
        user_doc = await self.users_collection.find_one({"password_reset_token_hash": token_hash})
        if not user_doc:
            raise ValueError("Invalid or expired reset token")

        expires_at = as_utc(user_doc.get("password_reset_expires_at"))
        if expires_at is None or expires_at < utcnow():
            await self._clear_reset_token(user_doc["_id"])
            raise ValueError("Invalid or expired reset token")

        result = await self.users_collection.update_one(
            {"_id": user_doc["_id"], "password_reset_token_hash": token_hash},
            {
                "$set": {"hashed_password": hash_password(new_password), "updated_at": utcnow()},
                "$unset": {"password_reset_token_hash": "", "password_reset_expires_at": ""},
            },
        )
        if result.modified_count == 0:
            raise ValueError("Invalid or expired reset token")

        await reset_failed_attempts(str(user_doc["_id"]))
        logger.info("Password reset completed for user %s", user_doc["_id"])

    async def _clear_reset_token(self, oid) -> None:
        await self.users_collection.update_one(
            {"_id": oid},
            {"$unset": {"password_reset_token_hash": "", "password_reset_expires_at": ""}},
        )

    # ==================== Email verification ====================

    async def verify_email(self, token: str) -> UserInfoResponse:
        """
        Apply a pending email change.

        Raises:
            ValueError: If the token is invalid, expired, or the address was taken meanwhile
        """
        token_hash = hash_one_time_token(token)
        user_doc = await self.users_collection.find_one(
            {"email_verification_token_hash": token_hash}
        )
        if not user_doc or not user_doc.get("pending_email"):
            raise ValueError("Invalid or expired verification token")

        expires_at = as_utc(user_doc.get("email_verification_expires_at"))
        if expires_at is None or expires_at < utcnow():
            raise ValueError("Invalid or expired verification token")

        new_email = user_doc["pending_email"]
        taken = await self.users_collection.find_one(
            {"email": new_email, "_id": {"$ne": user_doc["_id"]}}
        )
        if taken:
            raise ValueError("Email already registered")

        try:
            await self.users_collection.update_one(
                {"_id": user_doc["_id"]},
                {
                    "$set": {"email": new_email, "pending_email": None, "updated_at": utcnow()},
                    "$unset": {
                        "email_verification_token_hash": "",
                        "email_verification_expires_at": "",
                    },
                },
            )
        except DuplicateKeyError:
            raise ValueError("Email already registered")

        logger.info("Email changed for user %s", user_doc["_id"])
        updated = await self.users_collection.find_one({"_id": user_doc["_id"]})
        return user_to_info_response(updated)
