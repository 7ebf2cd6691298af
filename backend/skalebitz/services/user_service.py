"""
User profile service: public profiles, profile edits, balance top-ups
and account deletion.
"""
import logging
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from skalebitz.config import get_settings
from skalebitz.core.amounts import validate_amount
from skalebitz.core.security import generate_one_time_token
from skalebitz.core.utils import as_utc, to_object_id, utcnow
from skalebitz.database.databases import auth_db, deals_db
from skalebitz.models.investment import InvestmentStatus
from skalebitz.models.user import AccountType
from skalebitz.schemas.auth import UserInfoResponse
from skalebitz.schemas.user import PublicProfileResponse, UserUpdate
from skalebitz.services import notification_service
from skalebitz.services.auth_service import user_to_info_response

logger = logging.getLogger(__name__)

# Investments in these states still tie money to a deal
OPEN_INVESTMENT_STATUSES = [InvestmentStatus.ACTIVE.value]


class UserService:
    """Service for user profile operations."""

    def __init__(self, db: AsyncIOMotorDatabase, deals_db_instance: AsyncIOMotorDatabase):
        """Initialize with auth database and deals database."""
        self.db = db
        self.users = db[auth_db.Collections.USERS]
        self.deals = deals_db_instance[deals_db.Collections.DEALS]
        self.investments = deals_db_instance[deals_db.Collections.INVESTMENTS]
        self.settings = get_settings()

    async def get_public_profile(
        self, user_id: str, viewer_id: Optional[str] = None
    ) -> Optional[PublicProfileResponse]:
        """Public view of a user; email is only shown to the user themself."""
        oid = to_object_id(user_id)
        if oid is None:
            return None

        user_doc = await self.users.find_one({"_id": oid})
        if not user_doc:
            return None

        is_self = viewer_id is not None and viewer_id == str(user_doc["_id"])
        return PublicProfileResponse(
            id=str(user_doc["_id"]),
            name=user_doc.get("name", ""),
            account_type=user_doc["account_type"],
            about=user_doc.get("about"),
            avatar_url=user_doc.get("avatar_url"),
            deal_id=user_doc.get("deal_id"),
            email=user_doc["email"] if is_self else None,
            created_at=as_utc(user_doc["created_at"]),
        )

    async def update_profile(self, user_id: str, request: UserUpdate) -> Optional[UserInfoResponse]:
        """
        Update name/about/avatar. A changed email is parked in
        `pending_email` until the verification token is used.

        Raises:
            ValueError: If the new email belongs to another account
        """
        oid = to_object_id(user_id)
        if oid is None:
            return None

        user_doc = await self.users.find_one({"_id": oid})
        if not user_doc:
            return None

        update_data = request.model_dump(exclude_unset=True, exclude={"email"})
        update_data = {k: v for k, v in update_data.items() if v is not None}
        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()

        if request.email and request.email.lower() != user_doc["email"]:
            await self.request_email_change(user_id, request.email)

        if update_data:
            update_data["updated_at"] = utcnow()
            await self.users.update_one({"_id": oid}, {"$set": update_data})

        updated = await self.users.find_one({"_id": oid})
        return user_to_info_response(updated)

    async def request_email_change(self, user_id: str, new_email: str) -> str:
        """
        Start an email change and send the verification token to the new address.

        Returns:
            The raw verification token

        Raises:
            ValueError: If the address is already registered
        """
        new_email = new_email.lower()
        if await self.users.find_one({"email": new_email}):
            raise ValueError("Email already registered")

        raw_token, token_hash = generate_one_time_token()
        expires_at = utcnow() + timedelta(minutes=self.settings.email_verification_token_expire_minutes)
        await self.users.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {
                "pending_email": new_email,
                "email_verification_token_hash": token_hash,
                "email_verification_expires_at": expires_at,
            }},
        )
        notification_service.send_email_verification(new_email, raw_token)
        return raw_token

    async def top_up(self, user_id: str, amount: float) -> Optional[UserInfoResponse]:
        """
        Credit an investor balance.

        Raises:
            ValueError: For invalid amounts
        """
        amount = validate_amount(amount, self.settings.max_investment_amount)

        user_doc = await self.users.find_one_and_update(
            {"_id": to_object_id(user_id), "account_type": AccountType.INVESTOR.value},
            {"$inc": {"balance": amount}, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not user_doc:
            return None

        logger.info("Investor %s topped up %s", user_id, amount)
        return user_to_info_response(user_doc)

    async def delete_account(self, user_id: str) -> bool:
        """
        Delete an account that no longer has money tied up in deals.

        Raises:
            ValueError: If the investor has active investments, or the
                MSME's deal has active investors
        """
        oid = to_object_id(user_id)
        if oid is None:
            return False

        user_doc = await self.users.find_one({"_id": oid})
        if not user_doc:
            return False

        if user_doc["account_type"] == AccountType.INVESTOR.value:
            active = await self.investments.count_documents({
                "investor_id": user_id,
                "status": {"$in": OPEN_INVESTMENT_STATUSES},
            })
            if active:
                raise ValueError("Cannot delete account with active investments")
        else:
            deal_doc = await self.deals.find_one({"owner_id": user_id})
            if deal_doc:
                active = await self.investments.count_documents({
                    "deal_id": str(deal_doc["_id"]),
                    "status": {"$in": OPEN_INVESTMENT_STATUSES},
                })
                if active:
                    raise ValueError("Cannot delete account while your deal has active investments")
                await self.deals.delete_one({"_id": deal_doc["_id"]})

        result = await self.users.delete_one({"_id": oid})
        logger.info("Deleted %s account %s", user_doc["account_type"], user_id)
        return result.deleted_count > 0
