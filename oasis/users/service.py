import logging
import math
import re
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from oasis.auth.passwords import hash_password, verify_password
from oasis.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from oasis.models import generate_id
from oasis.progress import dashboard
from oasis.progress.models import Progress
from oasis.progress.tracker import record_activity
from oasis.users.models import StreakData, User

logger = logging.getLogger(__name__)

PUBLIC_PROJECTION = {"_id": 0, "password_hash": 0}


def public_user(doc: dict) -> dict:
    doc.pop("_id", None)
    doc.pop("password_hash", None)
    return doc

# ==================== REGISTRATION & LOGIN ====================

async def create_user(db: AsyncIOMotorDatabase, data: dict) -> dict:
    """
    Register a new user
    The unique email index is the real guard; the lookup only gives an early answer.
    """
    if await db.users.find_one({"email": data["email"]}, {"_id": 1}):
        raise ConflictError("Email is already registered.")

    user = User(
        user_id=generate_id("USR"),
        first_name=data["first_name"],
        last_name=data["last_name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        department=data["department"],
        position=data.get("position"),
    )

    try:
        await db.users.insert_one(user.to_document())
    except DuplicateKeyError:
        raise ConflictError("Email is already registered.")

    logger.info("Registered user %s (%s)", user.user_id, user.department)
    return public_user(user.to_document())


async def authenticate(db: AsyncIOMotorDatabase, email: str, password: str) -> dict:
    """
    Check credentials, stamp last_login and the login streak

    Raises:
        400: unknown email or wrong password
        403: account inactive
    """
    doc = await db.users.find_one({"email": email})
    if not doc:
        raise ValidationError("User not found.")

    if not verify_password(password, doc.get("password_hash", "")):
        raise ValidationError("Invalid credentials.")

    if not doc.get("is_active", True):
        raise AuthorizationError("Account is inactive. Please contact support.")

    now = datetime.utcnow()
    stats = record_activity(StreakData.model_validate(doc.get("stats") or {}), now)

    updated = await db.users.find_one_and_update(
        {"user_id": doc["user_id"]},
        {"$set": {"last_login": now, "stats": stats.to_document()}},
        projection=PUBLIC_PROJECTION,
        return_document=ReturnDocument.AFTER
    )
    return updated

# ==================== PROFILES ====================

async def get_user(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    user = await db.users.find_one({"user_id": user_id}, PUBLIC_PROJECTION)
    if not user:
        raise NotFoundError("User not found")
    return user


async def update_user(db: AsyncIOMotorDatabase, user_id: str, updates: dict) -> dict:
    """Apply non-null fields; email changes must stay unique"""
    update_data = {k: v for k, v in updates.items() if v is not None}
    if "email" in update_data:
        update_data["email"] = update_data["email"].strip().lower()
    update_data["updated_at"] = datetime.utcnow()

    try:
        user = await db.users.find_one_and_update(
            {"user_id": user_id},
            {"$set": update_data},
            projection=PUBLIC_PROJECTION,
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Email is already registered.")

    if not user:
        raise NotFoundError("User not found")
    return user


async def deactivate_user(db: AsyncIOMotorDatabase, user_id: str):
    """Soft delete: users are never removed"""
    result = await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info("Deactivated user %s", user_id)


async def change_password(db: AsyncIOMotorDatabase, user_id: str, current_password: str, new_password: str):
    doc = await db.users.find_one({"user_id": user_id}, {"password_hash": 1})
    if not doc:
        raise NotFoundError("User not found")

    if not verify_password(current_password, doc.get("password_hash", "")):
        raise ValidationError("Current password is incorrect")

    await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"password_hash": hash_password(new_password), "updated_at": datetime.utcnow()}}
    )

# ==================== DIRECTORY ====================

async def list_users(db: AsyncIOMotorDatabase, filters: dict, page: int = 1, limit: int = 10) -> dict:
    """List users with search, department, role and active-status filters"""
    query = {}
    if filters.get("search"):
        pattern = re.escape(filters["search"])
        query["$or"] = [
            {"first_name": {"$regex": pattern, "$options": "i"}},
            {"last_name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    if filters.get("department"):
        query["department"] = filters["department"]
    if filters.get("role"):
        query["role"] = filters["role"]
    if filters.get("status"):
        query["is_active"] = filters["status"] == "active"

    cursor = (
        db.users.find(query, PUBLIC_PROJECTION)
        .sort("created_at", DESCENDING)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    users = await cursor.to_list(length=limit)
    total = await db.users.count_documents(query)

    return {
        "users": users,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }

# ==================== DASHBOARD ====================

async def get_dashboard_stats(db: AsyncIOMotorDatabase, user_id: str, stats: Optional[dict] = None) -> dict:
    cursor = db.progress.find({"user_id": user_id}, {"_id": 0})
    records = [Progress.model_validate(doc) for doc in await cursor.to_list(length=None)]
    return dashboard.dashboard_stats(records, StreakData.model_validate(stats or {}))
