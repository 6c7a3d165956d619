import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from oasis.config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(get_settings().mongo_url)
    return _client


def get_db_instance() -> AsyncIOMotorDatabase:
    return get_client()[get_settings().mongo_db_name]


# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create MongoDB indexes
    The unique indexes are what make registration and enrollment safe
    under concurrent requests; application checks are only a fast path.
    """

    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index([("department", ASCENDING), ("role", ASCENDING)])

    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index([("category", ASCENDING), ("department", ASCENDING)])
    await db.courses.create_index("level")
    await db.courses.create_index("tags")
    await db.courses.create_index("is_published")
    await db.courses.create_index([("created_at", DESCENDING)])

    # Progress
    await db.progress.create_index("progress_id", unique=True)
    await db.progress.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True)
    await db.progress.create_index([("user_id", ASCENDING), ("status", ASCENDING)])
    await db.progress.create_index([("course_id", ASCENDING), ("status", ASCENDING)])
    await db.progress.create_index("certificate.certificate_id")
    await db.progress.create_index([("completed_at", DESCENDING)])
    await db.progress.create_index([("last_accessed_at", DESCENDING)])

    logger.info("Database indexes created")
