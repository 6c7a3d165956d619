"""
Progress persistence
save_progress() is the only way a record reaches the database, and it always
re-derives status and percentage first.
"""

import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from oasis.courses.models import Course
from oasis.errors import ConflictError, InternalError, NotFoundError, ValidationError
from oasis.progress import tracker
from oasis.progress.models import Progress, ProgressStatus

logger = logging.getLogger(__name__)

COURSE_SUMMARY_FIELDS = {"_id": 0, "course_id": 1, "title": 1, "thumbnail": 1, "category": 1, "duration": 1}

# ==================== WRITE PATH ====================

async def save_progress(
    db: AsyncIOMotorDatabase,
    progress: Progress,
    course: Optional[Course] = None,
    now: Optional[datetime] = None
) -> Progress:
    """
    Refresh status, then replace the stored record
    The first transition into completed bumps the course completion counter.
    """
    now = now or datetime.utcnow()
    deadline = course.enrollment.end_date if course else None
    tracker.refresh_status(progress, now, deadline)
    progress.updated_at = now

    previous = await db.progress.find_one_and_replace(
        {"progress_id": progress.progress_id},
        progress.to_document(),
        projection={"status": 1},
        return_document=ReturnDocument.BEFORE
    )
    if previous is None:
        raise NotFoundError("Progress not found for this course")

    if previous.get("status") != ProgressStatus.COMPLETED and progress.status == ProgressStatus.COMPLETED:
        await db.courses.update_one(
            {"course_id": progress.course_id},
            {"$inc": {"stats.completions": 1}}
        )
        logger.info("User %s completed course %s", progress.user_id, progress.course_id)

    return progress

# ==================== ENROLLMENT ====================

def check_enrollment_open(course: Course, now: datetime):
    if not course.is_published:
        raise ValidationError("Course is not available for enrollment")
    if not course.enrollment.is_open:
        raise ValidationError("Enrollment is closed for this course")
    if course.enrollment.start_date and now < course.enrollment.start_date:
        raise ValidationError("Enrollment has not opened yet")
    if course.enrollment.end_date and now > course.enrollment.end_date:
        raise ValidationError("Enrollment period has ended")


async def enroll_user(db: AsyncIOMotorDatabase, course: Course, user_id: str) -> Progress:
    """
    Create the progress record for (user, course) and count the enrollment

    The existence check is only a fast path: the unique (user_id, course_id)
    index decides. The counter is bumped atomically and only while below
    capacity; if that fails the new record is removed again.
    """
    now = datetime.utcnow()
    check_enrollment_open(course, now)

    if await db.progress.find_one({"user_id": user_id, "course_id": course.course_id}, {"_id": 1}):
        raise ConflictError("Already enrolled in this course")

    progress = tracker.new_progress(user_id, course, now)
    try:
        await db.progress.insert_one(progress.to_document())
    except DuplicateKeyError:
        raise ConflictError("Already enrolled in this course")

    counter_filter = {"course_id": course.course_id}
    if course.enrollment.capacity > 0:
        counter_filter["enrollment.enrolled"] = {"$lt": course.enrollment.capacity}

    try:
        result = await db.courses.update_one(counter_filter, {"$inc": {"enrollment.enrolled": 1}})
    except PyMongoError as e:
        await db.progress.delete_one({"progress_id": progress.progress_id})
        logger.error("Enrollment counter update failed for %s: %s", course.course_id, e)
        raise InternalError("Could not complete enrollment") from e

    if result.modified_count == 0:
        await db.progress.delete_one({"progress_id": progress.progress_id})
        raise ValidationError("Course is full")

    logger.info("User %s enrolled in course %s", user_id, course.course_id)
    return progress

# ==================== READS ====================

async def find_progress(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> Optional[Progress]:
    doc = await db.progress.find_one({"user_id": user_id, "course_id": course_id}, {"_id": 0})
    return Progress.model_validate(doc) if doc else None


async def get_progress(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> Progress:
    progress = await find_progress(db, user_id, course_id)
    if not progress:
        raise NotFoundError("Progress not found for this course")
    return progress


async def list_progress(db: AsyncIOMotorDatabase, user_id: Optional[str] = None) -> List[dict]:
    """Progress records, newest activity first, each with a course summary"""
    query = {"user_id": user_id} if user_id else {}
    cursor = db.progress.find(query, {"_id": 0}).sort("updated_at", DESCENDING)
    records = await cursor.to_list(length=None)

    course_ids = list({r["course_id"] for r in records})
    courses = {}
    if course_ids:
        course_cursor = db.courses.find({"course_id": {"$in": course_ids}}, COURSE_SUMMARY_FIELDS)
        courses = {c["course_id"]: c for c in await course_cursor.to_list(length=None)}

    for record in records:
        record["course"] = courses.get(record["course_id"])
    return records


async def find_certificate(db: AsyncIOMotorDatabase, certificate_id: str) -> dict:
    """Certificate holder, course and validity for a certificate id"""
    record = await db.progress.find_one(
        {"certificate.certificate_id": certificate_id, "certificate.issued": True},
        {"_id": 0}
    )
    if not record:
        raise NotFoundError("Certificate not found")

    user = await db.users.find_one(
        {"user_id": record["user_id"]},
        {"_id": 0, "first_name": 1, "last_name": 1, "department": 1}
    ) or {}
    course = await db.courses.find_one({"course_id": record["course_id"]}, COURSE_SUMMARY_FIELDS) or {}

    certificate = record["certificate"]
    valid_until = certificate.get("valid_until")
    return {
        "certificate_id": certificate_id,
        "user_id": record["user_id"],
        "holder_name": f"{user.get('first_name', '')} {user.get('last_name', '')}".strip(),
        "department": user.get("department"),
        "course_id": record["course_id"],
        "course_title": course.get("title"),
        "issued_at": certificate.get("issued_at"),
        "valid_until": valid_until,
        "is_valid": valid_until is None or valid_until > datetime.utcnow(),
        "completed_at": record.get("completed_at"),
    }
