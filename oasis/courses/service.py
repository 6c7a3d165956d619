import copy
import logging
import math
import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from oasis.courses.models import ALL_DEPARTMENTS, Course, Lesson, total_duration
from oasis.errors import NotFoundError
from oasis.models import generate_id

logger = logging.getLogger(__name__)


def build_lessons(lessons: List[dict]) -> List[Lesson]:
    """
    Assign lesson/question ids and positions
    Lessons without an explicit order keep their list position.
    """
    built = []
    for index, data in enumerate(lessons):
        data = dict(data)
        data["lesson_id"] = data.get("lesson_id") or generate_id("LSN", 8)
        if data.get("order") is None:
            data["order"] = index
        if data.get("quiz"):
            quiz = dict(data["quiz"])
            quiz["questions"] = [
                {**q, "question_id": q.get("question_id") or generate_id("QST", 8)}
                for q in quiz.get("questions", [])
            ]
            data["quiz"] = quiz
        built.append(Lesson.model_validate(data))
    return sorted(built, key=lambda l: l.order)


def hide_answers(course: dict) -> dict:
    """Copy of the course without the correct-answer flags of quiz options"""
    course = copy.deepcopy(course)
    for lesson in course.get("lessons", []):
        quiz = lesson.get("quiz") or {}
        for question in quiz.get("questions", []):
            for option in question.get("options", []):
                option.pop("is_correct", None)
    return course

# ==================== COURSE CRUD ====================

async def create_course(db: AsyncIOMotorDatabase, course_data: dict, creator_id: str) -> dict:
    """Create course; duration is derived from the lessons"""
    now = datetime.utcnow()
    lessons = build_lessons(course_data.pop("lessons", []))
    enrollment = {k: v for k, v in (course_data.pop("enrollment", None) or {}).items() if v is not None}

    course = Course(
        course_id=generate_id("COURSE"),
        lessons=lessons,
        duration=total_duration(lessons),
        enrollment=enrollment,
        created_by=creator_id,
        last_updated_by=creator_id,
        published_at=now if course_data.get("is_published") else None,
        created_at=now,
        updated_at=now,
        **course_data
    )

    await db.courses.insert_one(course.to_document())
    logger.info("Course %s created by %s", course.course_id, creator_id)
    return course.to_document()


async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    course = await db.courses.find_one({"course_id": course_id}, {"_id": 0})
    if not course:
        raise NotFoundError("Course not found")
    return course


async def load_course(db: AsyncIOMotorDatabase, course_id: str) -> Course:
    return Course.model_validate(await get_course(db, course_id))


async def update_course(db: AsyncIOMotorDatabase, course_id: str, updates: dict, editor_id: str) -> dict:
    """
    Update course fields
    Replacing lessons recomputes duration; enrollment settings never touch the counter.
    """
    existing = await get_course(db, course_id)
    now = datetime.utcnow()

    update_data = {
        k: v.value if isinstance(v, Enum) else v
        for k, v in updates.items()
        if v is not None and k != "enrollment"
    }

    if "lessons" in update_data:
        lessons = build_lessons(update_data["lessons"])
        update_data["lessons"] = [l.to_document() for l in lessons]
        update_data["duration"] = total_duration(lessons)

    for key, value in (updates.get("enrollment") or {}).items():
        if value is not None:
            update_data[f"enrollment.{key}"] = value

    if update_data.get("is_published") and not existing.get("published_at"):
        update_data["published_at"] = now

    update_data["last_updated_by"] = editor_id
    update_data["updated_at"] = now

    course = await db.courses.find_one_and_update(
        {"course_id": course_id},
        {"$set": update_data},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER
    )
    if not course:
        raise NotFoundError("Course not found")
    return course


async def delete_course(db: AsyncIOMotorDatabase, course_id: str) -> int:
    """Delete course and every progress record attached to it"""
    result = await db.courses.delete_one({"course_id": course_id})
    if result.deleted_count == 0:
        raise NotFoundError("Course not found")

    removed = await db.progress.delete_many({"course_id": course_id})
    logger.info("Course %s deleted with %d progress records", course_id, removed.deleted_count)
    return removed.deleted_count


async def list_courses(db: AsyncIOMotorDatabase, filters: dict, page: int = 1, limit: int = 10) -> dict:
    """List published courses with search and filters"""
    query = {"is_published": True}

    if filters.get("search"):
        pattern = re.escape(filters["search"])
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"tags": {"$regex": pattern, "$options": "i"}},
        ]
    if filters.get("category"):
        query["category"] = filters["category"]
    if filters.get("department"):
        query["department"] = {"$in": [filters["department"], ALL_DEPARTMENTS]}
    if filters.get("level"):
        query["level"] = filters["level"]

    cursor = (
        db.courses.find(query, {"_id": 0})
        .sort("created_at", DESCENDING)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    courses = await cursor.to_list(length=limit)
    total = await db.courses.count_documents(query)

    return {
        "courses": courses,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }


async def update_rating_stats(db: AsyncIOMotorDatabase, course_id: str) -> Optional[dict]:
    """Recompute average rating from every rated progress record of the course"""
    cursor = db.progress.find(
        {"course_id": course_id, "rating.stars": {"$exists": True}},
        {"_id": 0, "rating.stars": 1}
    )
    stars = [doc["rating"]["stars"] for doc in await cursor.to_list(length=None)]
    stats = {
        "stats.total_ratings": len(stars),
        "stats.average_rating": round(sum(stars) / len(stars), 2) if stars else 0.0,
    }
    await db.courses.update_one({"course_id": course_id}, {"$set": stats})
    return stats
