from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from oasis.auth.permissions import (
    UserContext, authorize_course_access, get_current_user, require_roles
)
from oasis.courses import service
from oasis.courses.models import Category, Course, Level
from oasis.courses.schemas import CourseCreate, CourseUpdate
from oasis.database import get_db
from oasis.progress import service as progress_service
from oasis.users.models import Role

router = APIRouter(prefix="/courses", tags=["Courses"])


def _course_view(course: dict, user: UserContext) -> dict:
    return course if user.is_admin else service.hide_answers(course)

# ==================== CATALOG ====================

@router.get("")
async def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[Category] = None,
    department: Optional[str] = None,
    level: Optional[Level] = None,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """List published courses with filtering and pagination"""
    filters = {
        "search": search,
        "category": category.value if category else None,
        "department": department,
        "level": level.value if level else None,
    }
    result = await service.list_courses(db, filters, page, limit)
    result["courses"] = [_course_view(c, user) for c in result["courses"]]
    result["message"] = "Courses retrieved successfully"
    return result


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    course: dict = Depends(authorize_course_access),
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Single course plus the caller's progress, if enrolled"""
    progress = await progress_service.find_progress(db, user.user_id, course_id)
    return {
        "course": _course_view(course, user),
        "progress": progress.to_document() if progress else None,
        "message": "Course retrieved successfully"
    }


@router.post("/{course_id}/enroll")
async def enroll(
    course_id: str,
    course: dict = Depends(authorize_course_access),
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress = await progress_service.enroll_user(db, Course.model_validate(course), user.user_id)
    return {
        "progress": progress.to_document(),
        "message": "Successfully enrolled in course"
    }

# ==================== ADMIN CRUD ====================

@router.post("", status_code=201)
async def create_course(
    data: CourseCreate,
    user: UserContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    course = await service.create_course(db, data.model_dump(), user.user_id)
    return {"course": course, "message": "Course created successfully"}


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    data: CourseUpdate,
    user: UserContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    course = await service.update_course(db, course_id, data.model_dump(exclude_none=True), user.user_id)
    return {"course": course, "message": "Course updated successfully"}


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    user: UserContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Delete course and all progress records for it"""
    await service.delete_course(db, course_id)
    return {"message": "Course deleted successfully"}
