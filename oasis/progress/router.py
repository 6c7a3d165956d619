import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from oasis.auth.permissions import (
    UserContext, get_current_user, get_optional_user, require_owner_or_admin
)
from oasis.courses import service as course_service
from oasis.database import get_db
from oasis.errors import ValidationError
from oasis.progress import service, tracker
from oasis.progress.models import Answer
from oasis.progress.schemas import (
    BookmarkCreate, FinalAssessmentSubmission, LessonUpdate, NoteCreate,
    ProgressUpdate, QuizSubmission, RatingSubmission
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])


async def _load(db: AsyncIOMotorDatabase, user: UserContext, course_id: str):
    progress = await service.get_progress(db, user.user_id, course_id)
    course = await course_service.load_course(db, course_id)
    return progress, course


def _progress_response(progress, message: str, **extra) -> dict:
    return {"progress": progress.to_document(), "message": message, **extra}

# ==================== READS ====================

@router.get("")
async def list_progress(
    user_id: Optional[str] = Query(None),
    user: UserContext = Depends(require_owner_or_admin("user_id")),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Progress of one user; admins may omit user_id to list everyone"""
    progress = await service.list_progress(db, user_id)
    return {"progress": progress, "message": "Progress retrieved successfully"}


@router.get("/course/{course_id}")
async def get_course_progress(
    course_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress = await service.get_progress(db, user.user_id, course_id)
    return _progress_response(progress, "Progress retrieved successfully")


@router.get("/certificates/{certificate_id}")
async def verify_certificate(
    certificate_id: str,
    user: Optional[UserContext] = Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Public certificate verification; is_owner only when the caller is identified"""
    certificate = await service.find_certificate(db, certificate_id)
    certificate["is_owner"] = bool(user and user.user_id == certificate["user_id"])
    return {"certificate": certificate, "message": "Certificate verified"}

# ==================== LESSONS ====================

@router.put("/course/{course_id}")
async def update_course_progress(
    course_id: str,
    data: ProgressUpdate,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Apply a batch of lesson updates to the caller's record"""
    progress, course = await _load(db, user, course_id)
    for item in data.lessons:
        tracker.update_lesson(
            progress, item.lesson_id,
            status=item.status,
            time_spent=item.time_spent,
            current_position=item.current_position
        )
    await service.save_progress(db, progress, course)
    return _progress_response(progress, "Progress updated successfully")


@router.put("/course/{course_id}/lessons/{lesson_id}")
async def update_lesson_progress(
    course_id: str,
    lesson_id: str,
    data: LessonUpdate,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    tracker.update_lesson(
        progress, lesson_id,
        status=data.status,
        time_spent=data.time_spent,
        current_position=data.current_position
    )
    await service.save_progress(db, progress, course)
    return _progress_response(progress, "Lesson progress updated successfully")

# ==================== ASSESSMENTS ====================

@router.post("/course/{course_id}/lessons/{lesson_id}/quiz")
async def submit_quiz(
    course_id: str,
    lesson_id: str,
    data: QuizSubmission,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Grade a quiz attempt against the lesson quiz and record it"""
    progress, course = await _load(db, user, course_id)

    lesson = course.get_lesson(lesson_id)
    if lesson is None or lesson.quiz is None or not lesson.quiz.questions:
        raise ValidationError("This lesson has no quiz")

    score, correct, answers = tracker.grade_quiz(lesson.quiz, data.answers)
    attempt = tracker.record_quiz_attempt(
        progress, lesson_id,
        score=score,
        passed=score >= lesson.quiz.passing_score,
        answers=answers,
        total_questions=len(lesson.quiz.questions),
        correct_answers=correct,
        time_spent=data.time_spent
    )
    await service.save_progress(db, progress, course)
    return _progress_response(progress, "Quiz submitted successfully", attempt=attempt.to_document())


@router.post("/course/{course_id}/final-assessment")
async def submit_final_assessment(
    course_id: str,
    data: FinalAssessmentSubmission,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    attempt = tracker.record_final_assessment_attempt(
        progress,
        score=data.score,
        answers=[Answer(**a.model_dump()) for a in data.answers],
        time_spent=data.time_spent
    )
    await service.save_progress(db, progress, course)
    return _progress_response(progress, "Final assessment submitted successfully", attempt=attempt.to_document())

# ==================== CERTIFICATE ====================

@router.post("/course/{course_id}/certificate")
async def issue_certificate(
    course_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Issue the course certificate; repeated calls return the same one"""
    progress, course = await _load(db, user, course_id)
    certificate, issued_now = tracker.issue_certificate(progress, course)
    if issued_now:
        await service.save_progress(db, progress, course)
        logger.info("Certificate %s issued to %s for %s", certificate.certificate_id, user.user_id, course_id)
    return {
        "certificate": certificate.to_document(),
        "message": "Certificate issued successfully" if issued_now else "Certificate already issued"
    }

# ==================== NOTES & BOOKMARKS ====================

@router.post("/course/{course_id}/notes", status_code=201)
async def add_note(
    course_id: str,
    data: NoteCreate,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    note = tracker.add_note(progress, data.lesson_id, data.content, data.timestamp)
    await service.save_progress(db, progress, course)
    return {"note": note.to_document(), "message": "Note added successfully"}


@router.delete("/course/{course_id}/notes/{note_id}")
async def delete_note(
    course_id: str,
    note_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    tracker.remove_note(progress, note_id)
    await service.save_progress(db, progress, course)
    return {"message": "Note deleted successfully"}


@router.post("/course/{course_id}/bookmarks", status_code=201)
async def add_bookmark(
    course_id: str,
    data: BookmarkCreate,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    bookmark = tracker.add_bookmark(progress, data.lesson_id, data.timestamp, data.title, data.description)
    await service.save_progress(db, progress, course)
    return {"bookmark": bookmark.to_document(), "message": "Bookmark added successfully"}


@router.delete("/course/{course_id}/bookmarks/{bookmark_id}")
async def delete_bookmark(
    course_id: str,
    bookmark_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    tracker.remove_bookmark(progress, bookmark_id)
    await service.save_progress(db, progress, course)
    return {"message": "Bookmark deleted successfully"}

# ==================== RATING ====================

@router.put("/course/{course_id}/rating")
async def rate_course(
    course_id: str,
    data: RatingSubmission,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    progress, course = await _load(db, user, course_id)
    rating = tracker.set_rating(progress, data.stars, data.review)
    await service.save_progress(db, progress, course)
    stats = await course_service.update_rating_stats(db, course_id)
    return {
        "rating": rating.to_document(),
        "course_stats": {
            "average_rating": stats["stats.average_rating"],
            "total_ratings": stats["stats.total_ratings"],
        },
        "message": "Rating submitted successfully"
    }
