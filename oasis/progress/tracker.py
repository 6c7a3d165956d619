"""
Progress Tracker
Pure state transitions on a Progress record.

Nothing here touches the database: the service loads a record, applies one
of these functions, then persists through save_progress(), which always runs
refresh_status() first.
"""

import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from oasis.courses.models import Course, Quiz
from oasis.errors import NotFoundError, ValidationError
from oasis.models import generate_id
from oasis.progress.models import (
    Answer, Bookmark, Certificate, LessonAttempt, LessonProgress, LessonStatus,
    Note, Progress, ProgressStatus, QuizAttempt, QuizResult, Rating
)
from oasis.users.models import StreakData

FINAL_ASSESSMENT_PASSING_SCORE = 70
DAYS_PER_MONTH = 30


def round_half_up(value: float) -> int:
    # round() would send 12.5 to 12
    return int(math.floor(value + 0.5))


# ==================== STATUS DERIVATION ====================

def compute_overall_progress(progress: Progress) -> int:
    """Percentage of completed lessons, 0 when the course has no lessons"""
    total = len(progress.lessons_progress)
    if total == 0:
        return 0
    completed = sum(1 for lesson in progress.lessons_progress if lesson.status == LessonStatus.COMPLETED)
    return round_half_up(100 * completed / total)


def refresh_status(
    progress: Progress,
    now: Optional[datetime] = None,
    deadline: Optional[datetime] = None
) -> Progress:
    """
    Recompute overall_progress and derive status from it

    0 -> not-started, 100 -> completed (completed_at set once),
    anything else -> in-progress. started_at is set once, on the first
    non-zero percentage.
    An incomplete record whose enrollment deadline has passed is failed.
    last_accessed_at is always stamped.
    """
    now = now or datetime.utcnow()
    progress.overall_progress = compute_overall_progress(progress)

    if progress.overall_progress == 100:
        progress.status = ProgressStatus.COMPLETED
        if not progress.completed_at:
            progress.completed_at = now
    elif deadline is not None and now > deadline:
        progress.status = ProgressStatus.FAILED
    elif progress.overall_progress == 0:
        progress.status = ProgressStatus.NOT_STARTED
    else:
        progress.status = ProgressStatus.IN_PROGRESS

    if progress.overall_progress > 0 and not progress.started_at:
        progress.started_at = now

    progress.last_accessed_at = now
    return progress


# ==================== STREAKS ====================

def record_activity(streak: StreakData, now: Optional[datetime] = None) -> StreakData:
    """
    Count consecutive active days
    Same day: unchanged. Next day: +1. Any gap: back to 1.
    """
    now = now or datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    last = streak.last_activity_date

    if last is not None:
        last_day = datetime(last.year, last.month, last.day)
        if last_day == today:
            return streak
        if today - last_day == timedelta(days=1):
            streak.current_streak += 1
        else:
            streak.current_streak = 1
    else:
        streak.current_streak = 1

    streak.longest_streak = max(streak.longest_streak, streak.current_streak)
    streak.last_activity_date = today
    return streak


# ==================== ENROLLMENT ====================

def new_progress(user_id: str, course: Course, now: Optional[datetime] = None) -> Progress:
    """Fresh record with one not-started entry per course lesson"""
    now = now or datetime.utcnow()
    lessons = sorted(course.lessons, key=lambda l: l.order)
    progress = Progress(
        progress_id=generate_id("PRG"),
        user_id=user_id,
        course_id=course.course_id,
        enrolled_at=now,
        lessons_progress=[LessonProgress(lesson_id=l.lesson_id) for l in lessons],
        created_at=now,
        updated_at=now,
    )
    return refresh_status(progress, now)


# ==================== LESSONS ====================

def get_lesson_progress(progress: Progress, lesson_id: str) -> LessonProgress:
    for lesson in progress.lessons_progress:
        if lesson.lesson_id == lesson_id:
            return lesson
    raise NotFoundError("Lesson not found in this course progress")


def update_lesson(
    progress: Progress,
    lesson_id: str,
    status: Optional[str] = None,
    time_spent: int = 0,
    current_position: Optional[float] = None,
    now: Optional[datetime] = None
) -> LessonProgress:
    """
    Apply learner activity to one lesson
    A completed lesson stays completed.
    """
    now = now or datetime.utcnow()
    lesson = get_lesson_progress(progress, lesson_id)

    if status is not None and lesson.status != LessonStatus.COMPLETED:
        lesson.status = status
        if lesson.status != LessonStatus.NOT_STARTED and not lesson.started_at:
            lesson.started_at = now
        if lesson.status == LessonStatus.COMPLETED:
            lesson.completed_at = now

    if time_spent:
        lesson.time_spent += time_spent
        progress.total_time_spent += time_spent

    if current_position is not None:
        lesson.current_position = current_position

    record_activity(progress.streak_data, now)
    return lesson


def _complete_lesson(lesson: LessonProgress, now: datetime):
    if lesson.status == LessonStatus.COMPLETED:
        return
    lesson.status = LessonStatus.COMPLETED
    if not lesson.started_at:
        lesson.started_at = now
    lesson.completed_at = now


# ==================== QUIZZES ====================

def grade_quiz(quiz: Quiz, selections: Dict[str, int]) -> Tuple[int, int, List[Answer]]:
    """
    Grade selected option indexes against a lesson quiz

    Returns:
        (score as a points-weighted percentage, correct answer count, answers)
    """
    total_points = sum(q.points for q in quiz.questions)
    earned = 0
    correct = 0
    answers = []

    for question in quiz.questions:
        selected = selections.get(question.question_id)
        chosen = question.options[selected] if selected is not None and 0 <= selected < len(question.options) else None
        right = next((o for o in question.options if o.is_correct), None)
        is_correct = chosen is not None and chosen.is_correct
        if is_correct:
            earned += question.points
            correct += 1
        answers.append(Answer(
            question_id=question.question_id,
            question=question.question,
            selected_answer=chosen.text if chosen else None,
            correct_answer=right.text if right else None,
            is_correct=is_correct,
            points=question.points if is_correct else 0,
        ))

    score = round_half_up(100 * earned / total_points) if total_points else 0
    return score, correct, answers


def record_quiz_attempt(
    progress: Progress,
    lesson_id: str,
    score: float,
    passed: bool,
    answers: Optional[List[Answer]] = None,
    total_questions: int = 0,
    correct_answers: int = 0,
    time_spent: Optional[int] = None,
    started_at: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> QuizAttempt:
    """
    Append an attempt to the lesson's history and keep the best score
    Scores are stored as given; range checks belong to the caller.
    A passing attempt completes the lesson.
    """
    now = now or datetime.utcnow()
    lesson = get_lesson_progress(progress, lesson_id)
    answers = answers or []

    result = next((r for r in progress.quiz_results if r.lesson_id == lesson_id), None)
    if result is None:
        result = QuizResult(lesson_id=lesson_id)
        progress.quiz_results.append(result)

    attempt = QuizAttempt(
        attempt_number=result.total_attempts + 1,
        started_at=started_at or now,
        completed_at=now,
        score=score,
        total_questions=total_questions,
        correct_answers=correct_answers,
        passed=passed,
        time_spent=time_spent,
        answers=answers,
    )
    result.attempts.append(attempt)
    result.total_attempts += 1
    result.best_score = max(result.best_score, score)

    lesson.attempts.append(LessonAttempt(
        started_at=attempt.started_at,
        completed_at=now,
        score=score,
        passed=passed,
        answers=answers,
    ))
    lesson.best_score = max(lesson.best_score, score)

    if passed:
        _complete_lesson(lesson, now)

    record_activity(progress.streak_data, now)
    return attempt


def record_final_assessment_attempt(
    progress: Progress,
    score: float,
    answers: Optional[List[Answer]] = None,
    time_spent: Optional[int] = None,
    passing_score: float = FINAL_ASSESSMENT_PASSING_SCORE,
    now: Optional[datetime] = None
) -> QuizAttempt:
    now = now or datetime.utcnow()
    assessment = progress.final_assessment
    passed = score >= passing_score

    attempt = QuizAttempt(
        attempt_number=len(assessment.attempts) + 1,
        started_at=now,
        completed_at=now,
        score=score,
        total_questions=len(answers or []),
        correct_answers=sum(1 for a in answers or [] if a.is_correct),
        passed=passed,
        time_spent=time_spent,
        answers=answers or [],
    )
    assessment.attempts.append(attempt)
    assessment.best_score = max(assessment.best_score, score)
    assessment.passed = assessment.passed or passed

    record_activity(progress.streak_data, now)
    return attempt


# ==================== CERTIFICATES ====================

def issue_certificate(progress: Progress, course: Course, now: Optional[datetime] = None) -> Tuple[Certificate, bool]:
    """
    Issue the course certificate once

    Returns:
        (certificate, True if issued by this call)

    Raises:
        ValidationError: course not completed, or course has no certificate
    """
    if progress.certificate.issued:
        return progress.certificate, False

    if progress.status != ProgressStatus.COMPLETED:
        raise ValidationError("Course must be completed before a certificate is issued")
    if not course.certification.is_available:
        raise ValidationError("This course does not offer a certificate")

    now = now or datetime.utcnow()
    certificate_id = generate_id("CERT")
    progress.certificate = Certificate(
        issued=True,
        issued_at=now,
        certificate_id=certificate_id,
        download_url=f"/api/progress/certificates/{certificate_id}",
        valid_until=now + timedelta(days=DAYS_PER_MONTH * course.certification.validity_period),
    )
    return progress.certificate, True


# ==================== NOTES, BOOKMARKS, RATING ====================

def add_note(progress: Progress, lesson_id: str, content: str, timestamp: float = 0,
             now: Optional[datetime] = None) -> Note:
    get_lesson_progress(progress, lesson_id)
    now = now or datetime.utcnow()
    note = Note(
        note_id=generate_id("NOTE", 8),
        lesson_id=lesson_id,
        content=content,
        timestamp=timestamp,
        created_at=now,
        updated_at=now,
    )
    progress.notes.append(note)
    return note


def remove_note(progress: Progress, note_id: str):
    remaining = [n for n in progress.notes if n.note_id != note_id]
    if len(remaining) == len(progress.notes):
        raise NotFoundError("Note not found")
    progress.notes = remaining


def add_bookmark(progress: Progress, lesson_id: str, timestamp: float = 0, title: str = None,
                 description: str = None, now: Optional[datetime] = None) -> Bookmark:
    get_lesson_progress(progress, lesson_id)
    bookmark = Bookmark(
        bookmark_id=generate_id("BMK", 8),
        lesson_id=lesson_id,
        timestamp=timestamp,
        title=title,
        description=description,
        created_at=now or datetime.utcnow(),
    )
    progress.bookmarks.append(bookmark)
    return bookmark


def remove_bookmark(progress: Progress, bookmark_id: str):
    remaining = [b for b in progress.bookmarks if b.bookmark_id != bookmark_id]
    if len(remaining) == len(progress.bookmarks):
        raise NotFoundError("Bookmark not found")
    progress.bookmarks = remaining


def set_rating(progress: Progress, stars: int, review: Optional[str] = None,
               now: Optional[datetime] = None) -> Rating:
    """A record holds a single rating; resubmitting replaces it"""
    progress.rating = Rating(stars=stars, review=review, submitted_at=now or datetime.utcnow())
    return progress.rating
