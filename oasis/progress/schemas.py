from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from oasis.progress.models import LessonStatus

# ==================== REQUEST SCHEMAS ====================

class LessonUpdate(BaseModel):
    status: Optional[LessonStatus] = None
    time_spent: int = Field(0, ge=0)  # minutes to add
    current_position: Optional[float] = Field(None, ge=0)

class LessonUpdateItem(LessonUpdate):
    lesson_id: str

class ProgressUpdate(BaseModel):
    """Batch update of the caller's own progress record"""
    lessons: List[LessonUpdateItem] = []

class QuizSubmission(BaseModel):
    """question_id -> index of the selected option"""
    answers: Dict[str, int] = {}
    time_spent: Optional[int] = Field(None, ge=0)  # seconds

class AssessmentAnswerIn(BaseModel):
    question_id: str
    selected_answer: Optional[str] = None
    is_correct: bool = False
    points: int = 0

class FinalAssessmentSubmission(BaseModel):
    score: float = Field(..., ge=0, le=100)
    answers: List[AssessmentAnswerIn] = []
    time_spent: Optional[int] = Field(None, ge=0)

class NoteCreate(BaseModel):
    lesson_id: str
    content: str = Field(..., min_length=1)
    timestamp: float = Field(0, ge=0)

class BookmarkCreate(BaseModel):
    lesson_id: str
    timestamp: float = Field(0, ge=0)
    title: Optional[str] = None
    description: Optional[str] = None

class RatingSubmission(BaseModel):
    stars: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)
