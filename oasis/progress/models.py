from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from oasis.models import Document
from oasis.users.models import StreakData

# ==================== ENUMS ====================

class ProgressStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"  # enrollment window closed before completion

class LessonStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

# ==================== ATTEMPT MODELS ====================

class Answer(Document):
    question_id: str
    question: Optional[str] = None
    selected_answer: Optional[str] = None
    correct_answer: Optional[str] = None
    is_correct: bool = False
    points: int = 0
    time_spent: Optional[int] = None  # seconds

class LessonAttempt(Document):
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    score: float
    passed: bool
    answers: List[Answer] = []

class QuizAttempt(Document):
    attempt_number: int
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    score: float
    total_questions: int = 0
    correct_answers: int = 0
    passed: bool
    time_spent: Optional[int] = None  # seconds
    answers: List[Answer] = []

# ==================== RECORD SECTIONS ====================

class LessonProgress(Document):
    lesson_id: str
    status: LessonStatus = LessonStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent: int = 0  # minutes
    attempts: List[LessonAttempt] = []
    best_score: float = 0
    current_position: float = 0  # playback position for video/interactive content

class QuizResult(Document):
    lesson_id: str
    attempts: List[QuizAttempt] = []
    best_score: float = 0
    total_attempts: int = 0

class FinalAssessment(Document):
    attempts: List[QuizAttempt] = []
    best_score: float = 0
    passed: bool = False

class Certificate(Document):
    issued: bool = False
    issued_at: Optional[datetime] = None
    certificate_id: Optional[str] = None
    download_url: Optional[str] = None
    valid_until: Optional[datetime] = None

class Note(Document):
    note_id: str
    lesson_id: str
    content: str
    timestamp: float = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Bookmark(Document):
    bookmark_id: str
    lesson_id: str
    timestamp: float = 0
    title: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

class Rating(Document):
    stars: int = Field(..., ge=1, le=5)
    review: Optional[str] = None
    submitted_at: datetime = Field(default_factory=datetime.utcnow)

# ==================== PROGRESS RECORD ====================

class Progress(Document):
    """One record per (user_id, course_id) pair"""
    progress_id: str  # PRG_XXXXXXXXXXXX
    user_id: str
    course_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    enrolled_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_accessed_at: datetime = Field(default_factory=datetime.utcnow)
    total_time_spent: int = 0  # minutes
    overall_progress: int = 0  # 0-100
    lessons_progress: List[LessonProgress] = []
    quiz_results: List[QuizResult] = []
    final_assessment: FinalAssessment = Field(default_factory=FinalAssessment)
    certificate: Certificate = Field(default_factory=Certificate)
    notes: List[Note] = []
    bookmarks: List[Bookmark] = []
    rating: Optional[Rating] = None
    streak_data: StreakData = Field(default_factory=StreakData)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
