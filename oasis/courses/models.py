from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from oasis.models import Document

ALL_DEPARTMENTS = "All"
DEFAULT_PASSING_SCORE = 70

# ==================== ENUMS ====================

class Category(str, Enum):
    TECHNICAL_SKILLS = "Technical Skills"
    SOFT_SKILLS = "Soft Skills"
    COMPLIANCE = "Compliance"
    LEADERSHIP = "Leadership"
    SAFETY = "Safety"
    PROFESSIONAL_DEVELOPMENT = "Professional Development"
    INDUSTRY_SPECIFIC = "Industry Specific"
    ONBOARDING = "Onboarding"

class Level(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

class ContentType(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    INTERACTIVE = "interactive"
    PDF = "pdf"
    SCORM = "scorm"

# ==================== QUIZ MODELS ====================

class QuizOption(Document):
    text: str
    is_correct: bool = False

class QuizQuestion(Document):
    question_id: str  # QST_XXXXXXXX
    question: str
    options: List[QuizOption] = []
    explanation: Optional[str] = None
    points: int = 1

class Quiz(Document):
    questions: List[QuizQuestion] = []
    passing_score: int = DEFAULT_PASSING_SCORE
    time_limit: int = 30  # minutes

# ==================== LESSON MODELS ====================

class Resource(Document):
    name: str
    url: str
    type: Optional[str] = None

class Lesson(Document):
    lesson_id: str  # LSN_XXXXXXXX
    title: str
    description: Optional[str] = None
    content: str
    content_type: ContentType
    duration: int  # minutes
    order: int
    resources: List[Resource] = []
    quiz: Optional[Quiz] = None

# ==================== COURSE MODELS ====================

class Instructor(Document):
    name: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    credentials: List[str] = []

class Certification(Document):
    is_available: bool = True
    template: Optional[str] = None
    validity_period: int = 12  # months
    cpd_points: int = 0

class Enrollment(Document):
    is_open: bool = True
    capacity: int = 0  # 0 = unlimited
    enrolled: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class CourseStats(Document):
    average_rating: float = 0.0
    total_ratings: int = 0
    completions: int = 0

class Course(Document):
    course_id: str  # COURSE_XXXXXXXXXXXX
    title: str
    description: str
    thumbnail: str = ""
    category: Category
    department: str  # or ALL_DEPARTMENTS
    level: Level
    duration: int = 0  # minutes, always the sum of lesson durations
    instructor: Instructor
    lessons: List[Lesson] = []
    prerequisites: List[str] = []  # course ids
    tags: List[str] = []
    learning_objectives: List[str] = []
    certification: Certification = Field(default_factory=Certification)
    enrollment: Enrollment = Field(default_factory=Enrollment)
    stats: CourseStats = Field(default_factory=CourseStats)
    is_published: bool = False
    published_at: Optional[datetime] = None
    created_by: str
    last_updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        return next((l for l in self.lessons if l.lesson_id == lesson_id), None)


def total_duration(lessons: List[Lesson]) -> int:
    return sum(lesson.duration for lesson in lessons)
