from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from oasis.courses.models import Category, ContentType, Level, DEFAULT_PASSING_SCORE

# ==================== LESSON INPUT ====================

class QuizOptionIn(BaseModel):
    text: str
    is_correct: bool = False

class QuizQuestionIn(BaseModel):
    question_id: Optional[str] = None
    question: str = Field(..., min_length=1)
    options: List[QuizOptionIn] = Field(..., min_length=2)
    explanation: Optional[str] = None
    points: int = Field(1, ge=1)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v):
        if not any(o.is_correct for o in v):
            raise ValueError("At least one option must be marked correct")
        return v

class QuizIn(BaseModel):
    questions: List[QuizQuestionIn] = []
    passing_score: int = Field(DEFAULT_PASSING_SCORE, ge=0, le=100)
    time_limit: int = Field(30, ge=1)

class ResourceIn(BaseModel):
    name: str
    url: str
    type: Optional[str] = None

class LessonIn(BaseModel):
    lesson_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    content: str = Field(..., min_length=1)
    content_type: ContentType
    duration: int = Field(..., ge=0)  # minutes
    order: Optional[int] = None
    resources: List[ResourceIn] = []
    quiz: Optional[QuizIn] = None

# ==================== COURSE INPUT ====================

class InstructorIn(BaseModel):
    name: str = Field(..., min_length=1)
    bio: Optional[str] = None
    avatar: Optional[str] = None
    credentials: List[str] = []

class CertificationIn(BaseModel):
    is_available: bool = True
    template: Optional[str] = None
    validity_period: int = Field(12, ge=1)
    cpd_points: int = Field(0, ge=0)

class EnrollmentSettings(BaseModel):
    is_open: Optional[bool] = None
    capacity: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    thumbnail: str = ""
    category: Category
    department: str = Field(..., min_length=1)
    level: Level
    instructor: InstructorIn
    lessons: List[LessonIn] = []
    prerequisites: List[str] = []
    tags: List[str] = []
    learning_objectives: List[str] = []
    certification: CertificationIn = CertificationIn()
    enrollment: EnrollmentSettings = EnrollmentSettings()
    is_published: bool = False

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    thumbnail: Optional[str] = None
    category: Optional[Category] = None
    department: Optional[str] = None
    level: Optional[Level] = None
    instructor: Optional[InstructorIn] = None
    lessons: Optional[List[LessonIn]] = None
    prerequisites: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    learning_objectives: Optional[List[str]] = None
    certification: Optional[CertificationIn] = None
    enrollment: Optional[EnrollmentSettings] = None
    is_published: Optional[bool] = None
