from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, field_validator

from oasis.users.models import Role

# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: str
    password: str = Field(..., min_length=6)
    department: str = Field(..., min_length=1)
    position: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Please enter a valid email")
        return v

class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    department: Optional[str] = None
    position: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None

class AdminUserUpdate(ProfileUpdate):
    email: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)

# ==================== RESPONSE SCHEMAS ====================

class UserStats(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[datetime] = None

class UserResponse(BaseModel):
    user_id: str
    first_name: str
    last_name: str
    email: str
    role: Role
    department: str
    position: Optional[str] = None
    preferences: Dict[str, Any] = {}
    is_active: bool
    stats: UserStats = UserStats()
    last_login: Optional[datetime] = None
    created_at: datetime

class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str

class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    total_pages: int
    current_page: int
    message: str = "Users retrieved successfully"

class DashboardStats(BaseModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    total_time_spent: int
    average_score: int
    certificates: int
    current_streak: int
    longest_streak: int
