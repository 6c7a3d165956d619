from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import Field

from oasis.models import Document

# ==================== ENUMS ====================

class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"

# ==================== DATABASE MODELS ====================

class StreakData(Document):
    """Consecutive days with recorded activity"""
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[datetime] = None  # midnight UTC of the last active day


class User(Document):
    user_id: str  # USR_XXXXXXXXXXXX
    first_name: str
    last_name: str
    email: str  # unique, lower-cased
    password_hash: str
    role: Role = Role.EMPLOYEE
    department: str
    position: Optional[str] = None
    preferences: Dict[str, Any] = {}
    is_active: bool = True
    stats: StreakData = Field(default_factory=StreakData)
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
