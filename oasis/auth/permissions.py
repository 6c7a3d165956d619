import json
import logging
from typing import Optional

from fastapi import Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from oasis.auth.tokens import extract_bearer_token, verify_token
from oasis.courses.models import ALL_DEPARTMENTS
from oasis.database import get_db
from oasis.errors import (
    AccountInactive, AuthenticationError, AuthorizationError, NotFoundError
)
from oasis.users.models import Role

logger = logging.getLogger(__name__)


class UserContext:
    """
    Contains the verified caller's profile
    Built from the users collection on every authenticated request.
    """
    def __init__(self, user_id: str, profile: dict):
        self.user_id = user_id
        self.email = profile.get("email")
        self.first_name = profile.get("first_name")
        self.last_name = profile.get("last_name")
        self.role = profile.get("role", Role.EMPLOYEE.value)
        self.department = profile.get("department")
        self.is_active = profile.get("is_active", True)
        self.profile = profile

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


async def resolve_user(db: AsyncIOMotorDatabase, authorization: Optional[str]) -> UserContext:
    """
    Verify the bearer token and load its subject

    Raises:
        401: missing/invalid/expired token, unknown user, inactive account
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Access denied. No token provided.")

    user_id = verify_token(token)

    profile = await db.users.find_one({"user_id": user_id}, {"_id": 0, "password_hash": 0})
    if not profile:
        raise AuthenticationError("Access denied. User not found.")

    if not profile.get("is_active", True):
        raise AccountInactive()

    return UserContext(user_id, profile)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserContext:
    """Dependency: authenticated, active caller"""
    try:
        return await resolve_user(db, authorization)
    except AuthenticationError as e:
        logger.warning("Rejected authentication: %s", e.message)
        raise


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> Optional[UserContext]:
    """Dependency: caller if identifiable, otherwise anonymous (None)"""
    if not authorization:
        return None
    try:
        return await resolve_user(db, authorization)
    except AuthenticationError:
        return None


# ==================== ROLE GATE ====================

def require_roles(*roles: Role):
    """Dependency factory: caller's role must be one of roles"""
    allowed = [r.value if isinstance(r, Role) else r for r in roles]

    async def role_gate(user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Required roles: {', '.join(allowed)}. Your role: {user.role}"
            )
        return user

    return role_gate


# ==================== OWNER-OR-ADMIN GATE ====================

async def _request_value(request: Request, field: str) -> Optional[str]:
    if field in request.path_params:
        return request.path_params[field]
    if field in request.query_params:
        return request.query_params[field]
    body = await request.body()
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    return data.get(field) if isinstance(data, dict) else None


def require_owner_or_admin(field: str = "user_id"):
    """
    Dependency factory: admins pass, anyone else must own the resource
    Owner id is read from the path, then the query string, then the JSON body.
    """
    async def owner_gate(request: Request, user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.is_admin:
            return user
        if await _request_value(request, field) == user.user_id:
            return user
        raise AuthorizationError("Access denied. You can only access your own resources.")

    return owner_gate


# ==================== COURSE-ACCESS GATE ====================

def can_access_course(user: UserContext, course: dict) -> bool:
    """
    Department-based course visibility
    Any matching branch grants access.
    """
    department = course.get("department")
    if user.role == Role.ADMIN:
        return True
    if user.role == Role.MANAGER and user.department == department:
        return True
    if user.department == department:
        return True
    return department == ALL_DEPARTMENTS


async def authorize_course_access(
    course_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    Dependency: load the course and check the caller may see it

    Returns:
        dict: Course document

    Raises:
        404: Course not found
        403: Department mismatch
    """
    course = await db.courses.find_one({"course_id": course_id}, {"_id": 0})
    if not course:
        raise NotFoundError("Course not found.")

    if not can_access_course(user, course):
        raise AuthorizationError("Access denied. You cannot access this course.")

    return course
