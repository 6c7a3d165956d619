from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from oasis.auth.permissions import UserContext, get_current_user, require_roles
from oasis.database import get_db
from oasis.progress import service as progress_service
from oasis.users import service
from oasis.users.models import Role
from oasis.users.schemas import (
    AdminUserUpdate, ChangePasswordRequest, DashboardStats,
    ProfileUpdate, UserListResponse, UserResponse
)

router = APIRouter(prefix="/users", tags=["Users"])

# ==================== SELF SERVICE ====================

@router.get("/profile")
async def get_profile(user: UserContext = Depends(get_current_user)):
    """Get current user profile"""
    return {
        "user": UserResponse.model_validate(user.profile),
        "message": "Profile retrieved successfully"
    }


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Update name, department, position and preferences"""
    updated = await service.update_user(db, user.user_id, data.model_dump(exclude_none=True))
    return {
        "user": UserResponse.model_validate(updated),
        "message": "Profile updated successfully"
    }


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Aggregated learning stats for the current user"""
    stats = await service.get_dashboard_stats(db, user.user_id, user.profile.get("stats"))
    return {
        "stats": DashboardStats(**stats),
        "message": "Dashboard stats retrieved successfully"
    }


@router.put("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.change_password(db, user.user_id, data.current_password, data.new_password)
    return {"message": "Password changed successfully"}

# ==================== DIRECTORY (ADMIN / MANAGER) ====================

@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    department: Optional[str] = None,
    role: Optional[Role] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    user: UserContext = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    filters = {
        "search": search,
        "department": department,
        "role": role.value if role else None,
        "status": status,
    }
    return await service.list_users(db, filters, page, limit)


@router.get("/{user_id}")
async def get_user_detail(
    user_id: str,
    user: UserContext = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """User profile plus their course progress"""
    target = await service.get_user(db, user_id)
    progress = await progress_service.list_progress(db, user_id)
    return {
        "user": UserResponse.model_validate(target),
        "progress": progress,
        "message": "User details retrieved successfully"
    }


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    user: UserContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    updates = data.model_dump(exclude_none=True, mode="json")
    updated = await service.update_user(db, user_id, updates)
    return {
        "user": UserResponse.model_validate(updated),
        "message": "User updated successfully"
    }


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: str,
    user: UserContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Deactivate (soft delete) a user"""
    await service.deactivate_user(db, user_id)
    return {"message": "User deactivated successfully"}
