from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from oasis.auth.tokens import issue_token
from oasis.database import get_db
from oasis.users import service as user_service
from oasis.users.schemas import AuthResponse, LoginRequest, RegisterRequest

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(data: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await user_service.create_user(db, data.model_dump())
    return {
        "message": "User registered successfully!",
        "user": user,
        "token": issue_token(user["user_id"]),
    }


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await user_service.authenticate(db, data.email, data.password)
    return {
        "message": "User logged in successfully!",
        "user": user,
        "token": issue_token(user["user_id"]),
    }


@router.post("/logout")
async def logout():
    """Tokens are stateless; the client discards its copy"""
    return {"message": "User logged out successfully!"}
