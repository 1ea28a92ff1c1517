"""
Authentication endpoints.

Provides:
- Email/password registration for jobseekers and employers
- Login returning a bearer access token
- Current user lookup and profile updates
"""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_current_principal, get_db
from api.schemas.auth import LoginRequest, ProfileUpdateRequest, RegisterRequest
from api.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a jobseeker or employer account and return a token."""
    user, token = await user_service.register_user(
        db,
        name=request.name,
        email=request.email,
        password=request.password,
        role=request.role,
        phone=request.phone,
    )
    return {
        "message": "User registered successfully",
        "token": token,
        "user": user.to_dict(),
    }


@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a token."""
    user, token = await user_service.authenticate_user(db, request.email, request.password)
    return {"message": "Login successful", "token": token, "user": user.to_dict()}


@router.get("/me")
async def me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, principal.id)
    return {"user": user.to_dict()}


@router.put("/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_profile(
        db, principal, request.model_dump(exclude_unset=True)
    )
    return {"message": "Profile updated successfully", "user": user.to_dict()}
