"""
Admin endpoints. Every route sits behind the admin-only role gate.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_db, require_admin
from api.schemas.auth import CreateAdminRequest
from api.schemas.common import ERROR_RESPONSES
from api.services import users as user_service

router = APIRouter(prefix="/admin", tags=["admin"], responses=ERROR_RESPONSES)


@router.get("/stats", summary="Platform Statistics")
async def get_stats(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_stats(db)


@router.get("/users", summary="List Users")
async def list_users(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"users": await user_service.list_users(db)}


@router.get("/applications", summary="List All Applications")
async def list_applications(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"applications": await user_service.list_all_applications(db)}


@router.delete("/users/{user_id}", summary="Delete User")
async def delete_user(
    user_id: int = Path(..., description="User ID"),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Removes a non-admin user with their jobs and applications."""
    removed = await user_service.delete_user(db, principal, user_id)
    return {"message": "User deleted successfully", "removed": removed}


@router.post("/create-admin", status_code=status.HTTP_201_CREATED, summary="Create Admin")
async def create_admin(
    request: CreateAdminRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await user_service.create_admin(
        db, principal, name=request.name, email=request.email, password=request.password
    )
    return {"message": "Admin created successfully", "admin": admin.to_dict()}
