"""Notification inbox endpoints for the authenticated user."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_current_principal, get_db
from api.schemas.common import ERROR_RESPONSES
from api.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"], responses=ERROR_RESPONSES)


@router.get("", summary="List Notifications")
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Most recent notifications first."""
    notifications = await notification_service.list_notifications(db, principal.id)
    unread = await notification_service.count_unread(db, principal.id)
    return {
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": unread,
    }


@router.patch("/read-all", summary="Mark All Notifications Read")
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_read(db, principal.id)
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read", summary="Mark Notification Read")
async def mark_read(
    notification_id: int = Path(..., description="Notification ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.mark_read(db, notification_id, principal.id)
    return {"notification": notification.to_dict()}
