"""
Notification service functions.

Notifications are written into the caller's unit of work so they commit (or
roll back) together with the transition that produced them.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import NotFound
from database.engine import commit_or_raise
from database.models.notifications import Notification

logger = logging.getLogger(__name__)


async def emit(
    db: AsyncSession,
    recipient_id: int,
    notification_type: str,
    title: str,
    message: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Notification:
    """
    Stage a notification for a recipient.

    The row is flushed but not committed; the caller owns the commit.

    Args:
        db: Session holding the triggering change
        recipient_id: User to notify
        notification_type: Type tag, e.g. "application_status"
        title: Short title
        message: Human-readable message
        metadata: Structured context such as job and application ids

    Returns:
        The pending Notification
    """
    notification = Notification(
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=title,
        message=message,
        extra=metadata or {},
        is_read=False,
    )
    db.add(notification)
    await db.flush()

    logger.info(
        f"Notification {notification.id} ({notification_type}) staged for user {recipient_id}"
    )
    return notification


async def list_notifications(
    db: AsyncSession,
    recipient_id: int,
    limit: Optional[int] = None,
) -> List[Notification]:
    """Recipient's notifications, newest first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == recipient_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit or settings.notification_list_limit)
    )
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, recipient_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


async def mark_read(
    db: AsyncSession,
    notification_id: int,
    recipient_id: int,
) -> Notification:
    """
    Mark one notification as read.

    Raises:
        NotFound: If the notification does not exist or belongs to someone else
    """
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == recipient_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFound("Notification not found")

    notification.is_read = True
    await commit_or_raise(db)
    return notification


async def mark_all_read(db: AsyncSession, recipient_id: int) -> int:
    """Mark every unread notification of a recipient as read; returns the count."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await commit_or_raise(db)
    return result.rowcount or 0
