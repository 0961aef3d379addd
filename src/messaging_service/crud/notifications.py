"""
CRUD operations for notifications.
"""

from typing import List
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotificationNotFound, translate_store_errors
from ..logging_config import logger
from ..models import Notification
from ..models.base import utcnow
from ..schemas.notification import NotificationCreate


async def create_notification(db: AsyncSession, notification_data: NotificationCreate) -> Notification:
    """
    Store a notification raised by another service.

    Args:
        db: Database session
        notification_data: Notification payload

    Returns:
        Created Notification instance
    """
    notification = Notification(**notification_data.model_dump())
    async with translate_store_errors(db, "create a notification"):
        db.add(notification)
        await db.commit()
        await db.refresh(notification)

    logger.info(
        f"Created notification {notification.id} ({notification.notification_type.value}) "
        f"for {notification.user_id}"
    )
    return notification


async def list_notifications(
    db: AsyncSession, user_id: UUID, unread_only: bool = False
) -> List[Notification]:
    """All notifications owned by the user, newest first."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))

    async with translate_store_errors(db, "list notifications"):
        result = await db.execute(
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())


async def count_unread_notifications(db: AsyncSession, user_id: UUID) -> int:
    async with translate_store_errors(db, "count unread notifications"):
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        return result.scalar_one()


async def mark_notification_read(
    db: AsyncSession, notification_id: UUID, user_id: UUID
) -> Notification:
    """
    Mark one of the user's notifications as read.

    Raises:
        NotificationNotFound: If it does not exist or belongs to someone else
    """
    async with translate_store_errors(db, "load a notification"):
        notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotificationNotFound()

    if not notification.is_read:
        async with translate_store_errors(db, "mark a notification read"):
            notification.is_read = True
            notification.read_at = utcnow()
            await db.commit()
            await db.refresh(notification)
    return notification


async def mark_all_notifications_read(db: AsyncSession, user_id: UUID) -> int:
    """
    Mark all of the user's unread notifications as read.

    Returns:
        Number of notifications updated
    """
    async with translate_store_errors(db, "mark notifications read"):
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        await db.commit()

    updated = result.rowcount or 0
    logger.info(f"Marked {updated} notifications read for {user_id}")
    return updated
