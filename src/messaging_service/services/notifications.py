"""
Notification feed and badge aggregation.
"""

from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud
from ..clients.directory_client import DirectoryClient
from ..models import Notification
from ..schemas.notification import NotificationCreate, NotificationRead, UnreadCounts
from ..schemas.realtime import RealtimeEvent, RealtimeEventType, user_notifications_topic
from .realtime import RealtimeChannel


async def get_unread_counts(db: AsyncSession, user_id: UUID) -> UnreadCounts:
    """
    Badge numbers for the user. Messages and notifications are counted by two
    independent aggregations and then summed.
    """
    messages = await crud.count_unread_messages(db, user_id)
    notifications = await crud.count_unread_notifications(db, user_id)
    return UnreadCounts(messages=messages, notifications=notifications, total=messages + notifications)


async def get_total_unread_count(db: AsyncSession, user_id: UUID) -> int:
    return (await get_unread_counts(db, user_id)).total


async def list_notifications(
    db: AsyncSession,
    directory: DirectoryClient,
    user_id: UUID,
    unread_only: bool = False,
) -> List[NotificationRead]:
    """The user's notifications, newest first, with their project attached."""
    notifications = await crud.list_notifications(db, user_id, unread_only=unread_only)
    projects = await directory.get_projects(n.project_id for n in notifications)
    return [
        NotificationRead.model_validate(notification).model_copy(
            update={"project": projects.get(notification.project_id)}
        )
        for notification in notifications
    ]


async def raise_notification(
    db: AsyncSession, channel: RealtimeChannel, payload: NotificationCreate
) -> Notification:
    notification = await crud.create_notification(db, payload)
    await channel.publish(
        RealtimeEvent(
            topic=user_notifications_topic(notification.user_id),
            event=RealtimeEventType.NOTIFICATION_CREATED,
            table="notifications",
            row_id=notification.id,
        )
    )
    return notification
