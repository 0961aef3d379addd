from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud
from ..clients.directory_client import DirectoryClient, get_directory_client
from ..db import get_db
from ..dependencies.user_deps import UserTokenData, get_current_user_id, require_service_token
from ..logging_config import logger
from ..schemas.common import Message, UpdatedResponse
from ..schemas.notification import NotificationCreate, NotificationRead, UnreadCounts
from ..services import notifications
from ..services.realtime import RealtimeChannel, get_realtime_channel

notifications_router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    responses={401: {"model": Message}},
)

internal_router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    responses={401: {"model": Message}, 403: {"model": Message}},
)


@notifications_router.get(
    "",
    response_model=List[NotificationRead],
    summary="List notifications",
    description="Notifications of the caller, newest first.",
)
async def list_notifications(
    unread_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory_client),
    user_id: UUID = Depends(get_current_user_id),
):
    return await notifications.list_notifications(db, directory, user_id, unread_only=unread_only)


@notifications_router.patch(
    "",
    response_model=UpdatedResponse,
    summary="Mark all notifications read",
)
async def mark_all_notifications_read(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    updated = await crud.mark_all_notifications_read(db, user_id)
    return UpdatedResponse(updated=updated)


@notifications_router.get(
    "/unread-count",
    response_model=UnreadCounts,
    summary="Badge counts",
    description="Unread messages plus unread notifications of the caller.",
)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return await notifications.get_unread_counts(db, user_id)


@notifications_router.patch(
    "/{notification_id}",
    response_model=NotificationRead,
    summary="Mark one notification read",
    responses={404: {"model": Message}},
)
async def mark_notification_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    return await crud.mark_notification_read(db, notification_id, user_id)


@internal_router.post(
    "/notifications",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a notification (service-to-service)",
)
async def create_notification(
    payload: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    channel: RealtimeChannel = Depends(get_realtime_channel),
    service: UserTokenData = Depends(require_service_token),
):
    logger.info(f"Service {service.user_id} raising {payload.notification_type.value} for {payload.user_id}")
    return await notifications.raise_notification(db, channel, payload)
