from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.notification import NotificationSeverity, NotificationType
from .directory import ProjectRead


class NotificationCreate(BaseModel):
    """Payload other services post to raise a notification for a user."""

    user_id: UUID
    project_id: Optional[UUID] = None
    notification_type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    related_entity_id: Optional[UUID] = None
    related_entity_type: Optional[str] = Field(None, max_length=50)
    severity: NotificationSeverity = NotificationSeverity.MEDIUM
    action_required: bool = False
    action_url: Optional[str] = None


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    project_id: Optional[UUID] = None
    notification_type: NotificationType
    title: str
    message: str
    related_entity_id: Optional[UUID] = None
    related_entity_type: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    severity: NotificationSeverity
    action_required: bool
    action_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    project: Optional[ProjectRead] = None


class UnreadCounts(BaseModel):
    messages: int
    notifications: int
    total: int
