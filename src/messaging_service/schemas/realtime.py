from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RealtimeEventType(str, Enum):
    MESSAGE_CREATED = "message.created"
    NOTIFICATION_CREATED = "notification.created"


def conversation_topic(conversation_id: UUID) -> str:
    return f"conversation:{conversation_id}"


def user_conversations_topic(user_id: UUID) -> str:
    return f"user:{user_id}:conversations"


def user_notifications_topic(user_id: UUID) -> str:
    return f"user:{user_id}:notifications"


class RealtimeEvent(BaseModel):
    """
    A "row inserted" signal. It carries identity only; subscribers re-fetch
    the affected state instead of applying the event as a delta.
    """

    topic: str
    event: RealtimeEventType
    table: str
    row_id: UUID
    conversation_id: Optional[UUID] = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
