from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..config import settings
from .directory import ProfileRead, ProjectRead


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=settings.MESSAGE_MAX_LENGTH)


class ConversationCreate(BaseModel):
    recipients: List[UUID] = Field(..., min_length=1)
    content: str = Field(..., max_length=settings.MESSAGE_MAX_LENGTH)
    subject: Optional[str] = Field(None, max_length=255)
    project_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("project_id", "projectId")
    )


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    is_read: bool
    created_at: datetime


class MessageWithSender(MessageRead):
    sender: Optional[ProfileRead] = None


class ConversationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    participants: List[UUID] = Field(
        validation_alias=AliasChoices("participant_ids", "participants")
    )
    subject: Optional[str] = None
    project_id: Optional[UUID] = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime


class ConversationSummary(ConversationRead):
    participants_profiles: List[ProfileRead] = Field(default_factory=list)
    other_participants: List[UUID] = Field(default_factory=list)
    last_message: Optional[MessageRead] = None
    unread_count: int = 0
    project: Optional[ProjectRead] = None


class ConversationDetail(ConversationSummary):
    messages: List[MessageWithSender] = Field(default_factory=list)


class ConversationCreated(BaseModel):
    success: bool = True
    conversation: ConversationRead
    message: MessageRead
