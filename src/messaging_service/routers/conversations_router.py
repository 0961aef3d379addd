from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud
from ..clients.directory_client import DirectoryClient, get_directory_client
from ..db import get_db
from ..dependencies.user_deps import get_current_user_id
from ..rate_limiting import CONVERSATION_CREATE_LIMIT, MESSAGE_SEND_LIMIT, limiter
from ..schemas.common import Message, SuccessResponse, UpdatedResponse
from ..schemas.conversation import (
    ConversationCreate,
    ConversationCreated,
    ConversationDetail,
    ConversationRead,
    ConversationSummary,
    MessageCreate,
    MessageRead,
)
from ..services import messaging
from ..services.realtime import RealtimeChannel, get_realtime_channel

conversations_router = APIRouter(
    prefix="/conversations",
    tags=["Conversations"],
    responses={401: {"model": Message}},
)


@conversations_router.get(
    "",
    response_model=List[ConversationSummary],
    summary="List conversations",
    description="Conversations of the caller, most recently active first.",
)
async def list_conversations(
    q: Optional[str] = Query(None, max_length=100, description="Search subject or participant name"),
    db: AsyncSession = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory_client),
    user_id: UUID = Depends(get_current_user_id),
):
    return await messaging.list_conversations(db, directory, user_id, query=q)


@conversations_router.post(
    "",
    response_model=ConversationCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Start a conversation",
    description=(
        "Finds the direct conversation with the recipient (or creates a new one, "
        "always for groups) and sends the first message."
    ),
    responses={400: {"model": Message}},
)
@limiter.limit(CONVERSATION_CREATE_LIMIT)
async def create_conversation(
    request: Request,
    payload: ConversationCreate,
    db: AsyncSession = Depends(get_db),
    channel: RealtimeChannel = Depends(get_realtime_channel),
    user_id: UUID = Depends(get_current_user_id),
):
    conversation, message = await messaging.start_conversation(db, channel, payload, user_id)
    return ConversationCreated(
        conversation=ConversationRead.model_validate(conversation),
        message=MessageRead.model_validate(message),
    )


@conversations_router.get(
    "/{conversation_id}",
    response_model=ConversationDetail,
    summary="Get a conversation with its messages",
    responses={404: {"model": Message}},
)
async def get_conversation(
    conversation_id: UUID,
    mark_read: bool = Query(False, description="Mark the conversation read after fetching it"),
    db: AsyncSession = Depends(get_db),
    directory: DirectoryClient = Depends(get_directory_client),
    user_id: UUID = Depends(get_current_user_id),
):
    return await messaging.get_conversation_detail(
        db, directory, conversation_id, user_id, mark_read=mark_read
    )


@conversations_router.patch(
    "/{conversation_id}",
    response_model=UpdatedResponse,
    summary="Mark a conversation read",
    responses={403: {"model": Message}, 404: {"model": Message}},
)
async def mark_conversation_read(
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    updated = await crud.mark_conversation_read(db, conversation_id, user_id)
    return UpdatedResponse(updated=updated)


@conversations_router.delete(
    "/{conversation_id}",
    response_model=SuccessResponse,
    summary="Delete a conversation",
    description="Only the participant who created the conversation may delete it.",
    responses={403: {"model": Message}, 404: {"model": Message}},
)
async def delete_conversation(
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    await crud.delete_conversation(db, conversation_id, user_id)
    return SuccessResponse()


@conversations_router.get(
    "/{conversation_id}/messages",
    response_model=List[MessageRead],
    summary="List messages of a conversation",
    responses={404: {"model": Message}},
)
async def list_messages(
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    await crud.get_conversation_for_participant(db, conversation_id, user_id)
    return await crud.list_messages(db, conversation_id)


@conversations_router.post(
    "/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    responses={400: {"model": Message}, 403: {"model": Message}, 404: {"model": Message}},
)
@limiter.limit(MESSAGE_SEND_LIMIT)
async def send_message(
    request: Request,
    conversation_id: UUID,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    channel: RealtimeChannel = Depends(get_realtime_channel),
    user_id: UUID = Depends(get_current_user_id),
):
    return await messaging.post_message(db, channel, conversation_id, user_id, payload.content)
