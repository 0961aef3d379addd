"""
Conversation flows exposed by the API.

Listing and detail views are enriched with a fixed number of batched
lookups (last messages, unread counts, profiles, projects) regardless of
how many conversations are involved, then joined in memory.
"""

from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud
from ..clients.directory_client import DirectoryClient
from ..logging_config import logger
from ..models import Conversation, Message
from ..schemas.conversation import (
    ConversationCreate,
    ConversationDetail,
    ConversationRead,
    ConversationSummary,
    MessageRead,
    MessageWithSender,
)
from ..schemas.directory import ProfileRead
from ..schemas.realtime import (
    RealtimeEvent,
    RealtimeEventType,
    conversation_topic,
    user_conversations_topic,
)
from .realtime import RealtimeChannel


def message_events(conversation: Conversation, message: Message) -> List[RealtimeEvent]:
    """Events announcing a new message: the conversation topic plus each participant's list topic."""
    topics = [conversation_topic(conversation.id)] + [
        user_conversations_topic(user_id) for user_id in conversation.participant_ids
    ]
    return [
        RealtimeEvent(
            topic=topic,
            event=RealtimeEventType.MESSAGE_CREATED,
            table="messages",
            row_id=message.id,
            conversation_id=conversation.id,
        )
        for topic in topics
    ]


async def publish_events(channel: RealtimeChannel, events: Sequence[RealtimeEvent]) -> None:
    for event in events:
        await channel.publish(event)


async def start_conversation(
    db: AsyncSession,
    channel: RealtimeChannel,
    payload: ConversationCreate,
    user_id: UUID,
) -> Tuple[Conversation, Message]:
    """
    Resolve (or create) the conversation for the recipients and send the first message.

    A new conversation is committed together with its first message; if the
    message cannot be stored, neither is.
    """
    # Reject blank content before anything is written
    content = crud.normalize_content(payload.content)
    conversation, _ = await crud.resolve_conversation(
        db,
        recipients=payload.recipients,
        current_user_id=user_id,
        subject=payload.subject,
        project_id=payload.project_id,
        commit=False,
    )
    try:
        message = await crud.send_message(db, conversation.id, user_id, content)
    except Exception:
        await db.rollback()
        raise
    await publish_events(channel, message_events(conversation, message))
    return conversation, message


async def post_message(
    db: AsyncSession,
    channel: RealtimeChannel,
    conversation_id: UUID,
    user_id: UUID,
    content: str,
) -> Message:
    message = await crud.send_message(db, conversation_id, user_id, content)
    # Already in the session's identity map; no extra round-trip
    conversation = await crud.get_conversation(db, conversation_id)
    await publish_events(channel, message_events(conversation, message))
    return message


async def _summarize(
    db: AsyncSession,
    directory: DirectoryClient,
    conversations: Sequence[Conversation],
    user_id: UUID,
) -> Tuple[List[ConversationSummary], Dict[UUID, ProfileRead]]:
    ids = [conversation.id for conversation in conversations]
    last_messages = await crud.get_last_messages(db, ids)
    unread_counts = await crud.get_unread_counts(db, ids, user_id)
    profiles = await directory.get_profiles(
        user for conversation in conversations for user in conversation.participant_ids
    )
    projects = await directory.get_projects(conversation.project_id for conversation in conversations)

    summaries = []
    for conversation in conversations:
        participant_ids = conversation.participant_ids
        last_message = last_messages.get(conversation.id)
        summaries.append(
            ConversationSummary(
                **ConversationRead.model_validate(conversation).model_dump(),
                participants_profiles=[profiles[p] for p in participant_ids if p in profiles],
                other_participants=[p for p in participant_ids if p != user_id],
                last_message=MessageRead.model_validate(last_message) if last_message else None,
                unread_count=unread_counts.get(conversation.id, 0),
                project=projects.get(conversation.project_id) if conversation.project_id else None,
            )
        )
    return summaries, profiles


def _matches(summary: ConversationSummary, query: str) -> bool:
    needle = query.casefold()
    if summary.subject and needle in summary.subject.casefold():
        return True
    return any(
        profile.full_name and needle in profile.full_name.casefold()
        for profile in summary.participants_profiles
    )


async def list_conversations(
    db: AsyncSession,
    directory: DirectoryClient,
    user_id: UUID,
    query: Optional[str] = None,
) -> List[ConversationSummary]:
    """
    Conversations of the user, most recently active first, each with its
    last message, unread count, participant profiles and project.

    A non-blank ``query`` keeps only conversations whose subject or any
    participant's name contains it (case-insensitive).
    """
    conversations = await crud.list_conversations_for_user(db, user_id)
    summaries, _ = await _summarize(db, directory, conversations, user_id)
    if query and query.strip():
        summaries = [s for s in summaries if _matches(s, query.strip())]
    return summaries


async def get_conversation_detail(
    db: AsyncSession,
    directory: DirectoryClient,
    conversation_id: UUID,
    user_id: UUID,
    mark_read: bool = False,
) -> ConversationDetail:
    """
    One conversation with all of its messages, oldest first.

    With ``mark_read`` the conversation is marked read after it has been
    fetched; the returned view shows the state as it was fetched.
    """
    conversation = await crud.get_conversation_for_participant(db, conversation_id, user_id)
    messages = await crud.list_messages(db, conversation_id)
    (summary,), profiles = await _summarize(db, directory, [conversation], user_id)

    detail = ConversationDetail(
        **summary.model_dump(),
        messages=[
            MessageWithSender(
                **MessageRead.model_validate(message).model_dump(),
                sender=profiles.get(message.sender_id),
            )
            for message in messages
        ],
    )

    if mark_read:
        updated = await crud.mark_conversation_read(db, conversation_id, user_id)
        logger.debug(f"Opened conversation {conversation_id}; {updated} messages marked read")
    return detail
