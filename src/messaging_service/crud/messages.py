"""
CRUD operations for messages and their read state.

Read state is a single shared ``is_read`` flag per message. In a group
conversation the first reader clears it for every other recipient; a
per-reader receipt table would be needed to track readers individually.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import EmptyContent, translate_store_errors
from ..logging_config import logger
from ..models import ConversationParticipant, Message
from ..models.base import utcnow
from .conversations import get_conversation_for_participant


def normalize_content(content: str) -> str:
    """Trim message content, rejecting blank messages."""
    text = (content or "").strip()
    if not text:
        raise EmptyContent()
    return text


def _next_timestamp(previous: Optional[datetime]) -> datetime:
    """The current time, moved past ``previous`` when the clock has not advanced."""
    now = utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    return max(now, previous + timedelta(microseconds=1))


def _unread_for(user_id: UUID):
    return and_(Message.sender_id != user_id, Message.is_read.is_(False))


async def send_message(
    db: AsyncSession, conversation_id: UUID, sender_id: UUID, content: str
) -> Message:
    """
    Append a message to a conversation.

    The message insert and the conversation's ``updated_at`` touch are
    committed together so conversation lists never sort on a stale value.
    Each message is stamped strictly after the conversation's previous
    activity, so messages sent through one conversation keep their send
    order even when the clock repeats a value.

    Args:
        db: Database session
        conversation_id: Target conversation
        sender_id: The sending participant
        content: Message text, trimmed before storage

    Returns:
        The stored Message

    Raises:
        EmptyContent: If the content is blank
        ConversationNotFound: If the conversation does not exist
        NotAParticipant: If the sender is not in the conversation
        StoreError: If the store fails
    """
    text = normalize_content(content)
    conversation = await get_conversation_for_participant(
        db, conversation_id, sender_id, hide_foreign=False
    )

    sent_at = _next_timestamp(conversation.updated_at)
    message = Message(
        conversation_id=conversation.id,
        sender_id=sender_id,
        content=text,
        is_read=False,
        created_at=sent_at,
    )
    async with translate_store_errors(db, "send a message"):
        db.add(message)
        conversation.updated_at = sent_at
        await db.commit()

    logger.info(f"Message {message.id} sent to conversation {conversation.id} by {sender_id}")
    return message


async def list_messages(db: AsyncSession, conversation_id: UUID) -> List[Message]:
    """All messages of a conversation, oldest first."""
    async with translate_store_errors(db, "list messages"):
        result = await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return list(result.scalars().all())


async def get_last_messages(
    db: AsyncSession, conversation_ids: Iterable[UUID]
) -> Dict[UUID, Message]:
    """Latest message of each conversation, in one query."""
    ids = list(conversation_ids)
    if not ids:
        return {}

    ranked = (
        select(
            Message.id.label("message_id"),
            func.row_number()
            .over(
                partition_by=Message.conversation_id,
                order_by=(Message.created_at.desc(), Message.id.desc()),
            )
            .label("position"),
        )
        .where(Message.conversation_id.in_(ids))
        .subquery()
    )
    async with translate_store_errors(db, "load last messages"):
        result = await db.execute(
            select(Message)
            .join(ranked, Message.id == ranked.c.message_id)
            .where(ranked.c.position == 1)
        )
        return {message.conversation_id: message for message in result.scalars().all()}


async def get_unread_counts(
    db: AsyncSession, conversation_ids: Iterable[UUID], user_id: UUID
) -> Dict[UUID, int]:
    """Unread message count per conversation for the user, in one grouped query."""
    ids = list(conversation_ids)
    if not ids:
        return {}

    async with translate_store_errors(db, "count unread messages"):
        result = await db.execute(
            select(Message.conversation_id, func.count(Message.id))
            .where(Message.conversation_id.in_(ids), _unread_for(user_id))
            .group_by(Message.conversation_id)
        )
        counts = {conversation_id: count for conversation_id, count in result.all()}
    return {conversation_id: counts.get(conversation_id, 0) for conversation_id in ids}


async def count_unread_in_conversation(
    db: AsyncSession, conversation_id: UUID, user_id: UUID
) -> int:
    counts = await get_unread_counts(db, [conversation_id], user_id)
    return counts[conversation_id]


async def count_unread_messages(db: AsyncSession, user_id: UUID) -> int:
    """Unread messages across every conversation the user takes part in."""
    memberships = select(ConversationParticipant.conversation_id).where(
        ConversationParticipant.user_id == user_id
    )
    async with translate_store_errors(db, "count unread messages"):
        result = await db.execute(
            select(func.count(Message.id)).where(
                Message.conversation_id.in_(memberships), _unread_for(user_id)
            )
        )
        return result.scalar_one()


async def mark_conversation_read(db: AsyncSession, conversation_id: UUID, user_id: UUID) -> int:
    """
    Mark every message the user did not send in a conversation as read.

    Idempotent: a second call updates nothing and succeeds.

    Returns:
        Number of messages flipped to read
    """
    await get_conversation_for_participant(db, conversation_id, user_id, hide_foreign=False)

    async with translate_store_errors(db, "mark a conversation read"):
        result = await db.execute(
            update(Message)
            .where(Message.conversation_id == conversation_id, _unread_for(user_id))
            .values(is_read=True)
        )
        await db.commit()

    updated = result.rowcount or 0
    if updated:
        logger.info(f"Marked {updated} messages read in {conversation_id} for {user_id}")
    return updated
