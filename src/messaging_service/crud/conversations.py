"""
CRUD operations for conversations.

This module owns conversation identity: the find-or-create resolution of
direct conversations, participant lookups and deletion.
"""

from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import (
    ConversationNotFound,
    Forbidden,
    InvalidRecipients,
    NotAParticipant,
    StoreError,
    translate_store_errors,
)
from ..logging_config import logger
from ..models import Conversation, ConversationParticipant, Message, make_direct_key


def _dedupe_participants(recipients: Iterable[UUID], current_user_id: UUID) -> List[UUID]:
    seen = []
    for user_id in [*recipients, current_user_id]:
        if user_id not in seen:
            seen.append(user_id)
    return seen


async def get_direct_conversation(db: AsyncSession, direct_key: str) -> Optional[Conversation]:
    result = await db.execute(
        select(Conversation).where(Conversation.direct_key == direct_key)
    )
    return result.scalar_one_or_none()


async def resolve_conversation(
    db: AsyncSession,
    recipients: Iterable[UUID],
    current_user_id: UUID,
    subject: Optional[str] = None,
    project_id: Optional[UUID] = None,
    commit: bool = True,
) -> Tuple[Conversation, bool]:
    """
    Find the direct conversation for a pair of users, or create a new one.

    Two-participant conversations are unique per (unordered pair, project).
    Group conversations are never deduplicated; every call creates one.

    Args:
        db: Database session
        recipients: Requested recipients; the current user is added automatically
        current_user_id: The initiating user
        subject: Optional label for a new conversation
        project_id: Optional project context, part of the dedup key
        commit: Commit a newly created conversation. When False the row is
            only flushed and the caller commits it with its own work.

    Returns:
        Tuple of (conversation, created flag)

    Raises:
        InvalidRecipients: If nobody but the current user is addressed
        StoreError: If the store fails
    """
    participants = _dedupe_participants(recipients, current_user_id)
    if len(participants) < 2:
        raise InvalidRecipients()

    direct_key = None
    if len(participants) == 2:
        direct_key = make_direct_key(participants, project_id)
        async with translate_store_errors(db, "look up a direct conversation"):
            existing = await get_direct_conversation(db, direct_key)
        if existing is not None:
            logger.info(f"Reusing direct conversation {existing.id} for {direct_key}")
            return existing, False

    conversation = Conversation(
        subject=subject,
        project_id=project_id,
        created_by=current_user_id,
        direct_key=direct_key,
        participants=[ConversationParticipant(user_id=user_id) for user_id in participants],
    )
    db.add(conversation)
    try:
        if commit:
            await db.commit()
        else:
            await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if direct_key is None:
            logger.error(f"Integrity error creating group conversation: {e}", exc_info=True)
            raise StoreError() from e
        # A concurrent first contact inserted the same pair; return the winner
        async with translate_store_errors(db, "re-read a direct conversation"):
            existing = await get_direct_conversation(db, direct_key)
        if existing is None:
            logger.error(f"Direct key conflict without a stored row: {direct_key}")
            raise StoreError() from e
        logger.info(f"Lost create race for {direct_key}, returning {existing.id}")
        return existing, False
    except SQLAlchemyError as e:
        logger.error(f"Failed to create conversation: {e}", exc_info=True)
        await db.rollback()
        raise StoreError() from e

    logger.info(
        f"Created {'direct' if direct_key else 'group'} conversation {conversation.id} "
        f"with {len(participants)} participants"
    )
    return conversation, True


async def get_conversation(db: AsyncSession, conversation_id: UUID) -> Optional[Conversation]:
    async with translate_store_errors(db, "load a conversation"):
        return await db.get(Conversation, conversation_id)


async def get_conversation_for_participant(
    db: AsyncSession,
    conversation_id: UUID,
    user_id: UUID,
    hide_foreign: bool = True,
) -> Conversation:
    """
    Load a conversation the user takes part in.

    Args:
        db: Database session
        conversation_id: Conversation ID
        user_id: The acting user
        hide_foreign: Report a conversation the user is not in as missing
            instead of forbidden

    Raises:
        ConversationNotFound: If the conversation does not exist (or is hidden)
        NotAParticipant: If the user is not a participant and hide_foreign is False
    """
    conversation = await get_conversation(db, conversation_id)
    if conversation is None:
        raise ConversationNotFound()
    if not conversation.has_participant(user_id):
        if hide_foreign:
            raise ConversationNotFound()
        raise NotAParticipant()
    return conversation


async def list_conversations_for_user(db: AsyncSession, user_id: UUID) -> List[Conversation]:
    """Conversations the user takes part in, most recently active first."""
    memberships = select(ConversationParticipant.conversation_id).where(
        ConversationParticipant.user_id == user_id
    )
    async with translate_store_errors(db, "list conversations"):
        result = await db.execute(
            select(Conversation)
            .where(Conversation.id.in_(memberships))
            .order_by(Conversation.updated_at.desc(), Conversation.id)
        )
        return list(result.scalars().all())


async def delete_conversation(db: AsyncSession, conversation_id: UUID, user_id: UUID) -> None:
    """
    Delete a conversation and its messages.

    Only the participant who created the conversation may delete it.

    Raises:
        ConversationNotFound: If the conversation is missing or the user is not in it
        Forbidden: If the user takes part but did not create it
    """
    conversation = await get_conversation_for_participant(db, conversation_id, user_id)
    if conversation.created_by != user_id:
        raise Forbidden("Only the creator of a conversation can delete it")

    async with translate_store_errors(db, "delete a conversation"):
        await db.execute(delete(Message).where(Message.conversation_id == conversation_id))
        await db.delete(conversation)
        await db.commit()

    logger.info(f"Deleted conversation {conversation_id} by {user_id}")
