"""
Domain errors of the messaging service.

Every error carries the HTTP status and a stable machine-readable code so the
exception handler in ``main`` can return a tagged result to the caller.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .logging_config import logger


class MessagingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "messaging_error"
    default_detail: str = "Messaging operation failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotAuthenticated(MessagingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_authenticated"
    default_detail = "Could not validate credentials"


class InvalidRecipients(MessagingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_recipients"
    default_detail = "At least one recipient other than yourself is required"


class EmptyContent(MessagingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "empty_content"
    default_detail = "Message content cannot be empty"


class Forbidden(MessagingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "You don't have permission to perform this operation"


class NotAParticipant(Forbidden):
    code = "not_a_participant"
    default_detail = "You are not a participant of this conversation"


class ConversationNotFound(MessagingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "conversation_not_found"
    default_detail = "Conversation not found"


class NotificationNotFound(MessagingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "notification_not_found"
    default_detail = "Notification not found"


class StoreError(MessagingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_error"
    default_detail = "The message store is unavailable, please try again"


@asynccontextmanager
async def translate_store_errors(db: AsyncSession, action: str) -> AsyncIterator[None]:
    """
    Wraps a unit of store work: any SQLAlchemy failure is rolled back, logged
    and re-raised as StoreError. Domain errors pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store failure while trying to {action}: {e}", exc_info=True)
        await db.rollback()
        raise StoreError() from e
