from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin

NO_PROJECT_MARKER = "-"


def make_direct_key(participants: Iterable[UUID], project_id: Optional[UUID]) -> str:
    """
    Canonical key of a direct conversation: the sorted participant pair plus
    the project context ("-" when there is none).
    """
    first, second = sorted(str(p) for p in participants)
    project = str(project_id) if project_id else NO_PROJECT_MARKER
    return f"{first}:{second}:{project}"


class Conversation(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("direct_key", name="uq_conversations_direct_key"),)

    subject = Column(String(255), nullable=True)
    project_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    created_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    # NULL for group conversations; NULLs never collide under the unique constraint
    direct_key = Column(String(120), nullable=True)

    # Relationships
    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def participant_ids(self) -> List[UUID]:
        return sorted((p.user_id for p in self.participants), key=str)

    @property
    def is_direct(self) -> bool:
        return self.direct_key is not None

    def has_participant(self, user_id: UUID) -> bool:
        return any(p.user_id == user_id for p in self.participants)

    def __repr__(self):
        return f"<Conversation(id={self.id}, direct={self.is_direct}, subject='{self.subject}')>"


class ConversationParticipant(CreatedAtMixin, Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(Uuid(as_uuid=True), primary_key=True, index=True)

    conversation = relationship("Conversation", back_populates="participants")

    def __repr__(self):
        return f"<ConversationParticipant(conversation_id={self.conversation_id}, user_id={self.user_id})>"
