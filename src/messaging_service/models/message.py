from sqlalchemy import Boolean, Column, ForeignKey, Index, Text, Uuid, false
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin, UUIDMixin


class Message(UUIDMixin, CreatedAtMixin, Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    conversation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sender_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    content = Column(Text, nullable=False)
    # One shared flag per message, not per recipient
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self):
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, is_read={self.is_read})>"
