import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base

# The single declarative base for all messaging models.
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDMixin:
    """Mixin to provide a UUID primary key for models."""

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        nullable=False,
    )


class CreatedAtMixin:
    """Mixin to provide an immutable created_at column."""

    # Stamped application-side so ordering keeps sub-second resolution on every backend
    created_at = Column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin to provide created_at and updated_at columns for models."""

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
