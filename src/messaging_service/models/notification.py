"""
Notification model.

Notifications are system-generated alerts owned by a single user. They are
created by domain events elsewhere in the platform and consumed here.
"""

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Enum, Index, String, Text, Uuid, false

from .base import Base, TimestampMixin, UUIDMixin


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class NotificationType(str, PyEnum):
    """Kinds of alerts other services raise for a user."""

    BUDGET_WARNING = "budget_warning"
    BUDGET_EXCEEDED = "budget_exceeded"
    SCHEDULE_CONFLICT = "schedule_conflict"
    OVERTIME_ALERT = "overtime_alert"
    WEATHER_ALERT = "weather_alert"
    TASK_OVERDUE = "task_overdue"
    TASK_ASSIGNED = "task_assigned"
    DOCUMENT_UPLOADED = "document_uploaded"
    DEADLINE_APPROACHING = "deadline_approaching"
    PERMIT_EXPIRING = "permit_expiring"
    MILESTONE_REACHED = "milestone_reached"
    MESSAGE = "message"
    SYSTEM = "system"


class NotificationSeverity(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Notification(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )

    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    project_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    notification_type = Column(
        Enum(
            NotificationType,
            name="notification_type",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_entity_id = Column(Uuid(as_uuid=True), nullable=True)
    related_entity_type = Column(String(50), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(DateTime(timezone=True), nullable=True)
    severity = Column(
        Enum(
            NotificationSeverity,
            name="notification_severity",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=NotificationSeverity.MEDIUM,
    )
    action_required = Column(Boolean, nullable=False, default=False, server_default=false())
    action_url = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.notification_type}')>"
