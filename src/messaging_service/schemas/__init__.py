from .common import Message, SuccessResponse, UpdatedResponse
from .conversation import (
    ConversationCreate,
    ConversationCreated,
    ConversationDetail,
    ConversationRead,
    ConversationSummary,
    MessageCreate,
    MessageRead,
    MessageWithSender,
)
from .directory import ProfileRead, ProjectRead
from .notification import NotificationCreate, NotificationRead, UnreadCounts
from .realtime import RealtimeEvent, RealtimeEventType

__all__ = [
    "Message",
    "SuccessResponse",
    "UpdatedResponse",
    "ConversationCreate",
    "ConversationCreated",
    "ConversationDetail",
    "ConversationRead",
    "ConversationSummary",
    "MessageCreate",
    "MessageRead",
    "MessageWithSender",
    "ProfileRead",
    "ProjectRead",
    "NotificationCreate",
    "NotificationRead",
    "UnreadCounts",
    "RealtimeEvent",
    "RealtimeEventType",
]
