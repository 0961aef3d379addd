from .base import Base
from .conversation import Conversation, ConversationParticipant, make_direct_key
from .message import Message
from .notification import Notification, NotificationSeverity, NotificationType

__all__ = [
    "Base",
    "Conversation",
    "ConversationParticipant",
    "make_direct_key",
    "Message",
    "Notification",
    "NotificationSeverity",
    "NotificationType",
]
