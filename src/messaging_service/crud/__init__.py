from .conversations import (
    delete_conversation,
    get_conversation,
    get_conversation_for_participant,
    get_direct_conversation,
    list_conversations_for_user,
    resolve_conversation,
)
from .messages import (
    count_unread_in_conversation,
    count_unread_messages,
    get_last_messages,
    get_unread_counts,
    list_messages,
    mark_conversation_read,
    normalize_content,
    send_message,
)
from .notifications import (
    count_unread_notifications,
    create_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

__all__ = [
    "delete_conversation",
    "get_conversation",
    "get_conversation_for_participant",
    "get_direct_conversation",
    "list_conversations_for_user",
    "resolve_conversation",
    "count_unread_in_conversation",
    "count_unread_messages",
    "get_last_messages",
    "get_unread_counts",
    "list_messages",
    "mark_conversation_read",
    "normalize_content",
    "send_message",
    "count_unread_notifications",
    "create_notification",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
]
