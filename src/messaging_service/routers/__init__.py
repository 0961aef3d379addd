from .health_router import health_router
from .conversations_router import conversations_router
from .notifications_router import internal_router, notifications_router
from .ws_router import ws_router

__all__ = [
    "health_router",
    "conversations_router",
    "notifications_router",
    "internal_router",
    "ws_router",
]
