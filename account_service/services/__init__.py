"""
Service layer for the account service.
"""
from .notification_service import EventBusNotificationDispatcher
from .session_service import RedisSessionStore, Session

__all__ = [
    "EventBusNotificationDispatcher",
    "RedisSessionStore",
    "Session",
]
