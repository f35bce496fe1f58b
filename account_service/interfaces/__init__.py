"""
Interface definitions for dependency abstractions.
These Protocol classes define contracts for services to enable dependency injection
and improve testability.
"""

from .event_interface import EventHandler, IEvent, IEventBus
from .notification_interface import INotificationDispatcher
from .repository_interface import IUserRepository
from .session_interface import ISession

__all__ = [
    "EventHandler",
    "IEvent",
    "IEventBus",
    "INotificationDispatcher",
    "IUserRepository",
    "ISession",
]
