"""
Event system for decoupling side effects from the account workflows.
"""

from .auth_events import (
    PasswordResetRequestedEvent,
    UserAuthenticatedEvent,
    UserRegisteredEvent,
)
from .base_event import BaseEvent
from .event_bus import EventBus, InMemoryEventBus
from .handlers import (
    AccountEventLogHandler,
    NotificationLogHandler,
    register_default_handlers,
)
from .notification_events import NotificationRequestedEvent

__all__ = [
    "EventBus",
    "InMemoryEventBus",
    "BaseEvent",
    "NotificationRequestedEvent",
    "UserRegisteredEvent",
    "UserAuthenticatedEvent",
    "PasswordResetRequestedEvent",
    "NotificationLogHandler",
    "AccountEventLogHandler",
    "register_default_handlers",
]
