"""
Default event handlers.

Template rendering and mail transport live outside this service; the
handlers here record what was requested so a deployment without a mail
worker still leaves a trail.
"""

import structlog

from ..interfaces.event_interface import IEvent, IEventBus
from .auth_events import (
    PasswordResetRequestedEvent,
    UserAuthenticatedEvent,
    UserRegisteredEvent,
)
from .notification_events import NotificationRequestedEvent

logger = structlog.get_logger()


class NotificationLogHandler:
    """Logs every notification request. The template context is left out."""

    async def handle_event(self, event: IEvent) -> None:
        if not isinstance(event, NotificationRequestedEvent):
            return
        logger.info(
            "Notification queued",
            subject=event.subject,
            template=event.template_name,
            user_id=str(event.user_id),
            email=event.email,
            correlation_id=event.correlation_id
        )


class AccountEventLogHandler:
    """Writes account lifecycle events to the structured log."""

    async def handle_event(self, event: IEvent) -> None:
        if isinstance(event, UserRegisteredEvent):
            logger.info("Account registered", user_id=str(event.user_id), email=event.email)
        elif isinstance(event, UserAuthenticatedEvent):
            logger.info("Account authenticated", user_id=str(event.user_id), email=event.email)
        elif isinstance(event, PasswordResetRequestedEvent):
            logger.info("Password reset requested", user_id=str(event.user_id), email=event.email)


async def register_default_handlers(event_bus: IEventBus) -> None:
    """Subscribe the logging handlers to every event this service publishes."""
    notification_handler = NotificationLogHandler()
    await event_bus.subscribe(
        NotificationRequestedEvent.__name__, notification_handler.handle_event
    )

    account_handler = AccountEventLogHandler()
    for event_class in (
        UserRegisteredEvent,
        UserAuthenticatedEvent,
        PasswordResetRequestedEvent,
    ):
        await event_bus.subscribe(event_class.__name__, account_handler.handle_event)
