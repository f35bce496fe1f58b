"""
Notification dispatcher backed by the in-process event bus.
"""

from typing import Any, Mapping, Optional
from uuid import UUID

import structlog

from ..core.exceptions import DispatchError
from ..events.notification_events import NotificationRequestedEvent
from ..interfaces.event_interface import IEventBus

logger = structlog.get_logger()


class EventBusNotificationDispatcher:
    """Publishes a ``NotificationRequestedEvent`` for the delivery handler.

    A dispatch only counts as sent when at least one handler is subscribed and
    every subscribed handler accepted it.
    """

    def __init__(self, event_bus: IEventBus):
        self.event_bus = event_bus

    async def send(
        self,
        subject: str,
        user_id: UUID,
        email: str,
        first_name: str,
        last_name: str,
        template_name: str,
        context: Optional[Mapping[str, Any]] = None
    ) -> None:
        event = NotificationRequestedEvent(
            subject=subject,
            user_id=user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            template_name=template_name,
            context=dict(context or {}),
        )

        try:
            handlers = await self.event_bus.get_handlers(NotificationRequestedEvent.__name__)
            if not handlers:
                logger.error(
                    "No delivery handler subscribed for notifications",
                    template=template_name,
                    user_id=str(user_id)
                )
                raise DispatchError()
            delivered = await self.event_bus.publish(event)
        except DispatchError:
            raise
        except Exception as e:
            logger.error(
                "Notification publish raised",
                template=template_name,
                user_id=str(user_id),
                error=str(e)
            )
            raise DispatchError() from e

        if not delivered:
            logger.error(
                "Notification was not accepted",
                template=template_name,
                user_id=str(user_id)
            )
            raise DispatchError()

        logger.debug("Notification dispatched", template=template_name, user_id=str(user_id))
