"""
Event bus implementation for publishing and subscribing to events.
Provides decoupled communication between services through events.
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Set

import structlog

from ..interfaces.event_interface import EventHandler, IEvent

logger = structlog.get_logger()


class InMemoryEventBus:
    """In-memory event bus implementation for single-instance deployments."""

    def __init__(self):
        self._handlers: Dict[str, Set[EventHandler]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def publish(self, event: IEvent) -> bool:
        """
        Publish an event to all registered handlers.

        Handlers run concurrently. A failing handler does not stop the others.

        Returns:
            True if every handler completed, False if any of them raised
        """
        event_type = event.event_type
        handlers = list(self._handlers.get(event_type, ()))

        if not handlers:
            logger.debug("No handlers registered for event", event_type=event_type)
            return True

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True
        )

        delivered = True
        for handler, result in zip(handlers, results):
            if isinstance(result, BaseException):
                delivered = False
                logger.error(
                    "Event handler failed",
                    event_type=event_type,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(result)
                )

        logger.debug(
            "Event published",
            event_type=event_type,
            handler_count=len(handlers),
            delivered=delivered,
            correlation_id=event.correlation_id
        )
        return delivered

    async def subscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Subscribe to events of a specific type."""
        async with self._lock:
            self._handlers[event_type].add(handler)

        logger.info(
            "Handler subscribed to event type",
            event_type=event_type,
            handler=getattr(handler, "__qualname__", repr(handler))
        )
        return True

    async def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Unsubscribe from events of a specific type."""
        async with self._lock:
            handlers = self._handlers.get(event_type)
            if not handlers or handler not in handlers:
                return False
            handlers.discard(handler)
            if not handlers:
                del self._handlers[event_type]

        logger.info(
            "Handler unsubscribed from event type",
            event_type=event_type,
            handler=getattr(handler, "__qualname__", repr(handler))
        )
        return True

    async def get_handlers(self, event_type: str) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    async def clear(self) -> None:
        async with self._lock:
            self._handlers.clear()


# Alias for the main event bus implementation
EventBus = InMemoryEventBus
