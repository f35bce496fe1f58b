"""
Event system interfaces for dependency abstraction.
Defines contracts for event-driven architecture to enable dependency injection
and improve testability.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Protocol, runtime_checkable


@runtime_checkable
class IEvent(Protocol):
    """Contract for all events."""

    correlation_id: str
    timestamp: datetime

    @property
    def event_type(self) -> str:
        """Event type identifier."""
        ...

    @property
    def data(self) -> Dict[str, Any]:
        """Event data payload."""
        ...


EventHandler = Callable[[IEvent], Awaitable[None]]


@runtime_checkable
class IEventBus(Protocol):
    """Protocol for event bus operations."""

    async def publish(self, event: IEvent) -> bool:
        """
        Publish an event to the event bus.

        Args:
            event: Event to publish

        Returns:
            True if every handler accepted the event, False otherwise
        """
        ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Type of events to subscribe to
            handler: Async function to handle events

        Returns:
            True if subscription successful, False otherwise
        """
        ...

    async def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Unsubscribe from events of a specific type.

        Args:
            event_type: Type of events to unsubscribe from
            handler: Handler to remove

        Returns:
            True if unsubscription successful, False otherwise
        """
        ...

    async def get_handlers(self, event_type: str) -> List[EventHandler]:
        """Get all handlers for a specific event type."""
        ...
