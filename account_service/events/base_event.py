"""
Base event implementation for the event system.
Provides common functionality for all events in the system.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict
import uuid

SYSTEM_FIELDS = frozenset({"correlation_id", "timestamp"})


@dataclass
class BaseEvent:
    """Base implementation for all events."""

    correlation_id: str = field(
        default_factory=lambda: str(uuid.uuid4()), kw_only=True
    )
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), kw_only=True
    )

    @property
    def event_type(self) -> str:
        """Event type identifier based on class name."""
        return self.__class__.__name__

    @property
    def data(self) -> Dict[str, Any]:
        """Event data payload excluding system fields."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in SYSTEM_FIELDS
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary representation."""
        return {
            "event_type": self.event_type,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data
        }

    def __str__(self) -> str:
        return f"{self.event_type}(correlation_id={self.correlation_id}, timestamp={self.timestamp})"
