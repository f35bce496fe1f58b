"""
Outbound notification events.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
from uuid import UUID

from .base_event import BaseEvent


@dataclass
class NotificationRequestedEvent(BaseEvent):
    """A templated message waiting for the delivery channel."""

    subject: str
    user_id: UUID
    email: str
    first_name: str
    last_name: str
    template_name: str
    # May hold secrets such as tokens; never log it.
    context: Dict[str, Any] = field(default_factory=dict)
