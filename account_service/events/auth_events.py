"""
Account lifecycle events.
Published after a workflow has completed so that audit, analytics and other
listeners stay out of the request path.
"""

from dataclasses import dataclass
from uuid import UUID

from .base_event import BaseEvent


@dataclass
class UserRegisteredEvent(BaseEvent):
    """Event published once a registration has been committed."""

    user_id: UUID
    email: str


@dataclass
class UserAuthenticatedEvent(BaseEvent):
    """Event published when a user successfully authenticates."""

    user_id: UUID
    email: str


@dataclass
class PasswordResetRequestedEvent(BaseEvent):
    """Event published when reset instructions have been dispatched."""

    user_id: UUID
    email: str
