"""
Notification dispatch interface.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class INotificationDispatcher(Protocol):
    """Protocol for handing a templated message to the delivery channel."""

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
        """
        Queue a message for delivery.

        Args:
            subject: Message subject line
            user_id: Recipient id
            email: Recipient address
            first_name: Recipient first name
            last_name: Recipient last name
            template_name: Template the channel renders
            context: Extra template variables such as the token and links

        Raises:
            DispatchError: the channel did not accept the message
        """
        ...
