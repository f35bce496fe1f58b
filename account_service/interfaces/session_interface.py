"""
Session store interface.
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ISession(Protocol):
    """A server-side session bound to one client cookie."""

    @property
    def session_id(self) -> Optional[str]:
        ...

    async def renew(self) -> None:
        """Move the session to a fresh identifier, keeping its state."""
        ...

    async def insert(self, key: str, value: Any) -> None:
        """
        Store a value under ``key``.

        Raises:
            SessionError: the value could not be written
        """
        ...

    async def get(self, key: str) -> Any:
        ...

    async def purge(self) -> None:
        """Drop every value and the identifier itself."""
        ...
