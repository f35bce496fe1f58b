"""
Repository interfaces for dependency abstraction.
Defines contracts for data access operations to enable dependency injection
and improve testability.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


@runtime_checkable
class IUserRepository(Protocol):
    """Protocol for user repository operations.

    Implementations flush inside the caller's transaction and never commit.
    """

    async def create_user_with_profile(
        self,
        db: AsyncSession,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str
    ) -> UUID:
        """
        Insert a user and its profile row.

        Args:
            db: Database session with an open transaction
            email: User email
            password_hash: Already hashed password
            first_name: User's first name
            last_name: User's last name

        Returns:
            Id of the new user

        Raises:
            DuplicateEmailError: the email is already registered
        """
        ...

    async def find_active_user(
        self,
        db: AsyncSession,
        user_id: Optional[UUID] = None,
        email: Optional[str] = None
    ) -> User:
        """
        Fetch the single active user matching every supplied field.

        Raises:
            InvalidQueryError: neither field was supplied
            NotFoundError: no active user matches
            DataIntegrityError: more than one row matched
        """
        ...
