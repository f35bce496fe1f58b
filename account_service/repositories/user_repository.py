"""
User repository implementation following the Repository pattern.

Every method runs inside the caller's transaction. The repository flushes so
that constraint violations surface here, but committing is always left to
the workflow that owns the transaction.
"""

from typing import Optional, Tuple
import uuid
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from ..core.database import database_errors, is_unique_violation
from ..core.exceptions import (
    DataIntegrityError,
    DuplicateEmailError,
    InvalidQueryError,
    NotFoundError,
    RepositoryError,
)
from ..models.user import User, UserProfile

logger = structlog.get_logger()

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _active_users() -> Select:
    return (
        select(User)
        .options(selectinload(User.profile))
        .where(User.is_active.is_(True))
    )


def by_id(user_id: UUID) -> Select:
    return _active_users().where(User.id == user_id)


def by_email(email: str) -> Select:
    return _active_users().where(User.email == email)


def by_id_and_email(user_id: UUID, email: str) -> Select:
    return _active_users().where(User.id == user_id, User.email == email)


def active_user_query(
    user_id: Optional[UUID] = None,
    email: Optional[str] = None
) -> Tuple[str, Select]:
    """Pick the named lookup matching the supplied fields."""
    if user_id is not None and email is not None:
        return "by_id_and_email", by_id_and_email(user_id, email)
    if user_id is not None:
        return "by_id", by_id(user_id)
    if email is not None:
        return "by_email", by_email(email)
    raise InvalidQueryError()


class UserRepository:
    """Repository for user data access operations."""

    async def create_user_with_profile(
        self,
        db: AsyncSession,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str
    ) -> UUID:
        """
        Insert a user and its profile in the open transaction.

        A profile that already exists for the user counts as created.

        Raises:
            DuplicateEmailError: the email is already registered
            RepositoryError: any other constraint failure
        """
        user_id = uuid.uuid4()
        user = User(
            id=user_id,
            email=email,
            password=password_hash,
            first_name=first_name,
            last_name=last_name,
        )

        async with database_errors("create_user_with_profile"):
            try:
                db.add(user)
                await db.flush()
            except IntegrityError as e:
                if is_unique_violation(e):
                    logger.info("Registration rejected, email already exists", email=email)
                    raise DuplicateEmailError() from e
                logger.error("User insert violated a constraint", error=str(e))
                raise RepositoryError() from e

            try:
                await self._insert_profile(db, user_id)
            except IntegrityError as e:
                logger.error("Profile insert violated a constraint", user_id=str(user_id), error=str(e))
                raise RepositoryError() from e

        logger.debug("User and profile flushed", user_id=str(user_id))
        return user_id

    async def _insert_profile(self, db: AsyncSession, user_id: UUID) -> None:
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is not None:
            stmt = (
                insert(UserProfile)
                .values(id=uuid.uuid4(), user_id=user_id)
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            await db.execute(stmt)
            return

        existing = await db.execute(
            select(UserProfile.id).where(UserProfile.user_id == user_id)
        )
        if existing.scalar_one_or_none() is None:
            db.add(UserProfile(user_id=user_id))
            await db.flush()

    async def find_active_user(
        self,
        db: AsyncSession,
        user_id: Optional[UUID] = None,
        email: Optional[str] = None
    ) -> User:
        """
        Fetch the single active user matching every supplied field, with
        its profile loaded.

        Raises:
            InvalidQueryError: neither field was supplied
            NotFoundError: no active user matches
            DataIntegrityError: more than one row matched
        """
        variant, stmt = active_user_query(user_id=user_id, email=email)

        async with database_errors(f"find_active_user.{variant}"):
            result = await db.execute(stmt.limit(2))
            users = result.scalars().all()

        if not users:
            raise NotFoundError()
        if len(users) > 1:
            logger.error(
                "Active user lookup matched several rows",
                variant=variant,
                user_id=str(user_id) if user_id else None,
                email=email
            )
            raise DataIntegrityError()
        return users[0]
