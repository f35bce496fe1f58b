"""
Database configuration and connection management for the account service.
Implements async SQLAlchemy with bounded connection pooling and maps driver
failures onto the service's error taxonomy.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
import structlog

from .config import Settings
from .exceptions import PoolExhaustedError, RepositoryError, StoreUnavailableError

logger = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine with a bounded pool sized from settings."""
    if settings.is_sqlite:
        # SQLite has no server-side pool worth bounding.
        return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
        pool_recycle=settings.DATABASE_POOL_RECYCLE,
        connect_args={
            "server_settings": {
                "application_name": f"{settings.APP_NAME}-{settings.ENVIRONMENT}",
            }
        }
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


def is_unique_violation(exc: IntegrityError) -> bool:
    """Whether an IntegrityError was raised by a UNIQUE constraint."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "unique" in str(orig).lower()


@asynccontextmanager
async def database_errors(operation: str) -> AsyncIterator[None]:
    """
    Translate driver and pool failures raised inside the block.

    IntegrityError is left alone: only the caller knows which constraint
    it expects to trip.
    """
    try:
        yield
    except IntegrityError:
        raise
    except PoolTimeoutError as e:
        logger.error("Database pool exhausted", operation=operation, error=str(e))
        raise PoolExhaustedError() from e
    except DBAPIError as e:
        if e.connection_invalidated or isinstance(e.orig, (ConnectionError, OSError)):
            logger.error("Database unavailable", operation=operation, error=str(e))
            raise StoreUnavailableError() from e
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise RepositoryError() from e
    except (ConnectionError, OSError) as e:
        logger.error("Database unavailable", operation=operation, error=str(e))
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise RepositoryError() from e


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession]
) -> AsyncIterator[AsyncSession]:
    """
    Provide a session whose transaction boundary is owned by the caller.
    Anything left uncommitted when the caller is done is rolled back.
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


class DatabaseHealthCheck:
    """Health check utilities for database connections."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def check_connection(self) -> bool:
        """Check if database connection is healthy."""
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
