"""
Redis connection management for ephemeral tokens and session storage.
Implements bounded connection pooling and health checks.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.asyncio import BlockingConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
import structlog

from .config import Settings
from .exceptions import PoolExhaustedError, StoreUnavailableError

logger = structlog.get_logger()

# Raised by BlockingConnectionPool when the pool timeout elapses.
POOL_EXHAUSTED_MESSAGE = "No connection available"


class RedisManager:
    """Redis connection manager with a bounded, blocking connection pool."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._pool: Optional[BlockingConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    async def initialize(self) -> None:
        """Initialize Redis connection pool."""
        self._pool = BlockingConnectionPool.from_url(
            self.settings.REDIS_URL,
            max_connections=self.settings.REDIS_POOL_SIZE,
            timeout=self.settings.REDIS_POOL_TIMEOUT,
        )
        self._client = redis.Redis(connection_pool=self._pool)

        try:
            await asyncio.wait_for(self._client.ping(), timeout=5.0)
        except (asyncio.TimeoutError, RedisError) as e:
            logger.error("Redis connection test failed", error=str(e))
            await self.close()
            raise StoreUnavailableError() from e

        logger.info(
            "Redis connection initialized",
            max_connections=self.settings.REDIS_POOL_SIZE,
            pool_timeout=self.settings.REDIS_POOL_TIMEOUT
        )

    async def close(self) -> None:
        """Close Redis connections."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis connections closed")

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self._client:
            raise RuntimeError("Redis client not initialized")
        return self._client

    async def health_check(self) -> bool:
        """Check Redis connection health."""
        if not self._client:
            logger.warning("Redis health check skipped - client not initialized")
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error("Redis health check failed", error=str(e))
            return False


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """
    Translate Redis client failures raised inside the block into
    retryable service errors.
    """
    try:
        yield
    except RedisConnectionError as e:
        if POOL_EXHAUSTED_MESSAGE in str(e):
            logger.error("Redis pool exhausted", operation=operation)
            raise PoolExhaustedError() from e
        logger.error("Redis unavailable", operation=operation, error=str(e))
        raise StoreUnavailableError() from e
    except RedisError as e:
        logger.error("Redis operation failed", operation=operation, error=str(e))
        raise StoreUnavailableError() from e
