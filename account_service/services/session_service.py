"""
Server-side sessions stored in Redis.

A session is a hash at ``<prefix><session id>`` whose fields hold JSON
encoded values. The id travels to the client in a cookie; renewing a session
moves its state to a new id so that an id known before login is useless
afterwards.
"""

import json
import secrets
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from ..core.config import Settings
from ..core.exceptions import SessionError

logger = structlog.get_logger()

USER_ID_KEY = "user_id"
USER_EMAIL_KEY = "user_email"

SESSION_ID_BYTES = 32


class Session:
    """One client's session. Obtain instances from ``RedisSessionStore.load``."""

    def __init__(
        self,
        redis_client: redis.Redis,
        session_id: Optional[str],
        key_prefix: str,
        lifetime_seconds: int
    ):
        self._redis = redis_client
        self._session_id = session_id
        self._key_prefix = key_prefix
        self._lifetime_seconds = lifetime_seconds
        self.modified = False
        self.purged = False

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    async def renew(self) -> None:
        """Move the session to a fresh id. State already stored is kept."""
        old_id = self._session_id
        new_id = secrets.token_urlsafe(SESSION_ID_BYTES)

        try:
            if old_id and await self._redis.exists(self._key(old_id)):
                await self._redis.rename(self._key(old_id), self._key(new_id))
                await self._redis.expire(self._key(new_id), self._lifetime_seconds)
        except RedisError as e:
            logger.error("Session renewal failed", error=str(e))
            raise SessionError() from e

        self._session_id = new_id
        self.modified = True
        self.purged = False

    async def insert(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``key``.

        Raises:
            SessionError: the value cannot be serialized or written
        """
        if self._session_id is None:
            self._session_id = secrets.token_urlsafe(SESSION_ID_BYTES)

        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Session value is not serializable", key=key, error=str(e))
            raise SessionError() from e

        session_key = self._key(self._session_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hset(session_key, key, encoded)
                pipe.expire(session_key, self._lifetime_seconds)
                await pipe.execute()
        except RedisError as e:
            logger.error("Session write failed", key=key, error=str(e))
            raise SessionError() from e

        self.modified = True

    async def get(self, key: str) -> Any:
        if self._session_id is None:
            return None
        try:
            raw = await self._redis.hget(self._key(self._session_id), key)
        except RedisError as e:
            logger.error("Session read failed", key=key, error=str(e))
            raise SessionError() from e
        return json.loads(raw) if raw is not None else None

    async def purge(self) -> None:
        """Drop all state and forget the id."""
        if self._session_id is not None:
            try:
                await self._redis.delete(self._key(self._session_id))
            except RedisError as e:
                logger.error("Session purge failed", error=str(e))
                raise SessionError() from e
        self._session_id = None
        self.modified = False
        self.purged = True


class RedisSessionStore:
    """Creates ``Session`` objects bound to the shared Redis client."""

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "session:",
        lifetime_seconds: int = 86400
    ):
        self._redis = redis_client
        self.key_prefix = key_prefix
        self.lifetime_seconds = lifetime_seconds

    @classmethod
    def from_settings(cls, redis_client: redis.Redis, settings: Settings) -> "RedisSessionStore":
        return cls(
            redis_client,
            key_prefix=settings.SESSION_KEY_PREFIX,
            lifetime_seconds=settings.SESSION_LIFETIME_SECONDS,
        )

    def load(self, session_id: Optional[str]) -> Session:
        return Session(
            self._redis,
            session_id or None,
            key_prefix=self.key_prefix,
            lifetime_seconds=self.lifetime_seconds,
        )
