"""
Short-lived, purpose-scoped tokens kept in Redis.

Each token is stored as ``<prefix><token>`` holding the subject and purpose,
and Redis expiry enforces the lifetime.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import json
import secrets
from typing import Optional
from uuid import UUID

import redis.asyncio as redis
import structlog

from ...core.exceptions import ExpiredOrUnknownTokenError
from ...core.redis import store_errors

logger = structlog.get_logger()

TOKEN_BYTES = 32


class TokenPurpose(str, Enum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class TokenClaims:
    token: str
    user_id: UUID
    purpose: TokenPurpose
    expires_at: Optional[datetime] = None


class TokenBroker:
    """Issues, resolves, consumes and revokes ephemeral tokens."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "token:"):
        self._redis = redis_client
        self._key_prefix = key_prefix

    def _key(self, token: str) -> str:
        return f"{self._key_prefix}{token}"

    async def issue(self, user_id: UUID, purpose: TokenPurpose, ttl: timedelta) -> str:
        """
        Store a fresh token for ``user_id`` that expires after ``ttl``.

        Raises:
            ValueError: ttl is not positive
            PoolExhaustedError, StoreUnavailableError: Redis failure
        """
        ttl_ms = int(ttl.total_seconds() * 1000)
        if ttl_ms <= 0:
            raise ValueError("token TTL must be positive")

        token = secrets.token_urlsafe(TOKEN_BYTES)
        payload = json.dumps({"user_id": str(user_id), "purpose": TokenPurpose(purpose).value})

        async with store_errors("token.issue"):
            await self._redis.set(self._key(token), payload, px=ttl_ms)

        logger.debug("Token issued", user_id=str(user_id), purpose=TokenPurpose(purpose).value, ttl_ms=ttl_ms)
        return token

    async def resolve(self, token: str, purpose: Optional[TokenPurpose] = None) -> TokenClaims:
        """
        Look a token up without invalidating it.

        Raises:
            ExpiredOrUnknownTokenError: missing, expired, or issued for
                another purpose
        """
        key = self._key(token)
        async with store_errors("token.resolve"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.get(key)
                pipe.pttl(key)
                raw, pttl = await pipe.execute()

        return self._claims(token, raw, pttl, purpose)

    async def consume(self, token: str, purpose: TokenPurpose) -> TokenClaims:
        """
        Resolve and delete a token in one atomic round-trip.

        A token presented for the wrong purpose is deleted as well.
        """
        key = self._key(token)
        async with store_errors("token.consume"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.get(key)
                pipe.pttl(key)
                pipe.delete(key)
                raw, pttl, _ = await pipe.execute()

        return self._claims(token, raw, pttl, purpose)

    async def revoke(self, token: str) -> bool:
        """Delete a token. Returns whether it still existed."""
        async with store_errors("token.revoke"):
            deleted = await self._redis.delete(self._key(token))
        return bool(deleted)

    @staticmethod
    def _claims(
        token: str,
        raw: Optional[bytes],
        pttl: int,
        purpose: Optional[TokenPurpose]
    ) -> TokenClaims:
        if raw is None:
            raise ExpiredOrUnknownTokenError()

        try:
            payload = json.loads(raw)
            claims = TokenClaims(
                token=token,
                user_id=UUID(payload["user_id"]),
                purpose=TokenPurpose(payload["purpose"]),
                expires_at=(
                    datetime.now(timezone.utc) + timedelta(milliseconds=pttl)
                    if pttl and pttl > 0 else None
                ),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Stored token payload is unreadable", error=str(e))
            raise ExpiredOrUnknownTokenError() from e

        if purpose is not None and claims.purpose != TokenPurpose(purpose):
            raise ExpiredOrUnknownTokenError()
        return claims
