"""
Credential hashing and verification.

Hashing is deliberately slow, so every call runs on a dedicated thread pool
and the event loop only awaits the result.
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

from passlib.context import CryptContext
import structlog

from .config import Settings
from .exceptions import InternalError, MalformedHashError, MismatchError

logger = structlog.get_logger()

T = TypeVar("T")


def build_crypt_context(
    time_cost: int = 3,
    memory_cost: int = 65536,
    parallelism: int = 4
) -> CryptContext:
    """argon2id context; salts are generated per hash and embedded in the output."""
    return CryptContext(
        schemes=["argon2"],
        deprecated="auto",
        argon2__type="ID",
        argon2__time_cost=time_cost,
        argon2__memory_cost=memory_cost,
        argon2__parallelism=parallelism,
    )


class CredentialHasher:
    """Hashes and verifies passwords on a worker pool reserved for that job."""

    def __init__(self, context: CryptContext, max_workers: int = 4):
        self._context = context
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="credential-hasher"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialHasher":
        context = build_crypt_context(
            time_cost=settings.ARGON2_TIME_COST,
            memory_cost=settings.ARGON2_MEMORY_COST,
            parallelism=settings.ARGON2_PARALLELISM,
        )
        return cls(context, max_workers=settings.HASHER_MAX_WORKERS)

    async def _offload(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(func, *args))

    async def hash(self, plaintext: str) -> str:
        """Return a self-describing argon2id hash of ``plaintext``."""
        try:
            return await self._offload(self._context.hash, plaintext)
        except Exception as e:
            logger.error("Password hashing worker failed", error=str(e))
            raise InternalError() from e

    async def verify(self, stored_hash: str, candidate: str) -> None:
        """
        Check ``candidate`` against ``stored_hash``.

        Raises:
            MismatchError: the password is wrong
            MalformedHashError: the stored hash cannot be parsed
            InternalError: the worker crashed
        """
        try:
            matched = await self._offload(self._context.verify, candidate, stored_hash)
        except (ValueError, TypeError) as e:
            logger.error("Stored password hash is malformed", error=str(e))
            raise MalformedHashError() from e
        except Exception as e:
            logger.error("Password verification worker failed", error=str(e))
            raise InternalError() from e

        if not matched:
            raise MismatchError()

    def needs_rehash(self, stored_hash: str) -> bool:
        return self._context.needs_update(stored_hash)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
