"""
Dependency injection container.

Builds every collaborator once at startup from the injected settings and
releases pooled resources at shutdown. Request handlers reach services only
through the container stored on the application state.
"""

from typing import Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
import structlog

from ..core.config import Settings
from ..core.database import DatabaseHealthCheck, create_engine, create_session_factory
from ..core.redis import RedisManager
from ..core.security import CredentialHasher
from ..events.event_bus import InMemoryEventBus
from ..events.handlers import register_default_handlers
from ..interfaces.event_interface import IEventBus
from ..interfaces.notification_interface import INotificationDispatcher
from ..repositories.user_repository import UserRepository
from ..services.auth.authentication_service import AuthenticationService
from ..services.auth.password_service import PasswordService
from ..services.auth.registration_service import RegistrationService
from ..services.auth.token_broker import TokenBroker
from ..services.notification_service import EventBusNotificationDispatcher
from ..services.session_service import RedisSessionStore

logger = structlog.get_logger()


class Container:
    """
    Owns the pools, the hasher executor and the service graph.

    Without an injected ``dispatcher`` notifications go to the event bus,
    where the default subscriber only logs them. Registration then commits
    once the request is logged, so deployments must inject a dispatcher (or
    subscribe a handler) that actually delivers mail.
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[AsyncEngine] = None,
        redis_client: Optional[redis.Redis] = None,
        event_bus: Optional[IEventBus] = None,
        dispatcher: Optional[INotificationDispatcher] = None
    ):
        self.settings = settings
        self._engine = engine
        self._owns_engine = engine is None
        self._redis_client = redis_client
        self._redis_manager: Optional[RedisManager] = None
        self._event_bus = event_bus
        self._dispatcher = dispatcher
        self._initialized = False

        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.hasher: Optional[CredentialHasher] = None
        self.user_repository: Optional[UserRepository] = None
        self.token_broker: Optional[TokenBroker] = None
        self.session_store: Optional[RedisSessionStore] = None
        self.registration_service: Optional[RegistrationService] = None
        self.authentication_service: Optional[AuthenticationService] = None
        self.password_service: Optional[PasswordService] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Container not initialized")
        return self._engine

    @property
    def redis(self) -> redis.Redis:
        if self._redis_client is None:
            raise RuntimeError("Container not initialized")
        return self._redis_client

    @property
    def event_bus(self) -> IEventBus:
        default_bus = self._event_bus is None
        if default_bus:
            raise RuntimeError("Container not initialized")
        return self._event_bus

    async def initialize(self) -> None:
        """Create pools and wire the services."""
        if self._initialized:
            return

        settings = self.settings

        if self._engine is None:
            self._engine = create_engine(settings)
        self.session_factory = create_session_factory(self._engine)

        if self._redis_client is None:
            self._redis_manager = RedisManager(settings)
            await self._redis_manager.initialize()
            self._redis_client = self._redis_manager.client

        default_bus = self._event_bus is None
        if default_bus:
            self._event_bus = InMemoryEventBus()
            await register_default_handlers(self._event_bus)

        if self._dispatcher is None:
            self._dispatcher = EventBusNotificationDispatcher(self._event_bus)
            if default_bus and settings.ENVIRONMENT != "testing":
                logger.warning(
                    "Notifications are only logged; inject a delivering dispatcher",
                    environment=settings.ENVIRONMENT
                )

        self.hasher = CredentialHasher.from_settings(settings)
        self.user_repository = UserRepository()
        self.token_broker = TokenBroker(self._redis_client, key_prefix=settings.TOKEN_KEY_PREFIX)
        self.session_store = RedisSessionStore.from_settings(self._redis_client, settings)

        self.registration_service = RegistrationService(
            settings=settings,
            user_repository=self.user_repository,
            hasher=self.hasher,
            token_broker=self.token_broker,
            dispatcher=self._dispatcher,
            event_bus=self._event_bus,
        )
        self.authentication_service = AuthenticationService(
            settings=settings,
            user_repository=self.user_repository,
            hasher=self.hasher,
            event_bus=self._event_bus,
        )
        self.password_service = PasswordService(
            settings=settings,
            user_repository=self.user_repository,
            token_broker=self.token_broker,
            dispatcher=self._dispatcher,
            event_bus=self._event_bus,
        )

        self._initialized = True
        logger.info("Service container initialized", environment=settings.ENVIRONMENT)

    async def cleanup(self) -> None:
        """Release resources the container created itself."""
        if self.hasher is not None:
            self.hasher.shutdown()
            self.hasher = None

        if self._redis_manager is not None:
            await self._redis_manager.close()
            self._redis_manager = None
            self._redis_client = None

        if self._owns_engine and self._engine is not None:
            await self._engine.dispose()
            self._engine = None

        self._initialized = False
        logger.info("Service container cleaned up")

    async def health(self) -> dict:
        database_ok = await DatabaseHealthCheck(self.engine).check_connection()
        if self._redis_manager is not None:
            redis_ok = await self._redis_manager.health_check()
        else:
            try:
                redis_ok = bool(await self.redis.ping())
            except redis.RedisError as e:
                logger.error("Redis health check failed", error=str(e))
                redis_ok = False
        return {"database": database_ok, "redis": redis_ok}
