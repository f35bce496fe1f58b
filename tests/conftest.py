"""
Pytest configuration and fixtures for account service testing.
Provides a file-backed SQLite database, an in-process Redis, a cheap
credential hasher and the wired service container.
"""
from typing import AsyncGenerator, Awaitable, Callable, Generator, List

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from account_service.container.container import Container
from account_service.core.config import Settings
from account_service.core.database import create_session_factory
from account_service.core.security import CredentialHasher, build_crypt_context
from account_service.events.event_bus import InMemoryEventBus
from account_service.events.notification_events import NotificationRequestedEvent
from account_service.main import create_app
from account_service.models import Base, User
from account_service.services.auth.token_broker import TokenBroker
from tests.factories import UserFactory, UserProfileFactory

TEST_REDIS_URL = "redis://localhost:6379/15"
TEST_PASSWORD = "Secret123!"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings for a throwaway database and the cheapest argon2 parameters."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="testing",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}",
        REDIS_URL=TEST_REDIS_URL,
        FRONTEND_URL="http://frontend.test/",
        HASHER_MAX_WORKERS=2,
        ARGON2_TIME_COST=1,
        ARGON2_MEMORY_COST=1024,
        ARGON2_PARALLELISM=1,
        SESSION_COOKIE_SECURE=False,
    )


@pytest_asyncio.fixture
async def test_engine(settings) -> AsyncGenerator[AsyncEngine, None]:
    """
    SQLite engine whose transactions take the write lock up front, so that
    concurrent writers queue instead of failing with "database is locked".
    """
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def fake_redis():
    """In-process Redis with its own server so tests never share keys."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
    yield client
    await client.aclose()


@pytest.fixture
def broken_redis():
    """Redis client whose every command fails with a connection error."""
    server = fakeredis.FakeServer()
    server.connected = False
    return fakeredis.FakeAsyncRedis(server=server)


@pytest.fixture
def hasher() -> Generator[CredentialHasher, None, None]:
    hasher = CredentialHasher(
        build_crypt_context(time_cost=1, memory_cost=1024, parallelism=1),
        max_workers=2
    )
    yield hasher
    hasher.shutdown()


@pytest.fixture
def token_broker(fake_redis) -> TokenBroker:
    return TokenBroker(fake_redis)


@pytest_asyncio.fixture
async def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest_asyncio.fixture
async def sent_notifications(event_bus) -> List[NotificationRequestedEvent]:
    """Every notification published on ``event_bus``."""
    sent: List[NotificationRequestedEvent] = []

    async def capture(event):
        sent.append(event)

    await event_bus.subscribe(NotificationRequestedEvent.__name__, capture)
    return sent


@pytest_asyncio.fixture
async def container(settings, test_engine, fake_redis, event_bus, sent_notifications):
    """Service container wired to the test stores."""
    container = Container(
        settings,
        engine=test_engine,
        redis_client=fake_redis,
        event_bus=event_bus
    )
    await container.initialize()
    yield container
    await container.cleanup()


@pytest_asyncio.fixture
async def async_client(container) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    app = create_app(container=container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def password_hash(hasher) -> str:
    return await hasher.hash(TEST_PASSWORD)


@pytest.fixture
def create_user(
    session_factory, password_hash
) -> Callable[..., Awaitable[User]]:
    """Persist a user (with profile) and return it."""

    async def _create_user(**kwargs) -> User:
        kwargs.setdefault("password", password_hash)
        user = UserFactory(**kwargs)
        async with session_factory() as session:
            session.add(user)
            session.add(UserProfileFactory(user_id=user.id))
            await session.commit()
        return user

    return _create_user
