"""
Unit tests for the login workflow.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from account_service.core.exceptions import MismatchError, NotFoundError, SessionError
from account_service.repositories.user_repository import UserRepository
from account_service.services.auth.authentication_service import AuthenticationService
from account_service.services.session_service import USER_EMAIL_KEY, USER_ID_KEY, RedisSessionStore
from tests.conftest import TEST_PASSWORD
from tests.factories import InactiveUserFactory


@pytest.fixture
def session_store(fake_redis) -> RedisSessionStore:
    return RedisSessionStore(fake_redis)


@pytest.fixture
def event_bus_mock():
    bus = MagicMock()
    bus.publish = AsyncMock(return_value=True)
    return bus


@pytest.fixture
def auth_service(settings, hasher, event_bus_mock) -> AuthenticationService:
    return AuthenticationService(
        settings=settings,
        user_repository=UserRepository(),
        hasher=hasher,
        event_bus=event_bus_mock,
    )


@pytest.mark.unit
class TestAuthenticationService:
    """Test suite for AuthenticationService."""

    @pytest.mark.asyncio
    async def test_login_success(self, auth_service, db_session, session_store, create_user):
        created = await create_user(email="a@x.com")
        session = session_store.load(None)

        user = await auth_service.login(db_session, session, "a@x.com", TEST_PASSWORD)

        assert user.id == created.id
        assert user.email == "a@x.com"
        assert await session.get(USER_ID_KEY) == str(created.id)
        assert await session.get(USER_EMAIL_KEY) == "a@x.com"

    @pytest.mark.asyncio
    async def test_login_rotates_session_id(self, auth_service, db_session, session_store, fake_redis, create_user):
        """A session id planted before login is dead afterwards."""
        await create_user(email="a@x.com")
        session = session_store.load(None)
        await session.insert("theme", "dark")
        planted_id = session.session_id
        session = session_store.load(planted_id)

        await auth_service.login(db_session, session, "a@x.com", TEST_PASSWORD)

        assert session.session_id != planted_id
        assert not await fake_redis.exists(f"session:{planted_id}")
        assert await session.get("theme") == "dark"

    @pytest.mark.asyncio
    async def test_wrong_password_leaves_session_untouched(
        self, auth_service, db_session, session_store, fake_redis, create_user
    ):
        await create_user(email="a@x.com")
        session = session_store.load(None)

        with pytest.raises(MismatchError) as exc_info:
            await auth_service.login(db_session, session, "a@x.com", "wrong")

        assert exc_info.value.message == "Email and password do not match"
        assert session.session_id is None
        assert not session.modified
        assert [key async for key in fake_redis.scan_iter(match="session:*")] == []

    @pytest.mark.asyncio
    async def test_unknown_email(self, auth_service, db_session, session_store):
        session = session_store.load(None)

        with pytest.raises(NotFoundError) as exc_info:
            await auth_service.login(db_session, session, "nobody@x.com", TEST_PASSWORD)

        assert exc_info.value.message == "A user with these details does not exist or is not active"
        assert not session.modified

    @pytest.mark.asyncio
    async def test_inactive_user(
        self, auth_service, db_session, session_store, session_factory, password_hash
    ):
        async with session_factory() as s:
            s.add(InactiveUserFactory(email="sleepy@x.com", password=password_hash))
            await s.commit()

        with pytest.raises(NotFoundError):
            await auth_service.login(db_session, session_store.load(None), "sleepy@x.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_concealed_existence_reports_mismatch_for_unknown_email(
        self, settings, hasher, event_bus_mock, db_session, session_store
    ):
        service = AuthenticationService(
            settings=settings.model_copy(update={"CONCEAL_ACCOUNT_EXISTENCE": True}),
            user_repository=UserRepository(),
            hasher=hasher,
            event_bus=event_bus_mock,
        )

        with pytest.raises(MismatchError):
            await service.login(db_session, session_store.load(None), "nobody@x.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_session_write_failure_purges_session(self, auth_service, db_session, create_user):
        await create_user(email="a@x.com")
        session = MagicMock()
        session.renew = AsyncMock()
        session.insert = AsyncMock(side_effect=SessionError())
        session.purge = AsyncMock()

        with pytest.raises(SessionError) as exc_info:
            await auth_service.login(db_session, session, "a@x.com", TEST_PASSWORD)

        assert exc_info.value.message == "Session management error"
        session.renew.assert_awaited_once()
        session.purge.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_renew_happens_before_claims(self, auth_service, db_session, create_user):
        await create_user(email="a@x.com")
        calls = []
        session = MagicMock()
        session.renew = AsyncMock(side_effect=lambda: calls.append("renew"))
        session.insert = AsyncMock(side_effect=lambda key, value: calls.append(key))
        session.purge = AsyncMock()

        await auth_service.login(db_session, session, "a@x.com", TEST_PASSWORD)

        assert calls == ["renew", USER_ID_KEY, USER_EMAIL_KEY]
        session.purge.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authenticated_event_published(
        self, auth_service, event_bus_mock, db_session, session_store, create_user
    ):
        created = await create_user(email="a@x.com")

        await auth_service.login(db_session, session_store.load(None), "a@x.com", TEST_PASSWORD)

        event = event_bus_mock.publish.await_args.args[0]
        assert event.event_type == "UserAuthenticatedEvent"
        assert event.user_id == created.id
