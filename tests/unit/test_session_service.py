"""
Unit tests for the Redis session store.
"""
import json

import pytest

from account_service.core.exceptions import SessionError
from account_service.services.session_service import (
    USER_EMAIL_KEY,
    USER_ID_KEY,
    RedisSessionStore,
)


@pytest.fixture
def session_store(fake_redis) -> RedisSessionStore:
    return RedisSessionStore(fake_redis, key_prefix="session:", lifetime_seconds=3600)


@pytest.mark.unit
class TestSession:
    """Test suite for Session."""

    @pytest.mark.asyncio
    async def test_insert_creates_session(self, session_store, fake_redis):
        session = session_store.load(None)

        await session.insert(USER_EMAIL_KEY, "a@x.com")

        assert session.session_id
        assert session.modified
        raw = await fake_redis.hget(f"session:{session.session_id}", USER_EMAIL_KEY)
        assert json.loads(raw) == "a@x.com"
        assert 0 < await fake_redis.ttl(f"session:{session.session_id}") <= 3600

    @pytest.mark.asyncio
    async def test_get_round_trips_through_store(self, session_store):
        session = session_store.load(None)
        await session.insert(USER_ID_KEY, "42")

        reloaded = session_store.load(session.session_id)

        assert await reloaded.get(USER_ID_KEY) == "42"
        assert await reloaded.get("missing") is None

    @pytest.mark.asyncio
    async def test_renew_moves_state_to_new_id(self, session_store, fake_redis):
        session = session_store.load(None)
        await session.insert("cart", ["book"])
        old_id = session.session_id

        await session.renew()

        assert session.session_id != old_id
        assert not await fake_redis.exists(f"session:{old_id}")
        assert await session.get("cart") == ["book"]
        assert await fake_redis.ttl(f"session:{session.session_id}") > 0

    @pytest.mark.asyncio
    async def test_renew_of_unknown_id_starts_fresh(self, session_store, fake_redis):
        """An id the client made up is never adopted."""
        session = session_store.load("attacker-chosen")

        await session.renew()

        assert session.session_id != "attacker-chosen"
        assert not await fake_redis.exists("session:attacker-chosen")

    @pytest.mark.asyncio
    async def test_purge(self, session_store, fake_redis):
        session = session_store.load(None)
        await session.insert(USER_ID_KEY, "42")
        session_id = session.session_id

        await session.purge()

        assert session.session_id is None
        assert session.purged
        assert not await fake_redis.exists(f"session:{session_id}")

    @pytest.mark.asyncio
    async def test_unserializable_value(self, session_store):
        session = session_store.load(None)

        with pytest.raises(SessionError) as exc_info:
            await session.insert("bad", object())

        assert exc_info.value.message == "Session management error"

    @pytest.mark.asyncio
    async def test_store_failure_on_insert(self, broken_redis):
        session = RedisSessionStore(broken_redis).load(None)

        with pytest.raises(SessionError):
            await session.insert(USER_ID_KEY, "42")

    @pytest.mark.asyncio
    async def test_store_failure_on_renew(self, broken_redis):
        session = RedisSessionStore(broken_redis).load("existing")

        with pytest.raises(SessionError):
            await session.renew()

        assert session.session_id == "existing"

    def test_from_settings(self, fake_redis, settings):
        store = RedisSessionStore.from_settings(fake_redis, settings)

        assert store.key_prefix == settings.SESSION_KEY_PREFIX
        assert store.lifetime_seconds == settings.SESSION_LIFETIME_SECONDS
