"""
Tests for platform token stores

Tests cover:
- In-memory TTL expiry on read and purge
- Redis SETEX storage, JSON round-trip and key pattern
- Redis errors degrade to misses instead of raising
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.services.token_store import (
    InMemoryTokenStore,
    PlatformToken,
    RedisTokenStore,
    new_session_id,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def token():
    return PlatformToken(platform="tiktok", access_token="tt-token", refresh_token="r", expires_in=3600)


def test_session_id_is_prefixed_with_platform():
    session_id = new_session_id("youtube")
    assert session_id.startswith("youtube_")
    assert new_session_id("youtube") != session_id


class TestInMemoryTokenStore:
    """In-process store with TTL."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self, token):
        store = InMemoryTokenStore()

        await store.put("tiktok_1", token)
        assert await store.get("tiktok_1") == token

        await store.delete("tiktok_1")
        assert await store.get("tiktok_1") is None

    @pytest.mark.asyncio
    async def test_unknown_session(self):
        assert await InMemoryTokenStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_expires_on_read(self, token):
        clock = FakeClock()
        store = InMemoryTokenStore(ttl_seconds=60, clock=clock)
        await store.put("tiktok_1", token)

        clock.now += 59
        assert await store.get("tiktok_1") == token

        clock.now += 1
        assert await store.get("tiktok_1") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_purge_expired(self, token):
        clock = FakeClock()
        store = InMemoryTokenStore(ttl_seconds=60, clock=clock)
        await store.put("old", token)
        clock.now += 30
        await store.put("new", token)
        clock.now += 45

        assert store.purge_expired() == 1
        assert len(store) == 1
        assert await store.get("new") == token


class TestRedisTokenStore:
    """Redis-backed store."""

    @pytest.fixture
    def mock_redis(self):
        client = MagicMock()
        client.setex = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.delete = AsyncMock()
        client.close = AsyncMock()
        return client

    @pytest.fixture
    def store(self, mock_redis):
        with patch("app.services.token_store.redis.from_url", return_value=mock_redis):
            yield RedisTokenStore("redis://localhost:6379", ttl_seconds=900)

    @pytest.mark.asyncio
    async def test_put_uses_setex(self, store, mock_redis, token):
        await store.put("tiktok_1", token)

        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == "platform_token:tiktok_1"
        assert ttl == 900
        assert json.loads(payload)["access_token"] == "tt-token"

    @pytest.mark.asyncio
    async def test_get_decodes(self, store, mock_redis, token):
        mock_redis.get.return_value = json.dumps({
            "platform": "tiktok", "access_token": "tt-token", "refresh_token": "r", "expires_in": 3600,
        })
        assert await store.get("tiktok_1") == token
        mock_redis.get.assert_awaited_once_with("platform_token:tiktok_1")

    @pytest.mark.asyncio
    async def test_get_miss(self, store):
        assert await store.get("tiktok_1") is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, store, mock_redis):
        mock_redis.get.return_value = "not json"
        assert await store.get("tiktok_1") is None

    @pytest.mark.asyncio
    async def test_redis_errors_degrade(self, store, mock_redis, token):
        mock_redis.setex.side_effect = ConnectionError("redis down")
        mock_redis.get.side_effect = ConnectionError("redis down")
        mock_redis.delete.side_effect = ConnectionError("redis down")

        await store.put("tiktok_1", token)
        assert await store.get("tiktok_1") is None
        await store.delete("tiktok_1")

    @pytest.mark.asyncio
    async def test_close(self, store, mock_redis):
        await store.get("x")
        await store.close()
        mock_redis.close.assert_awaited_once()
        assert store.redis is None
