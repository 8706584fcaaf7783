"""Tests for the Redis cache and its use by the service."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from shortener.lib.bulk import BulkEngine
from shortener.lib.database.cache import REMOVED, RedisCache
from shortener.lib.database.memory import MemoryLinkStore
from shortener.lib.exceptions import LinkGoneError, StorageError
from shortener.lib.service import URLShortenerService


class FakeRedis:
    """Dict-backed stand-in for the few redis commands the cache issues."""

    def __init__(self):
        self.data = {}

    async def get(self, name):
        return self.data.get(name)

    async def set(self, name, value, ex=None, nx=False):
        if nx and name in self.data:
            return None
        self.data[name] = value
        return True

    async def setex(self, name, time, value):
        self.data[name] = value
        return True

    async def aclose(self):
        pass


class SlowGetStore(MemoryLinkStore):
    """Memory store whose reads stall after the link has been read."""

    async def get(self, key, deadline=None):
        target = await super().get(key, deadline=deadline)
        await asyncio.sleep(0.05)
        return target


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    client.set.return_value = True
    return client


@pytest.fixture
def cache(redis_client, logger):
    cache = RedisCache(redis_url="redis://localhost:6379/0", ttl_seconds=60, logger=logger)
    cache.client = redis_client
    return cache


@pytest.mark.asyncio
class TestRedisCache:
    """Cache operations."""

    async def test_disabled_without_url(self, logger):
        cache = RedisCache(redis_url=None, logger=logger)
        await cache.connect()

        assert not cache.active
        assert await cache.get_target("anything") is None
        assert await cache.put_target("anything", "https://example.com") is False
        assert await cache.mark_removed(["anything"]) == 0

    async def test_put_uses_ttl_and_namespace(self, cache, redis_client):
        assert await cache.put_target("abc123XYZ", "https://example.com")
        redis_client.set.assert_awaited_once_with(
            "shortener:link:abc123XYZ", "https://example.com", ex=60, nx=True
        )

    async def test_put_does_not_replace_existing_entry(self, cache, redis_client):
        redis_client.set.return_value = None

        assert await cache.put_target("abc123XYZ", "https://example.com") is False

    async def test_get_target(self, cache, redis_client):
        redis_client.get.return_value = "https://example.com"

        assert await cache.get_target("abc123XYZ") == "https://example.com"
        redis_client.get.assert_awaited_once_with("shortener:link:abc123XYZ")

    async def test_errors_are_logged_not_raised(self, cache, redis_client):
        redis_client.get.side_effect = redis.RedisError("down")
        redis_client.set.side_effect = redis.RedisError("down")
        redis_client.setex.side_effect = redis.RedisError("down")

        assert await cache.get_target("k") is None
        assert await cache.put_target("k", "v") is False
        assert await cache.mark_removed(["k"]) == 0

    async def test_mark_removed(self, cache, redis_client):
        assert await cache.mark_removed(["a", "b"]) == 2
        redis_client.setex.assert_any_await("shortener:link:a", 60, REMOVED)
        redis_client.setex.assert_any_await("shortener:link:b", 60, REMOVED)

    async def test_mark_removed_nothing(self, cache, redis_client):
        assert await cache.mark_removed([]) == 0
        redis_client.setex.assert_not_awaited()

    async def test_connect_failure_disables_cache(self, logger, monkeypatch):
        client = AsyncMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: client)

        cache = RedisCache(redis_url="redis://localhost:6379/0", logger=logger)
        await cache.connect()

        assert not cache.active
        assert await cache.get_target("k") is None
        client.get.assert_not_awaited()


@pytest.mark.asyncio
class TestServiceCaching:
    """Read-through caching and removal markers on delete."""

    @pytest.fixture
    def cached_service(self, store, cache, logger):
        return URLShortenerService(
            store=store,
            cache=cache,
            bulk_engine=BulkEngine(store, logger=logger),
            logger=logger,
        )

    async def test_resolution_populates_cache(self, cached_service, redis_client):
        created = await cached_service.create_short_url("https://example.com", "user-1")

        url = await cached_service.get_original_url(created["key"])

        assert url == "https://example.com"
        redis_client.set.assert_awaited_once_with(
            f"shortener:link:{created['key']}", "https://example.com", ex=60, nx=True
        )

    async def test_cache_hit_skips_store(self, cached_service, redis_client):
        redis_client.get.return_value = "https://cached.example.com"

        assert await cached_service.get_original_url("aaaaaaaaa") == "https://cached.example.com"
        redis_client.set.assert_not_awaited()

    async def test_removed_marker_answers_gone(self, cached_service, redis_client):
        redis_client.get.return_value = REMOVED

        with pytest.raises(LinkGoneError):
            await cached_service.get_original_url("aaaaaaaaa")
        redis_client.set.assert_not_awaited()

    async def test_delete_marks_removed(self, cached_service, redis_client):
        created = await cached_service.create_short_url("https://example.com", "user-1")

        report = await cached_service.delete_user_urls([created["key"]], "user-1")

        assert report.deleted == 1
        redis_client.setex.assert_awaited_once_with(f"shortener:link:{created['key']}", 60, REMOVED)

    async def test_delete_leaves_foreign_keys_cached(self, cached_service, store, redis_client):
        theirs = (await store.create("https://example.com/theirs", "user-2")).key

        report = await cached_service.delete_user_urls([theirs], "user-1")

        assert report.deleted == 0
        redis_client.setex.assert_not_awaited()

    async def test_resolve_racing_delete_does_not_recache_target(self, logger):
        store = SlowGetStore(base_url="http://testserver", logger=logger)
        cache = RedisCache(redis_url="redis://localhost:6379/0", ttl_seconds=60, logger=logger)
        cache.client = FakeRedis()
        service = URLShortenerService(
            store=store,
            cache=cache,
            bulk_engine=BulkEngine(store, logger=logger),
            logger=logger,
        )
        key = (await service.create_short_url("https://example.com", "user-1"))["key"]

        # The resolve reads the live target, then the delete commits before it caches it
        resolve = asyncio.create_task(service.get_original_url(key))
        await asyncio.sleep(0.01)
        await service.delete_user_urls([key], "user-1")
        assert await resolve == "https://example.com"

        with pytest.raises(LinkGoneError):
            await service.get_original_url(key)

    async def test_close_closes_client(self, cached_service, redis_client):
        await cached_service.close()
        redis_client.aclose.assert_awaited_once()

    async def test_close_closes_client_when_store_close_fails(self, cached_service, store, redis_client):
        store.close = AsyncMock(side_effect=StorageError("disk full"))

        with pytest.raises(StorageError):
            await cached_service.close()
        redis_client.aclose.assert_awaited_once()
