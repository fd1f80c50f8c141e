"""
Tests for cache strategies, the cache factory and backend fallback.
"""
import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink_app.cache import factory as cache_factory
from shortlink_app.cache.factory import CacheBackend, CacheFactory
from shortlink_app.cache.strategies import InMemoryCache, NullCache, RedisCache
from shortlink_app.errors import CacheError
from shortlink_app.resilient import build_with_fallback


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCache"""

    def __init__(self, fail=False):
        self.data = {}
        self.expiry = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisConnectionError("Connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self._check()
        self.data.pop(key, None)

    async def exists(self, key):
        self._check()
        return int(key in self.data)

    async def aclose(self):
        pass


@pytest.fixture(autouse=True)
def fresh_factory():
    CacheFactory.clear_instance()
    yield
    CacheFactory.clear_instance()


class TestInMemoryCache:
    def test_set_get_delete(self):
        cache = InMemoryCache()
        asyncio.run(cache.set("k", "v", ttl=60))
        assert asyncio.run(cache.get("k")) == "v"
        assert asyncio.run(cache.exists("k"))

        asyncio.run(cache.delete("k"))
        assert asyncio.run(cache.get("k")) is None
        assert not asyncio.run(cache.exists("k"))

    def test_entries_expire(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        asyncio.run(cache.set("k", "v", ttl=10))

        clock.now += 9
        assert asyncio.run(cache.get("k")) == "v"
        clock.now += 1
        assert asyncio.run(cache.get("k")) is None

    def test_write_drops_unread_expired_entries(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        asyncio.run(cache.set("old", "v", ttl=5))
        asyncio.run(cache.set("young", "v", ttl=60))

        clock.now += 10
        asyncio.run(cache.set("new", "v", ttl=60))

        assert set(cache._cache) == {"young", "new"}


class TestNullCache:
    def test_never_stores(self):
        cache = NullCache()
        asyncio.run(cache.set("k", "v"))
        assert asyncio.run(cache.get("k")) is None
        assert asyncio.run(cache.exists("k")) is False


class TestRedisCache:
    def test_prefixes_keys_and_sets_ttl(self):
        client = FakeRedis()
        cache = RedisCache(client, prefix="shorten:")

        asyncio.run(cache.set("url:abc", "{}", ttl=600))

        assert client.data == {"shorten:url:abc": "{}"}
        assert client.expiry["shorten:url:abc"] == 600
        assert asyncio.run(cache.get("url:abc")) == "{}"

    def test_decodes_bytes(self):
        client = FakeRedis()
        client.data["p:k"] = b"value"
        cache = RedisCache(client, prefix="p:")
        assert asyncio.run(cache.get("k")) == "value"

    def test_wraps_redis_errors(self):
        cache = RedisCache(FakeRedis(fail=True), prefix="shorten:")
        for call in (cache.get("k"), cache.set("k", "v"), cache.delete("k"), cache.exists("k")):
            with pytest.raises(CacheError):
                asyncio.run(call)


class TestCacheFactory:
    """Test factory behaviour and fallback"""

    def test_creates_memory_cache(self):
        cache = asyncio.run(CacheFactory.create(CacheBackend.MEMORY))
        assert isinstance(cache, InMemoryCache)

    def test_creates_null_cache(self):
        cache = asyncio.run(CacheFactory.create(CacheBackend.NULL))
        assert isinstance(cache, NullCache)

    def test_returns_singleton(self):
        first = asyncio.run(CacheFactory.create(CacheBackend.MEMORY))
        second = asyncio.run(CacheFactory.create(CacheBackend.NULL))
        assert first is second

    def test_unreachable_redis_falls_back_to_null(self, monkeypatch):
        async def refuse():
            raise RedisConnectionError("Connection refused")

        monkeypatch.setattr(cache_factory, "_connect_redis", refuse)

        cache = asyncio.run(CacheFactory.create(CacheBackend.REDIS))
        assert isinstance(cache, NullCache)

    def test_reachable_redis_is_used(self, monkeypatch):
        async def connect():
            return RedisCache(FakeRedis(), prefix="shorten:")

        monkeypatch.setattr(cache_factory, "_connect_redis", connect)

        cache = asyncio.run(CacheFactory.create(CacheBackend.REDIS))
        assert isinstance(cache, RedisCache)
        asyncio.run(CacheFactory.close())
        assert CacheFactory._instance is None


class TestBuildWithFallback:
    def test_sync_builder(self):
        result = asyncio.run(build_with_fallback("thing", lambda: "real", lambda: "null"))
        assert result == "real"

    def test_async_builder(self):
        async def build():
            return "real"

        assert asyncio.run(build_with_fallback("thing", build, lambda: "null")) == "real"

    def test_failure_returns_fallback(self, caplog):
        def explode():
            raise OSError("no such host")

        with caplog.at_level("WARNING"):
            result = asyncio.run(build_with_fallback("thing", explode, lambda: "null"))

        assert result == "null"
        assert "thing unavailable" in caplog.text
