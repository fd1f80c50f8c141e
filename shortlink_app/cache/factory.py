"""
Builds the process-wide cache backend from settings.cache_backend.
"""

import logging
from enum import Enum
from typing import Optional

import redis.asyncio as redis

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from shortlink_app.config import settings
from shortlink_app.resilient import build_with_fallback

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Values accepted by CACHE_BACKEND"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


async def _connect_redis() -> RedisCache:
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.cache_socket_timeout,
        socket_timeout=settings.cache_socket_timeout,
    )
    try:
        # Fail here rather than on the first request
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return RedisCache(client, prefix=settings.cache_prefix, default_ttl=settings.cache_ttl)


class CacheFactory:
    """
    Holds the one cache backend of the process.

    The first create() call decides the backend; later calls return the
    same object whatever they ask for. An unreachable Redis degrades to
    NullCache, so requests keep working without caching.
    """

    _instance: Optional[CacheStrategy] = None

    @classmethod
    async def create(cls, backend: CacheBackend) -> CacheStrategy:
        """Return the cache backend, building it on first use"""
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            cls._instance = await build_with_fallback("Redis cache", _connect_redis, NullCache)
        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()
            logger.info("In-memory cache initialized")
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
            logger.info("Cache disabled, using NullCache")
        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        return cls._instance

    @classmethod
    async def close(cls) -> None:
        """Release the backend connection (application shutdown)"""
        if isinstance(cls._instance, RedisCache):
            await cls._instance.close()
        cls._instance = None

    @classmethod
    def clear_instance(cls):
        """Forget the backend without closing it; tests use this between cases"""
        cls._instance = None
