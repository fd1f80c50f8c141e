"""
Cache backends for short URL records.
Redis for deployments, a dict for single-process runs, and a no-op backend
for when caching is off or Redis is unreachable.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from redis.exceptions import RedisError

from shortlink_app.errors import CacheError

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    String key/value cache with per-entry expiry.

    Real backends raise CacheError when an operation fails. The service
    layer treats every such failure as a miss (get) or logs and ignores it
    (set/delete), since the database stays authoritative.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired"""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        """Store value for ttl seconds, replacing any previous entry"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key from cache (missing keys are not an error)"""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists in cache"""


class RedisCache(CacheStrategy):
    """
    Redis cache implementation on the asyncio client.

    Keys are namespaced with ``prefix`` so several deployments can share
    one Redis database. Connection and socket timeouts are configured on
    the client; a timeout surfaces as CacheError like any other failure.
    """

    def __init__(self, redis_client, prefix: str = "", default_ttl: int = 3600):
        """
        Args:
            redis_client: redis.asyncio.Redis instance
            prefix: Namespace prepended to every key
            default_ttl: TTL used when a non-positive ttl is passed
        """
        self.redis = redis_client
        self.prefix = prefix
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        full_key = self._key(key)
        try:
            value = await self.redis.get(full_key)
        except RedisError as e:
            raise CacheError(f"Failed to get key {full_key}: {e}") from e

        if value is None:
            logger.debug("Cache miss for key: %s", full_key)
            return None
        logger.debug("Cache hit for key: %s", full_key)
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        full_key = self._key(key)
        expire = ttl if ttl > 0 else self.default_ttl
        try:
            await self.redis.set(full_key, value, ex=expire)
        except RedisError as e:
            raise CacheError(f"Failed to set key {full_key}: {e}") from e

    async def delete(self, key: str) -> None:
        full_key = self._key(key)
        try:
            await self.redis.delete(full_key)
        except RedisError as e:
            raise CacheError(f"Failed to delete key {full_key}: {e}") from e

    async def exists(self, key: str) -> bool:
        full_key = self._key(key)
        try:
            return bool(await self.redis.exists(full_key))
        except RedisError as e:
            raise CacheError(f"Failed to check key {full_key}: {e}") from e

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryCache(CacheStrategy):
    """
    Process-local cache backed by a dict.

    Only useful with a single worker process; every worker would otherwise
    hold its own copy. Expired entries are dropped when read, and every
    write sweeps out the ones nobody read again.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live_value(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._cache[key]
            return None
        return value

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._cache.items() if expires_at <= now]
        for key in expired:
            del self._cache[key]

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live_value(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._cache[key] = (value, now + ttl)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_value(key) is not None


class NullCache(CacheStrategy):
    """
    No-op cache: every read misses, every write is dropped.

    Selected by CACHE_BACKEND=null, and substituted for Redis when the
    connection check fails at startup.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def exists(self, key: str) -> bool:
        return False
