"""Redis read-through cache for key resolution.

A soft delete overwrites the cached entries of the deleted keys with a
``REMOVED`` marker. Fills use ``SET NX``, so a resolve that read the store
before the delete committed cannot replace the marker with the old target.
"""

import logging
from typing import Optional, Iterable

import redis.asyncio as redis

KEY_PREFIX = "shortener:link:"

# Cached in place of a target once the link is soft-deleted
REMOVED = "\x00removed"


class RedisCache:
    """Caches ``key -> target`` for resolved short links."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Lifetime of a cached target
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.client: Optional[redis.Redis] = None
        self.enabled = bool(redis_url)

    @staticmethod
    def cache_key(key: str) -> str:
        """Redis key holding the target of a short link key."""
        return f"{KEY_PREFIX}{key}"

    @property
    def active(self) -> bool:
        return self.enabled and self.client is not None

    async def connect(self) -> None:
        """Connect to Redis; an unreachable server turns caching off."""
        if not self.enabled:
            return

        self.client = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        try:
            await self.client.ping()
        except (redis.RedisError, OSError) as e:
            self.logger.error(f"Redis unreachable, caching disabled: {e}")
            self.enabled = False
            return

        self.logger.info(f"Connected to Redis, TTL={self.ttl_seconds}s")

    async def get_target(self, key: str) -> Optional[str]:
        """Cached target of ``key``, ``REMOVED`` for a deleted link, or None on a miss or a Redis error."""
        if not self.active:
            return None

        try:
            return await self.client.get(self.cache_key(key))
        except redis.RedisError as e:
            self.logger.error(f"Cache read failed for {key}: {e}")
            return None

    async def put_target(self, key: str, target: str) -> bool:
        """Cache ``target`` unless ``key`` already has an entry (a target or the marker).

        Returns:
            True if the entry was written
        """
        if not self.active:
            return False

        try:
            written = await self.client.set(self.cache_key(key), target, ex=self.ttl_seconds, nx=True)
        except redis.RedisError as e:
            self.logger.error(f"Cache write failed for {key}: {e}")
            return False
        return bool(written)

    async def mark_removed(self, keys: Iterable[str]) -> int:
        """Replace whatever is cached for ``keys`` with the ``REMOVED`` marker.

        Returns:
            Number of markers written
        """
        keys = list(keys)
        if not self.active or not keys:
            return 0

        written = 0
        try:
            for key in keys:
                await self.client.setex(self.cache_key(key), self.ttl_seconds, REMOVED)
                written += 1
        except redis.RedisError as e:
            self.logger.error(f"Cache removal marker failed after {written} of {len(keys)} keys: {e}")
        return written

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            self.logger.info("Redis connection closed")
