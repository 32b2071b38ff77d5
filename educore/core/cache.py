"""
Redis layer for rate limiting and the session token denylist.

Provides:
- Namespaced keys
- TTL-bound markers and counters
- Lenient reads (rate limiting) and strict reads (denylist)
"""

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from educore.config import settings

logger = logging.getLogger(__name__)


class CacheUnavailable(Exception):
    """Raised by strict operations when Redis cannot be reached."""


class CacheManager:
    """
    Redis-based cache manager.

    Handles:
    - Connection lifecycle
    - JSON serialization of stored values
    - Key namespacing
    - TTL management
    """

    def __init__(self) -> None:
        self._client: aioredis.Redis | None = None

    async def init(self) -> None:
        """Initialize Redis connection pool."""
        logger.info("Initializing Redis connection...")

        self._client = aioredis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            socket_timeout=settings.store_timeout_seconds,
        )

        try:
            await self._client.ping()
            logger.info("Redis connection initialized")
        except Exception as e:
            # Rate limiting fails open and the denylist fails closed,
            # so the API can still start without Redis.
            logger.warning(f"Redis not reachable at startup: {e}")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis connection closed")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client."""
        if not self._client:
            raise RuntimeError("Cache not initialized. Call init() first.")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        """
        Build namespaced cache key.

        Format: educore:{namespace}:{key}
        Example: educore:denylist:4f1c...
        """
        return f"educore:{namespace}:{key}"

    async def set(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl: int | None = None,
        strict: bool = False,
    ) -> bool:
        """
        Set value in cache.

        Args:
            namespace: Cache namespace
            key: Cache key
            value: Value to cache (must be JSON-serializable)
            ttl: Time-to-live in seconds (None = use default)
            strict: Raise CacheUnavailable instead of returning False

        Returns:
            True if set successfully
        """
        cache_key = self._build_key(namespace, key)
        ttl = ttl or settings.redis_cache_ttl

        try:
            serialized = json.dumps(value, default=str)
            await self.client.set(cache_key, serialized, ex=ttl)
            return True

        except Exception as e:
            logger.warning(f"Cache set error: {cache_key} - {e}")
            if strict:
                raise CacheUnavailable(str(e)) from e
            return False

    async def exists(self, namespace: str, key: str, strict: bool = False) -> bool:
        """
        Check if cache key exists.

        With ``strict`` a Redis failure raises CacheUnavailable rather than
        reading as "absent", for callers that must fail closed.
        """
        cache_key = self._build_key(namespace, key)

        try:
            return bool(await self.client.exists(cache_key))
        except Exception as e:
            logger.warning(f"Cache exists error: {cache_key} - {e}")
            if strict:
                raise CacheUnavailable(str(e)) from e
            return False

    async def increment(
        self,
        namespace: str,
        key: str,
        ttl: int | None = None,
    ) -> int:
        """
        Increment a counter in cache.

        Used for rate limiting. Creates key if it doesn't exist; the TTL is
        only set on creation so the window does not slide.

        Returns:
            New counter value
        """
        cache_key = self._build_key(namespace, key)

        try:
            pipe = self.client.pipeline()
            pipe.set(cache_key, 0, ex=ttl or settings.redis_cache_ttl, nx=True)
            pipe.incr(cache_key)
            results = await pipe.execute()
            return results[1]

        except Exception as e:
            logger.error(f"Cache increment error: {cache_key} - {e}")
            raise

    async def get_ttl(self, namespace: str, key: str) -> int:
        """Get remaining TTL for a key in seconds."""
        cache_key = self._build_key(namespace, key)

        try:
            return await self.client.ttl(cache_key)
        except Exception as e:
            logger.warning(f"Cache TTL error: {cache_key} - {e}")
            return -1


# Global instance
cache_manager = CacheManager()
