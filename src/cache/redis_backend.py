# src/cache/redis_backend.py - v2
"""Redis-based cache backend (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Uses the asyncio client so cache calls suspend instead of blocking the event
loop. Expiry is enforced by Redis itself (SET ... EX ttl).
"""

from __future__ import annotations

import logging

from medevidence.cache.base_cache_backend import BaseCacheBackend

logger = logging.getLogger(__name__)


class RedisCacheBackend(BaseCacheBackend):
    """Redis-backed key-value store shared by all application instances."""

    def __init__(self, redis_url: str, socket_timeout_s: float = 2.0) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = aioredis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout_s,
            socket_connect_timeout=socket_timeout_s,
        )

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()

    @property
    def backend_name(self) -> str:
        return "redis"
