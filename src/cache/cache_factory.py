# src/cache/cache_factory.py - v3
"""Factory for cache backend and EvidenceCache instantiation."""

from __future__ import annotations

import logging

from medevidence.cache.base_cache_backend import BaseCacheBackend
from medevidence.cache.evidence_cache import EvidenceCache
from medevidence.cache.metrics import MetricsSink
from medevidence.config.settings import Settings

logger = logging.getLogger(__name__)


def create_cache_backend(settings: Settings | None = None) -> BaseCacheBackend | None:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to Settings() from env.

    Returns:
        Configured backend, or None when the redis backend has no REDIS_URL
        (the cache then stays unavailable for the life of the process).
    """
    settings = settings or Settings()

    if settings.cache_backend == "memory":
        from medevidence.cache.memory_backend import MemoryCacheBackend
        return MemoryCacheBackend()

    if settings.cache_backend == "redis":
        if not settings.redis_url:
            logger.info("REDIS_URL not set; evidence cache disabled")
            return None
        from medevidence.cache.redis_backend import RedisCacheBackend
        return RedisCacheBackend(
            redis_url=settings.redis_url,
            socket_timeout_s=settings.cache_timeout_s,
        )

    raise ValueError(f"Unsupported cache backend: {settings.cache_backend!r}")


async def create_evidence_cache(
    settings: Settings | None = None,
    metrics: MetricsSink | None = None,
) -> EvidenceCache:
    """Build an EvidenceCache from settings and probe its backend once."""
    settings = settings or Settings()
    cache = EvidenceCache(
        backend=create_cache_backend(settings),
        metrics=metrics,
        timeout_s=settings.cache_timeout_s,
        health_retry_s=settings.cache_health_retry_s,
    )
    await cache.connect()
    return cache
