# src/cache/evidence_cache.py - v1
"""Best-effort evidence cache over a key-value backend.

Every operation here is allowed to fail silently: cache unavailability may
only cost latency, never correctness. Reads that fail for any reason come
back as a miss, writes that fail are dropped, and callers never see an
exception.

Keys have the layout ``evidence:{sha256(normalised query)}:{source}`` and
values are CachedEvidence JSON with a fixed 24h TTL.

Backend health is cached in a flag instead of probing on every call. After a
failure the backend is skipped until ``health_retry_s`` has elapsed, then
the next call acts as the probe.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from medevidence.cache.base_cache_backend import BaseCacheBackend
from medevidence.cache.metrics import CacheMetrics, MetricsSink
from medevidence.cache.models import (
    CACHE_TTL_SECONDS,
    CachedEvidence,
    CacheLookup,
    CacheMetadata,
    CacheStats,
)
from medevidence.cache.query_hasher import hash_query

logger = logging.getLogger(__name__)

KEY_PREFIX = "evidence"

# Sources allowed into the key space
EVIDENCE_SOURCES: frozenset[str] = frozenset({
    "pubmed",
    "pubmed_reviews",
    "pubmed_guidelines",
    "cochrane",
    "clinical_trials",
    "europe_pmc",
    "pmc",
    "semantic_scholar",
    "openalex",
    "guidelines",
    "who",
    "cdc",
    "nice",
    "bmj",
    "cardiovascular",
    "aap",
    "dailymed",
    "openfda",
})


def build_cache_key(query: str, source: str) -> str:
    """Build the persisted key for a (query, source) pair."""
    return f"{KEY_PREFIX}:{hash_query(query)}:{source}"


class EvidenceCache:
    """Cache wrapper that degrades to pass-through on backend failure.

    Usage:
        cache = EvidenceCache(backend=RedisCacheBackend(url))
        await cache.connect()
        hit = await cache.get("hypertension treatment", "pubmed")
    """

    def __init__(
        self,
        backend: BaseCacheBackend | None = None,
        metrics: MetricsSink | None = None,
        timeout_s: float = 2.0,
        health_retry_s: float = 30.0,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        allowed_sources: frozenset[str] = EVIDENCE_SOURCES,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._backend = backend
        self._metrics: MetricsSink = metrics if metrics is not None else CacheMetrics()
        self._timeout_s = timeout_s
        self._health_retry_s = health_retry_s
        self._ttl_seconds = ttl_seconds
        self._allowed_sources = allowed_sources
        self._clock = clock
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._healthy = False
        self._retry_at = 0.0

    @property
    def metrics(self) -> MetricsSink:
        return self._metrics

    @property
    def backend(self) -> BaseCacheBackend | None:
        return self._backend

    def is_available(self) -> bool:
        """Report the cached backend health flag. Never raises."""
        return self._backend is not None and self._healthy

    async def connect(self) -> bool:
        """Probe the backend once and record the result in the health flag."""
        if self._backend is None:
            logger.info("Evidence cache has no backend; running uncached")
            return False
        try:
            ok = await asyncio.wait_for(self._backend.ping(), timeout=self._timeout_s)
        except Exception as e:
            self._mark_unhealthy("ping", e)
            return False
        if not ok:
            self._mark_unhealthy("ping", RuntimeError("ping returned false"))
            return False
        self._mark_healthy()
        logger.info("Evidence cache connected (%s)", self._backend.backend_name)
        return True

    async def lookup(self, query: str, source: str) -> CacheLookup:
        """Read an entry, keeping hit, miss and backend error apart."""
        if not self._accepts(source) or not self._backend_usable():
            self._metrics.record_miss()
            return CacheLookup(status="miss")

        key = build_cache_key(query, source)
        try:
            raw = await asyncio.wait_for(
                self._backend.get(key), timeout=self._timeout_s  # type: ignore[union-attr]
            )
        except Exception as e:
            self._mark_unhealthy("get", e)
            self._metrics.record_error()
            return CacheLookup(status="error", error=_describe(e))

        self._mark_healthy()
        if raw is None:
            self._metrics.record_miss()
            return CacheLookup(status="miss")

        try:
            entry = CachedEvidence.model_validate_json(raw)
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            self._metrics.record_error()
            return CacheLookup(status="error", error=_describe(e))

        if self._is_expired(entry):
            logger.debug("Cache entry %s expired", key)
            self._metrics.record_miss()
            return CacheLookup(status="miss")

        self._metrics.record_hit()
        logger.debug("Cache hit for %s", key)
        return CacheLookup(status="hit", entry=entry)

    async def get(self, query: str, source: str) -> CachedEvidence | None:
        """Return the cached entry, or None on miss, expiry or any error."""
        return (await self.lookup(query, source)).entry

    async def put(self, query: str, source: str, data: Any) -> None:
        """Store data with the fixed TTL. Failures are logged and dropped."""
        if not self._accepts(source) or not self._backend_usable():
            return

        key = build_cache_key(query, source)
        entry = CachedEvidence(
            data=data,
            metadata=CacheMetadata(
                timestamp=self._now(),
                source=source,
                query_hash=hash_query(query),
                ttl=self._ttl_seconds,
            ),
        )
        try:
            value = entry.to_json()
        except Exception as e:
            logger.warning("Payload for %s is not serialisable, not cached: %s", key, e)
            self._metrics.record_error(during_lookup=False)
            return

        try:
            await asyncio.wait_for(
                self._backend.set(key, value, self._ttl_seconds),  # type: ignore[union-attr]
                timeout=self._timeout_s,
            )
        except Exception as e:
            self._mark_unhealthy("set", e)
            self._metrics.record_error(during_lookup=False)
            return

        self._mark_healthy()
        logger.debug("Cached %s (ttl=%ds)", key, self._ttl_seconds)

    def stats(self) -> CacheStats:
        """Snapshot of process-local hit/miss/error counters."""
        return self._metrics.snapshot()

    async def close(self) -> None:
        if self._backend is None:
            return
        try:
            await self._backend.close()
        except Exception as e:
            logger.warning("Error closing cache backend: %s", e)
        self._healthy = False

    # --- internals ---

    def _accepts(self, source: str) -> bool:
        if source in self._allowed_sources:
            return True
        logger.warning("Rejected cache source %r; treating as uncached", source)
        return False

    def _backend_usable(self) -> bool:
        if self._backend is None:
            return False
        if self._healthy:
            return True
        return self._clock() >= self._retry_at

    def _is_expired(self, entry: CachedEvidence) -> bool:
        ttl = entry.metadata.ttl or self._ttl_seconds
        timestamp = entry.metadata.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return self._now() >= timestamp + timedelta(seconds=ttl)

    def _mark_healthy(self) -> None:
        if not self._healthy:
            logger.info("Evidence cache backend available")
        self._healthy = True

    def _mark_unhealthy(self, operation: str, error: BaseException) -> None:
        if self._healthy or self._retry_at == 0.0:
            logger.warning(
                "Evidence cache %s failed, treating cache as unavailable: %s",
                operation, _describe(error),
            )
        else:
            logger.debug("Evidence cache %s failed again: %s", operation, _describe(error))
        self._healthy = False
        self._retry_at = self._clock() + self._health_retry_s


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
