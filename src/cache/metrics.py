# src/cache/metrics.py - v1
"""Cache hit/miss/error counters.

One CacheMetrics instance is owned by each EvidenceCache (or injected by the
caller so several caches can share a sink). Counters live for the lifetime of
the process and are never persisted. Increments are not synchronised across
requests; approximate counts are fine.
"""

from __future__ import annotations

from typing import Protocol

from medevidence.cache.models import CacheStats


class MetricsSink(Protocol):
    """Anything that can count cache outcomes."""

    def record_hit(self) -> None: ...

    def record_miss(self) -> None: ...

    def record_error(self, during_lookup: bool = True) -> None: ...

    def snapshot(self) -> CacheStats: ...


class CacheMetrics:
    """In-memory counters implementing MetricsSink."""

    def __init__(self) -> None:
        self._hits = 0
        self._misses = 0
        self._errors = 0
        self._lookup_errors = 0

    def record_hit(self) -> None:
        self._hits += 1

    def record_miss(self) -> None:
        self._misses += 1

    def record_error(self, during_lookup: bool = True) -> None:
        """Count a backend error; write errors do not affect the hit rate."""
        self._errors += 1
        if during_lookup:
            self._lookup_errors += 1

    def snapshot(self) -> CacheStats:
        lookups = self._hits + self._misses + self._lookup_errors
        hit_rate = self._hits / lookups if lookups else 0.0
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            errors=self._errors,
            hit_rate=round(hit_rate, 4),
        )

    def reset(self) -> None:
        self._hits = self._misses = self._errors = self._lookup_errors = 0
