# src/cache/base_cache_backend.py - v1
"""Abstract key-value backend interface for the evidence cache."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCacheBackend(ABC):
    """Minimal async key-value store with per-key TTL.

    Implementations may raise on any I/O problem; EvidenceCache is the layer
    that turns failures into misses.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw stored value, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, expiring after ttl_seconds."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check the backend is reachable."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Short backend identifier for logs."""
