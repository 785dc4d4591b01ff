# src/cache/memory_backend.py - v1
"""In-process cache backend (CACHE_BACKEND=memory).

Dict-backed with monotonic-clock expiry. Not shared between processes;
meant for local development and tests.
"""

from __future__ import annotations

import time
from typing import Callable

from medevidence.cache.base_cache_backend import BaseCacheBackend


class MemoryCacheBackend(BaseCacheBackend):
    """Single-process key-value store with TTL."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()

    @property
    def backend_name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._data)
