# tests/conftest.py - v2
"""Shared test fixtures for unit and integration tests.

Provides in-memory and failing cache backends, a mocked async Redis client,
sample guidelines and evidence payloads. No external services required.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from medevidence.cache.base_cache_backend import BaseCacheBackend
from medevidence.cache.evidence_cache import EvidenceCache
from medevidence.cache.memory_backend import MemoryCacheBackend
from medevidence.evidence.models import GuidelineRecord


class FailingBackend(BaseCacheBackend):
    """Backend whose every operation raises, like an unreachable Redis."""

    def __init__(self) -> None:
        self.calls = 0

    async def get(self, key: str) -> str | None:
        self.calls += 1
        raise ConnectionError("connection refused")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.calls += 1
        raise ConnectionError("connection refused")

    async def ping(self) -> bool:
        self.calls += 1
        raise ConnectionError("connection refused")

    async def close(self) -> None:
        return None

    @property
    def backend_name(self) -> str:
        return "failing"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# === FIXTURES: Cache ===


@pytest.fixture
def memory_backend() -> MemoryCacheBackend:
    return MemoryCacheBackend()


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(memory_backend: MemoryCacheBackend) -> EvidenceCache:
    """EvidenceCache over an in-memory backend (not yet probed)."""
    return EvidenceCache(backend=memory_backend)


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Async Redis client double backed by a dict; records TTLs."""
    storage: dict[str, str] = {}
    ttls: dict[str, int] = {}

    async def _set(key: str, value: str, ex: int | None = None) -> bool:
        storage[key] = value
        if ex is not None:
            ttls[key] = ex
        return True

    client = MagicMock()
    client.get = AsyncMock(side_effect=lambda k: storage.get(k))
    client.set = AsyncMock(side_effect=_set)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock(return_value=None)
    client.storage = storage
    client.ttls = ttls
    return client


# === FIXTURES: Evidence ===


@pytest.fixture
def who_recommends() -> GuidelineRecord:
    return GuidelineRecord(organization="WHO", topic="drug X", position="recommend drug X")


@pytest.fixture
def cdc_against() -> GuidelineRecord:
    return GuidelineRecord(
        organization="CDC", topic="drug X", position="do not recommend drug X"
    )


@pytest.fixture
def pubmed_payload() -> dict[str, Any]:
    """Payload as returned by a PubMed fetcher."""
    return {
        "articles": [
            {"title": "ACE inhibitors in hypertension", "year": 2023, "journal": "Lancet"},
            {"title": "ARB outcomes", "publicationDate": "2022 Mar", "journal": "JAMA"},
            {"title": "Thiazides revisited", "year": "2021"},
            {"title": "Amlodipine trial", "year": 2024},
            {"title": "Home BP monitoring", "year": 2020},
            {"title": "Historical cohort", "year": 1998},
        ],
        "systematicReviews": [
            {"title": "Meta-analysis of BP targets", "year": 2022},
        ],
    }


@pytest.fixture
def guideline_payload() -> dict[str, Any]:
    """Payload as returned by a guidelines fetcher."""
    return {
        "guidelines": [
            {"org": "WHO", "topic": "drug X", "position": "recommend drug X", "year": 2021},
            {"organization": "CDC", "topic": "Drug X", "position": "do not recommend drug X"},
        ]
    }
