# src/cache/models.py - v2
"""Cache domain models: CacheMetadata, CachedEvidence, CacheLookup, CacheStats.

The serialised form of CachedEvidence is the value stored under
``evidence:{queryHash}:{source}`` and must stay byte-compatible with
existing deployments, hence the camelCase aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

CACHE_TTL_SECONDS = 86400


class CacheMetadata(BaseModel):
    """Provenance stored alongside every cached payload."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    source: str
    query_hash: str = Field(alias="queryHash")
    ttl: int = CACHE_TTL_SECONDS


class CachedEvidence(BaseModel):
    """Single cache entry: the opaque fetched payload plus its metadata."""

    model_config = ConfigDict(populate_by_name=True)

    data: Any
    metadata: CacheMetadata

    def to_json(self) -> str:
        """Serialise to the stored wire layout."""
        return self.model_dump_json(by_alias=True)


class CacheLookup(BaseModel):
    """Outcome of a single cache read.

    ``get`` collapses miss and error into None; this keeps them apart for
    metrics and tests.
    """

    status: Literal["hit", "miss", "error"]
    entry: CachedEvidence | None = None
    error: str | None = None

    @property
    def hit(self) -> bool:
        return self.status == "hit"


class CacheStats(BaseModel):
    """Process-local cache counters."""

    model_config = ConfigDict(populate_by_name=True)

    hits: int = 0
    misses: int = 0
    errors: int = 0
    hit_rate: float = Field(default=0.0, alias="hitRate")
