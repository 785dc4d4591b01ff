# src/pipeline/state.py - v3
"""Per-request pipeline state and result.

Stages run strictly forward:
INIT -> CACHE_CHECK -> [FETCH -> CACHE_STORE] -> PACKAGE -> CONFLICT_SCAN
-> SUFFICIENCY_SCORE -> FORMAT -> DONE. FETCH and CACHE_STORE are skipped
when every source was served from cache.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from medevidence.evidence.models import Conflict, EvidencePackage, SufficiencyScore


class PipelineStage(str, Enum):
    INIT = "init"
    CACHE_CHECK = "cache_check"
    FETCH = "fetch"
    CACHE_STORE = "cache_store"
    PACKAGE = "package"
    CONFLICT_SCAN = "conflict_scan"
    SUFFICIENCY_SCORE = "sufficiency_score"
    FORMAT = "format"
    DONE = "done"


_ORDER = {stage: idx for idx, stage in enumerate(PipelineStage)}


class PipelineState(BaseModel):
    """Mutable state accumulated while one query moves through the stages."""

    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    query: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    stage: PipelineStage = PipelineStage.INIT
    stages: list[PipelineStage] = Field(default_factory=lambda: [PipelineStage.INIT])

    # source -> raw payload, from cache or fetcher (validated ones only)
    payloads: dict[str, Any] = Field(default_factory=dict)
    # source -> payload validated into a package
    packages: dict[str, EvidencePackage] = Field(default_factory=dict)
    cache_hits: list[str] = Field(default_factory=list)
    cache_misses: list[str] = Field(default_factory=list)
    fetched_sources: list[str] = Field(default_factory=list)
    failed_sources: list[str] = Field(default_factory=list)

    package: EvidencePackage = Field(default_factory=EvidencePackage)
    conflicts: list[Conflict] = Field(default_factory=list)
    sufficiency: SufficiencyScore | None = None
    annotation: str = ""

    def advance(self, stage: PipelineStage) -> None:
        """Move forward to stage; going backwards is a programming error."""
        if _ORDER[stage] <= _ORDER[self.stage]:
            raise ValueError(f"Cannot move from {self.stage.value} to {stage.value}")
        self.stage = stage
        self.stages.append(stage)


class PipelineResult(BaseModel):
    """What a pipeline run hands to the downstream generation step."""

    request_id: str
    query: str
    package: EvidencePackage
    conflicts: list[Conflict]
    sufficiency: SufficiencyScore
    annotation: str
    cache_hits: list[str]
    fetched_sources: list[str]
    failed_sources: list[str]
    stages: list[PipelineStage]
    duration_ms: int
