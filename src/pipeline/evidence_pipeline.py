# src/pipeline/evidence_pipeline.py - v2
"""Evidence pipeline: top-level orchestrator for one evidence query.

Chains, per request:
  1. Cache lookup for every (query, source), concurrently
  2. Concurrent fetch for the misses (and for cached entries that no
     longer validate), each bounded by a timeout and validated on arrival
  3. Cache write for every fetched payload that validated
  4. Merge into one EvidencePackage
  5. Guideline conflict scan
  6. Sufficiency scoring
  7. Annotation text for the generation step

Every component failure is downgraded (cache treated as absent, source
dropped, empty conflicts, fallback score); nothing stops the run before the
annotation is produced.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from pydantic import ValidationError

from medevidence.cache.evidence_cache import EvidenceCache
from medevidence.cache.query_hasher import hash_query
from medevidence.evidence.conflict_detector import detect_conflicts
from medevidence.evidence.models import EvidencePackage, SufficiencyScore
from medevidence.evidence.sufficiency_scorer import (
    fallback_score,
    score_evidence_sufficiency,
)
from medevidence.logging.context import (
    clear_context,
    set_request_context,
    set_stage_context,
)
from medevidence.pipeline.formatter import format_annotations
from medevidence.pipeline.state import PipelineResult, PipelineStage, PipelineState

logger = logging.getLogger(__name__)

EvidenceFetcher = Callable[[str], Awaitable[Mapping[str, Any]]]


class EvidencePipeline:
    """Cache-aware evidence gathering plus conflict and sufficiency annotation.

    Usage:
        pipeline = EvidencePipeline({"pubmed": fetch_pubmed}, cache=cache)
        result = await pipeline.run("hypertension treatment")
    """

    def __init__(
        self,
        fetchers: Mapping[str, EvidenceFetcher],
        cache: EvidenceCache | None = None,
        fetch_timeout_s: float = 15.0,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._fetchers = dict(fetchers)
        self._cache = cache if cache is not None else EvidenceCache(backend=None)
        self._fetch_timeout_s = fetch_timeout_s
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    @property
    def sources(self) -> list[str]:
        return list(self._fetchers)

    @property
    def cache(self) -> EvidenceCache:
        return self._cache

    async def run(self, query: str) -> PipelineResult:
        """Run every stage for one query and return the annotated result."""
        started = time.monotonic()
        state = PipelineState(query=query)
        set_request_context(state.request_id, hash_query(query))
        try:
            logger.info(
                "Starting evidence pipeline: %d sources, cache_available=%s",
                len(self._fetchers), self._cache.is_available(),
            )
            await self._check_cache(state)
            if state.cache_misses:
                await self._fetch(state)
                await self._store(state)
            self._package(state)
            self._scan_conflicts(state)
            self._score(state)
            self._format(state)
            state.advance(PipelineStage.DONE)
        finally:
            clear_context()

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Evidence pipeline complete: %d hits, %d fetched, %d failed, "
            "%d conflicts, sufficiency=%s, %dms",
            len(state.cache_hits), len(state.fetched_sources), len(state.failed_sources),
            len(state.conflicts), state.sufficiency.level if state.sufficiency else None,
            duration_ms,
            extra={"data": {
                "cache_hits": state.cache_hits,
                "fetched": state.fetched_sources,
                "failed": state.failed_sources,
                "score": state.sufficiency.score if state.sufficiency else None,
                "duration_ms": duration_ms,
            }},
        )
        return PipelineResult(
            request_id=state.request_id,
            query=state.query,
            package=state.package,
            conflicts=state.conflicts,
            sufficiency=state.sufficiency or fallback_score(),
            annotation=state.annotation,
            cache_hits=state.cache_hits,
            fetched_sources=state.fetched_sources,
            failed_sources=state.failed_sources,
            stages=state.stages,
            duration_ms=duration_ms,
        )

    # --- stages ---

    def _enter(self, state: PipelineState, stage: PipelineStage) -> None:
        state.advance(stage)
        set_stage_context(stage.value)

    async def _check_cache(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.CACHE_CHECK)
        sources = self.sources
        lookups = await asyncio.gather(
            *(self._cache.lookup(state.query, s) for s in sources),
            return_exceptions=True,
        )
        for source, lookup in zip(sources, lookups):
            if isinstance(lookup, BaseException):
                logger.warning("Cache lookup for %s raised: %s", source, lookup)
                state.cache_misses.append(source)
                continue
            if not lookup.hit or lookup.entry is None:
                state.cache_misses.append(source)
                continue
            package = _validate_payload(source, lookup.entry.data, origin="cached")
            if package is None:
                # Refetch instead of serving an entry that cannot be used
                state.cache_misses.append(source)
                continue
            state.payloads[source] = lookup.entry.data
            state.packages[source] = package
            state.cache_hits.append(source)
        logger.debug(
            "Cache check: hits=%s misses=%s", state.cache_hits, state.cache_misses
        )

    async def _fetch(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.FETCH)
        payloads = await asyncio.gather(
            *(self._fetch_source(s, state.query) for s in state.cache_misses)
        )
        for source, payload in zip(state.cache_misses, payloads):
            package = (
                _validate_payload(source, payload, origin="fetched")
                if payload is not None else None
            )
            if package is None:
                state.failed_sources.append(source)
                continue
            state.payloads[source] = payload
            state.packages[source] = package
            state.fetched_sources.append(source)

    async def _fetch_source(self, source: str, query: str) -> Mapping[str, Any] | None:
        set_stage_context(PipelineStage.FETCH.value, source)
        try:
            payload = await asyncio.wait_for(
                self._fetchers[source](query), timeout=self._fetch_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("Fetch from %s timed out after %.1fs", source, self._fetch_timeout_s)
            return None
        except Exception as e:
            logger.warning("Fetch from %s failed: %s", source, e)
            return None
        if not isinstance(payload, Mapping):
            logger.warning(
                "Fetch from %s returned %s, expected a mapping", source, type(payload).__name__
            )
            return None
        return payload

    async def _store(self, state: PipelineState) -> None:
        """Write back fetched payloads; only ones that validated reach here."""
        self._enter(state, PipelineStage.CACHE_STORE)
        if not state.fetched_sources:
            return
        await asyncio.gather(
            *(self._cache.put(state.query, s, state.payloads[s]) for s in state.fetched_sources),
            return_exceptions=True,
        )

    def _package(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.PACKAGE)
        package = EvidencePackage()
        for source in self.sources:
            part = state.packages.get(source)
            if part is not None:
                package.extend(part, source=source)
        state.package = package
        logger.info(
            "Packaged %d evidence items from %d sources",
            package.total_items, len(package.sources),
        )

    def _scan_conflicts(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.CONFLICT_SCAN)
        state.conflicts = detect_conflicts(state.package.guidelines)

    def _score(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.SUFFICIENCY_SCORE)
        try:
            counts = state.package.category_counts(self._today().year)
        except Exception:
            logger.exception("Could not derive evidence counts; using fallback score")
            state.sufficiency = fallback_score()
            return
        state.sufficiency = score_evidence_sufficiency(counts)

    def _format(self, state: PipelineState) -> None:
        self._enter(state, PipelineStage.FORMAT)
        sufficiency: SufficiencyScore = state.sufficiency or fallback_score()
        try:
            state.annotation = format_annotations(state.conflicts, sufficiency)
        except Exception:
            logger.exception("Annotation formatting failed; continuing without annotations")
            state.annotation = ""


def _validate_payload(source: str, payload: Any, origin: str) -> EvidencePackage | None:
    """Validate one source's payload; None (logged) when it is unusable."""
    try:
        return EvidencePackage.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "Discarding malformed %s payload from %s (%d errors)",
            origin, source, e.error_count(),
        )
        return None
