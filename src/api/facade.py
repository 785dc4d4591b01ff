# src/api/facade.py - v2
"""Public API facade: one call per evidence query.

Usage:
    from medevidence.api.facade import annotate
    result = await annotate("hypertension treatment", {"pubmed": fetch_pubmed})
    prompt_context = prepend_annotations(evidence_text, result.annotation)

Host applications that serve many requests should build the cache once
(``create_evidence_cache``) and pass it in, so connections and counters are
shared across requests.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from medevidence.cache.cache_factory import create_evidence_cache
from medevidence.config.settings import Settings
from medevidence.metadata.crossref import CrossrefClient
from medevidence.pipeline.evidence_pipeline import EvidenceFetcher, EvidencePipeline

if TYPE_CHECKING:
    from medevidence.cache.evidence_cache import EvidenceCache
    from medevidence.pipeline.state import PipelineResult

logger = logging.getLogger(__name__)


async def annotate(
    query: str,
    fetchers: Mapping[str, EvidenceFetcher],
    settings: Settings | None = None,
    cache: EvidenceCache | None = None,
) -> PipelineResult:
    """Gather evidence for a query and annotate it with conflicts and sufficiency.

    Args:
        query: Free-text clinical question.
        fetchers: Source name -> async fetch(query) returning a payload mapping.
        settings: Global settings. Loaded from .env if None.
        cache: Shared EvidenceCache. Built from settings (and closed) if None.

    Returns:
        PipelineResult with package, conflicts, sufficiency and annotation text.
    """
    settings = settings or Settings()
    owns_cache = cache is None
    if cache is None:
        cache = await create_evidence_cache(settings)

    try:
        pipeline = EvidencePipeline(
            fetchers, cache=cache, fetch_timeout_s=settings.fetch_timeout_s
        )
        return await pipeline.run(query)
    finally:
        if owns_cache:
            await cache.close()


def create_crossref_client(settings: Settings | None = None) -> CrossrefClient:
    """CrossRef client configured from settings."""
    settings = settings or Settings()
    return CrossrefClient(
        base_url=settings.crossref_base_url,
        timeout_s=settings.crossref_timeout_s,
        mailto=settings.crossref_mailto,
    )
