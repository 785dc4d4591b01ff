# src/evidence/sufficiency_scorer.py - v1
"""Evidence sufficiency scoring.

Scoring algorithm (each category contributes at most once):
  - Cochrane reviews:                 +30 (>=1 present)
  - Clinical guidelines:              +25 (>=1 present)
  - RCTs with results:                +20 (>=1 present)
  - Recent articles (last 5 years):   +15 (>=5 present)
  - Non-Cochrane systematic reviews:  +10 (>=1 present)

Maximum possible score: 100. Levels: >=70 excellent, >=50 good, >=30
limited, otherwise insufficient.

Scoring never raises: on any failure a fixed fallback (50, "good") is
returned so downstream text is neither alarming nor falsely reassuring.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from medevidence.evidence.models import (
    EvidenceCounts,
    SufficiencyScore,
    level_for_score,
)

logger = logging.getLogger(__name__)

RECENT_ARTICLES_MIN = 5
RECENT_WINDOW_YEARS = 5


@dataclass(frozen=True)
class ScoringCategory:
    """One weighted category of the sufficiency score."""

    key: str
    points: int
    minimum: int
    count: Callable[[EvidenceCounts], int]
    satisfied_text: Callable[[int], str]
    missing_text: Callable[[int], str]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def _recent_missing(n: int) -> str:
    if n == 0:
        return f"No recent articles (last {RECENT_WINDOW_YEARS} years)"
    return f"Only {_plural(n, 'recent article')} (need ≥{RECENT_ARTICLES_MIN} for full credit)"


SCORING_CATEGORIES: tuple[ScoringCategory, ...] = (
    ScoringCategory(
        key="cochraneReviews",
        points=30,
        minimum=1,
        count=lambda c: c.cochrane_reviews,
        satisfied_text=lambda n: f"{_plural(n, 'Cochrane review')} (gold standard)",
        missing_text=lambda n: "No Cochrane reviews found",
    ),
    ScoringCategory(
        key="guidelines",
        points=25,
        minimum=1,
        count=lambda c: c.guidelines,
        satisfied_text=lambda n: _plural(n, "clinical guideline"),
        missing_text=lambda n: "No clinical guidelines found",
    ),
    ScoringCategory(
        key="rcts",
        points=20,
        minimum=1,
        count=lambda c: c.rcts_with_results,
        satisfied_text=lambda n: f"{_plural(n, 'randomized controlled trial')} with results",
        missing_text=lambda n: "No randomized controlled trials with results found",
    ),
    ScoringCategory(
        key="recentArticles",
        points=15,
        minimum=RECENT_ARTICLES_MIN,
        count=lambda c: c.recent_articles,
        satisfied_text=lambda n: (
            f"{_plural(n, 'recent article')} (last {RECENT_WINDOW_YEARS} years)"
        ),
        missing_text=_recent_missing,
    ),
    ScoringCategory(
        key="systematicReviews",
        points=10,
        minimum=1,
        count=lambda c: c.systematic_reviews,
        satisfied_text=lambda n: f"{_plural(n, 'systematic review')} (non-Cochrane)",
        missing_text=lambda n: "No non-Cochrane systematic reviews found",
    ),
)

FALLBACK_SCORE = 50


def fallback_score(reason: str = "Error calculating evidence sufficiency") -> SufficiencyScore:
    """Fixed record returned when scoring fails."""
    return SufficiencyScore(
        score=FALLBACK_SCORE,
        level=level_for_score(FALLBACK_SCORE),
        reasoning=[reason],
        breakdown={},
        is_fallback=True,
    )


def score_evidence_sufficiency(
    evidence: EvidenceCounts | Mapping[str, Any],
) -> SufficiencyScore:
    """Score categorised evidence counts.

    Args:
        evidence: EvidenceCounts, or a mapping validated into one.

    Returns:
        SufficiencyScore; the fallback record if anything goes wrong.
    """
    try:
        counts = (
            evidence if isinstance(evidence, EvidenceCounts)
            else EvidenceCounts.model_validate(evidence)
        )
        return _score(counts)
    except Exception:
        logger.exception("Sufficiency scoring failed; using fallback score")
        return fallback_score()


def _score(counts: EvidenceCounts) -> SufficiencyScore:
    breakdown: dict[str, int] = {}
    reasoning: list[str] = []

    for category in SCORING_CATEGORIES:
        n = category.count(counts)
        if n >= category.minimum:
            breakdown[category.key] = category.points
            reasoning.append(category.satisfied_text(n))
        else:
            breakdown[category.key] = 0
            reasoning.append(category.missing_text(n))

    score = sum(breakdown.values())
    result = SufficiencyScore(
        score=score,
        level=level_for_score(score),
        reasoning=reasoning,
        breakdown=breakdown,
    )
    logger.info("Evidence sufficiency: %s (%d/100)", result.level, result.score)
    return result


def is_evidence_sufficient(score: SufficiencyScore) -> bool:
    """True when evidence is good enough for decision support."""
    return score.level in ("excellent", "good")


_GAP_LINES: dict[str, str] = {
    "cochraneReviews": "- No Cochrane systematic reviews found",
    "guidelines": "- No clinical practice guidelines found",
    "rcts": "- No randomized controlled trials with results found",
    "recentArticles": f"- Limited recent research (last {RECENT_WINDOW_YEARS} years)",
}


def format_sufficiency_warning(score: SufficiencyScore) -> str | None:
    """Warning block for limited/insufficient evidence, None otherwise."""
    if is_evidence_sufficient(score):
        return None

    parts = ["", "--- EVIDENCE QUALITY NOTICE ---", ""]
    if score.level == "insufficient":
        parts.append(f"**EVOLVING EVIDENCE BASE** (Score: {score.score}/100)")
        parts.append("")
        parts.append(
            "The evidence base for this specific query is still developing. "
            "Some aspects may rely on expert consensus and clinical judgment."
        )
    else:
        parts.append(f"**MODERATE EVIDENCE BASE** (Score: {score.score}/100)")
        parts.append("")
        parts.append(
            "Guidelines and reviews support the following approach, though the "
            "evidence base has some limitations."
        )
    parts.append("")

    gaps = [line for key, line in _GAP_LINES.items() if score.breakdown.get(key, 0) == 0]
    if gaps:
        parts.append("**Evidence Gaps:**")
        parts.extend(gaps)
        parts.append("")

    parts.append("**Clinical Guidance:**")
    parts.append("- Acknowledge the limitations of the available evidence")
    parts.append("- Inform patients about the level of evidence supporting recommendations")
    parts.append("- Monitor for new evidence as research evolves")
    parts.append("")
    parts.append("--- END EVIDENCE QUALITY NOTICE ---")
    parts.append("")
    return "\n".join(parts)


_INTERPRETATION: dict[str, str] = {
    "excellent": (
        "Strong evidence base with high-quality sources. "
        "Recommendations can be made with confidence."
    ),
    "good": (
        "Adequate evidence base. Recommendations are well-supported "
        "but may benefit from additional sources."
    ),
}


def format_sufficiency_for_prompt(score: SufficiencyScore) -> str:
    """Assessment block listing the reasoning lines."""
    parts = ["", "--- EVIDENCE QUALITY ASSESSMENT ---", ""]
    parts.append(f"**Overall Quality:** {score.level.upper()} ({score.score}/100)")
    parts.append("")
    parts.append("**Evidence Breakdown:**")
    parts.extend(f"- {line}" for line in score.reasoning)
    parts.append("")
    interpretation = _INTERPRETATION.get(score.level)
    if interpretation:
        parts.append(f"**Interpretation:** {interpretation}")
        parts.append("")
    parts.append("--- END EVIDENCE QUALITY ASSESSMENT ---")
    parts.append("")
    return "\n".join(parts)
