# tests/unit/evidence/test_sufficiency_scorer.py - v1
"""Tests for evidence/sufficiency_scorer.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from medevidence.evidence.models import EvidenceCounts, SufficiencyScore
from medevidence.evidence.sufficiency_scorer import (
    FALLBACK_SCORE,
    SCORING_CATEGORIES,
    fallback_score,
    format_sufficiency_for_prompt,
    format_sufficiency_warning,
    is_evidence_sufficient,
    score_evidence_sufficiency,
)


def _counts(**kw) -> EvidenceCounts:
    return EvidenceCounts(**kw)


class TestScoreEvidenceSufficiency:
    def test_mixed_evidence(self):
        score = score_evidence_sufficiency(
            _counts(cochrane_reviews=2, guidelines=1, rcts_with_results=0, recent_articles=3)
        )
        assert score.score == 55
        assert score.level == "good"
        assert score.breakdown == {
            "cochraneReviews": 30,
            "guidelines": 25,
            "rcts": 0,
            "recentArticles": 0,
            "systematicReviews": 0,
        }
        assert "2 Cochrane reviews (gold standard)" in score.reasoning
        assert "1 clinical guideline" in score.reasoning
        assert "Only 3 recent articles (need ≥5 for full credit)" in score.reasoning

    def test_no_evidence(self):
        score = score_evidence_sufficiency(_counts())
        assert score.score == 0
        assert score.level == "insufficient"
        assert score.reasoning
        assert "No Cochrane reviews found" in score.reasoning
        assert "No recent articles (last 5 years)" in score.reasoning

    def test_full_evidence(self):
        score = score_evidence_sufficiency(
            _counts(
                cochrane_reviews=1, guidelines=3, rcts_with_results=2,
                recent_articles=12, systematic_reviews=4,
            )
        )
        assert score.score == 100
        assert score.level == "excellent"
        assert score.is_fallback is False

    def test_mapping_input_camel_case(self):
        score = score_evidence_sufficiency({"cochraneReviews": 1, "recentArticles": 5})
        assert score.score == 45
        assert score.level == "limited"

    def test_each_category_counted_once(self):
        score = score_evidence_sufficiency(_counts(cochrane_reviews=50))
        assert score.score == 30

    @pytest.mark.parametrize(
        "total,level",
        [(0, "insufficient"), (10, "insufficient"), (30, "limited"), (45, "limited"),
         (55, "good"), (65, "good"), (70, "excellent"), (100, "excellent")],
    )
    def test_level_boundaries(self, total, level):
        # Greedy pick of categories whose points add up to ``total``
        chosen = {}
        remaining = total
        for category in SCORING_CATEGORIES:
            if remaining >= category.points:
                chosen[category.key] = category.minimum
                remaining -= category.points
        field = {
            "cochraneReviews": "cochrane_reviews",
            "guidelines": "guidelines",
            "rcts": "rcts_with_results",
            "recentArticles": "recent_articles",
            "systematicReviews": "systematic_reviews",
        }
        score = score_evidence_sufficiency(_counts(**{field[k]: v for k, v in chosen.items()}))
        assert score.score == total
        assert score.level == level

    def test_invariant_holds(self):
        score = score_evidence_sufficiency(_counts(guidelines=1, systematic_reviews=1))
        assert score.score == sum(score.breakdown.values()) == 35

    def test_invalid_input_falls_back(self):
        score = score_evidence_sufficiency({"cochraneReviews": -1})
        assert score.is_fallback is True
        assert score.score == FALLBACK_SCORE
        assert score.level == "good"
        assert score.reasoning == ["Error calculating evidence sufficiency"]

    def test_non_mapping_falls_back(self):
        score = score_evidence_sufficiency("not counts")  # type: ignore[arg-type]
        assert score.is_fallback is True


class TestFallbackScore:
    def test_shape(self):
        fb = fallback_score("boom")
        assert fb.score == 50
        assert fb.level == "good"
        assert fb.breakdown == {}
        assert fb.reasoning == ["boom"]

    def test_computed_scores_are_validated(self):
        with pytest.raises(ValidationError):
            SufficiencyScore(score=55, level="good", reasoning=["x"], breakdown={"a": 30})
        with pytest.raises(ValidationError):
            SufficiencyScore(score=30, level="good", reasoning=["x"], breakdown={"a": 30})


class TestIsEvidenceSufficient:
    def test_levels(self):
        assert is_evidence_sufficient(score_evidence_sufficiency(_counts(cochrane_reviews=1, guidelines=1)))
        assert not is_evidence_sufficient(score_evidence_sufficiency(_counts(cochrane_reviews=1)))
        assert is_evidence_sufficient(fallback_score())


class TestFormatting:
    def test_no_warning_when_sufficient(self):
        score = score_evidence_sufficiency(_counts(cochrane_reviews=1, guidelines=1))
        assert format_sufficiency_warning(score) is None

    def test_insufficient_warning(self):
        text = format_sufficiency_warning(score_evidence_sufficiency(_counts()))
        assert "--- EVIDENCE QUALITY NOTICE ---" in text
        assert "**EVOLVING EVIDENCE BASE** (Score: 0/100)" in text
        assert "- No Cochrane systematic reviews found" in text
        assert "--- END EVIDENCE QUALITY NOTICE ---" in text

    def test_limited_warning_lists_only_gaps(self):
        text = format_sufficiency_warning(score_evidence_sufficiency(_counts(cochrane_reviews=1)))
        assert "**MODERATE EVIDENCE BASE** (Score: 30/100)" in text
        assert "No Cochrane systematic reviews found" not in text
        assert "- No clinical practice guidelines found" in text

    def test_assessment_block(self):
        score = score_evidence_sufficiency(_counts(cochrane_reviews=2, guidelines=1, recent_articles=3))
        text = format_sufficiency_for_prompt(score)
        assert "**Overall Quality:** GOOD (55/100)" in text
        assert "- 2 Cochrane reviews (gold standard)" in text
        assert "**Interpretation:**" in text
        assert "--- END EVIDENCE QUALITY ASSESSMENT ---" in text
