# src/evidence/models.py - v2
"""Evidence domain models: guidelines, conflicts, evidence package, sufficiency score.

All records are request-scoped. Payloads arriving from the literature
fetchers use camelCase keys, so package-level models accept both camelCase
and snake_case.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

SufficiencyLevel = Literal["excellent", "good", "limited", "insufficient"]
Severity = Literal["major", "minor"]

# Lower bound of each level, highest first
LEVEL_THRESHOLDS: tuple[tuple[int, SufficiencyLevel], ...] = (
    (70, "excellent"),
    (50, "good"),
    (30, "limited"),
)

_YEAR_RE = re.compile(r"\b(1[89]\d{2}|2\d{3})\b")


def level_for_score(score: int) -> SufficiencyLevel:
    """Map a 0-100 score onto the qualitative level."""
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return "insufficient"


def _parse_year(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    match = _YEAR_RE.search(str(value))
    return int(match.group(1)) if match else None


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


# === Guidelines and conflicts ===


class GuidelineRecord(BaseModel):
    """One organisation's position on a topic. Immutable once fetched."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    organization: str = Field(validation_alias=AliasChoices("organization", "org"))
    topic: str
    position: str
    url: str | None = None
    year: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v: Any) -> str | None:  # noqa: N805
        return None if v is None else str(v)


class ConflictSource(BaseModel):
    """An (organization, position) pair quoted in a conflict."""

    organization: str
    position: str


class Conflict(BaseModel):
    """Detected disagreement between at least two guidelines."""

    topic: str
    sources: list[ConflictSource] = Field(min_length=2)
    severity: Severity
    description: str

    @property
    def organizations(self) -> list[str]:
        return [s.organization for s in self.sources]


# === Evidence package ===


class Article(_CamelModel):
    """Journal article or review as returned by a literature source."""

    title: str = ""
    year: int | None = None
    publication_date: str | None = None
    journal: str = ""
    url: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v: Any) -> int | None:  # noqa: N805
        return _parse_year(v)

    @property
    def publication_year(self) -> int | None:
        if self.year is not None:
            return self.year
        return _parse_year(self.publication_date)


class ClinicalTrial(_CamelModel):
    """Registered clinical trial."""

    title: str = ""
    has_results: bool = False
    study_type: str = ""
    url: str | None = None

    @property
    def is_rct_with_results(self) -> bool:
        return self.has_results and self.study_type.strip().lower() == "interventional"


class EvidenceCounts(_CamelModel):
    """Per-category evidence counts consumed by the sufficiency scorer."""

    cochrane_reviews: int = Field(default=0, ge=0)
    guidelines: int = Field(default=0, ge=0)
    rcts_with_results: int = Field(default=0, ge=0)
    recent_articles: int = Field(default=0, ge=0)
    systematic_reviews: int = Field(default=0, ge=0)


class EvidencePackage(_CamelModel):
    """Evidence merged from every source queried for one request."""

    cochrane_reviews: list[Article] = Field(default_factory=list)
    systematic_reviews: list[Article] = Field(default_factory=list)
    articles: list[Article] = Field(default_factory=list)
    guidelines: list[GuidelineRecord] = Field(default_factory=list)
    clinical_trials: list[ClinicalTrial] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)

    @field_validator(
        "cochrane_reviews", "systematic_reviews", "articles", "guidelines", "clinical_trials",
        mode="before",
    )
    @classmethod
    def drop_invalid_items(cls, v: Any, info: ValidationInfo) -> Any:  # noqa: N805
        """Skip malformed records so one bad item does not void its source.

        A value that is not a list at all still fails validation.
        """
        if not isinstance(v, list):
            return v
        item_model = _ITEM_MODELS[info.field_name]
        kept: list[Any] = []
        for idx, item in enumerate(v):
            try:
                kept.append(item_model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed %s[%d] (%d errors)", info.field_name, idx, e.error_count()
                )
        return kept

    def extend(self, other: EvidencePackage, source: str | None = None) -> None:
        """Append another package's items in place."""
        self.cochrane_reviews.extend(other.cochrane_reviews)
        self.systematic_reviews.extend(other.systematic_reviews)
        self.articles.extend(other.articles)
        self.guidelines.extend(other.guidelines)
        self.clinical_trials.extend(other.clinical_trials)
        if source is not None and source not in self.sources:
            self.sources.append(source)

    def category_counts(self, reference_year: int, window_years: int = 5) -> EvidenceCounts:
        """Derive scorer inputs; articles count as recent within window_years."""
        threshold = reference_year - window_years
        recent = sum(
            1 for a in self.articles
            if a.publication_year is not None and a.publication_year >= threshold
        )
        return EvidenceCounts(
            cochrane_reviews=len(self.cochrane_reviews),
            guidelines=len(self.guidelines),
            rcts_with_results=sum(1 for t in self.clinical_trials if t.is_rct_with_results),
            recent_articles=recent,
            systematic_reviews=len(self.systematic_reviews),
        )

    @property
    def total_items(self) -> int:
        return (
            len(self.cochrane_reviews) + len(self.systematic_reviews)
            + len(self.articles) + len(self.guidelines) + len(self.clinical_trials)
        )


_ITEM_MODELS: dict[str, type[BaseModel]] = {
    "cochrane_reviews": Article,
    "systematic_reviews": Article,
    "articles": Article,
    "guidelines": GuidelineRecord,
    "clinical_trials": ClinicalTrial,
}


# === Sufficiency ===


class SufficiencyScore(BaseModel):
    """Evidence sufficiency: numeric score, level and per-category points.

    Computed scores always satisfy ``score == sum(breakdown.values())`` and
    ``level == level_for_score(score)``. The failure fallback carries
    ``is_fallback=True`` and an empty breakdown.
    """

    score: int = Field(ge=0, le=100)
    level: SufficiencyLevel
    reasoning: list[str] = Field(min_length=1)
    breakdown: dict[str, int] = Field(default_factory=dict)
    is_fallback: bool = False

    @model_validator(mode="after")
    def check_consistency(self) -> SufficiencyScore:
        if self.is_fallback:
            return self
        if self.score != sum(self.breakdown.values()):
            raise ValueError("score must equal the sum of breakdown points")
        if self.level != level_for_score(self.score):
            raise ValueError(f"level {self.level!r} does not match score {self.score}")
        return self
