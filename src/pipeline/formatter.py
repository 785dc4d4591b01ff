# src/pipeline/formatter.py - v1
"""Annotation text placed ahead of the evidence in the generation prompt."""

from __future__ import annotations

from typing import Sequence

from medevidence.evidence.conflict_detector import format_conflicts_for_prompt
from medevidence.evidence.models import Conflict, SufficiencyScore
from medevidence.evidence.sufficiency_scorer import (
    format_sufficiency_for_prompt,
    format_sufficiency_warning,
)


def format_annotations(
    conflicts: Sequence[Conflict], sufficiency: SufficiencyScore
) -> str:
    """Conflict notice first, then the sufficiency warning or assessment."""
    parts: list[str] = []
    conflict_notice = format_conflicts_for_prompt(conflicts)
    if conflict_notice:
        parts.append(conflict_notice)
    warning = format_sufficiency_warning(sufficiency)
    parts.append(warning if warning is not None else format_sufficiency_for_prompt(sufficiency))
    return "\n".join(parts)


def prepend_annotations(evidence_text: str, annotation: str) -> str:
    """Place annotation text ahead of formatted evidence."""
    if not annotation:
        return evidence_text
    return f"{annotation}\n{evidence_text}"
