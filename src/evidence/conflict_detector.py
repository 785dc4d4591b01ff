# src/evidence/conflict_detector.py - v2
"""Guideline conflict detector: find disagreements between clinical guidelines.

Identifies:
  - Major conflicts: opposite polarity on the same action
    ("recommend drug X" vs "do not recommend drug X").
  - Minor conflicts: aligned recommendations with diverging numeric
    thresholds (screening age, dose, duration).

Pure function, no external calls. Only guidelines from whitelisted
organisations are compared, and only pairs whose topics overlap. Each pair
stops at its first match. Opposite stances on different actions on one
topic ("recommend drug X" vs "do not recommend drug Y") are not a conflict.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from medevidence.evidence.lexicon import (
    ACTION_STOPWORDS,
    CONFLICT_ORGANIZATIONS,
    OPPOSING_POSITIONS,
    QUALIFIER_WORDS,
    THRESHOLD_UNITS,
)
from medevidence.evidence.models import Conflict, ConflictSource, GuidelineRecord

logger = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")
_CLAUSE_RE = re.compile(r"[;,.:!?]")


def detect_conflicts(
    guidelines: Sequence[GuidelineRecord],
    organizations: Iterable[str] = CONFLICT_ORGANIZATIONS,
) -> list[Conflict]:
    """Scan guidelines pairwise for conflicting positions.

    Args:
        guidelines: Guideline records for one request.
        organizations: Organisation whitelist; others pass through unchecked.

    Returns:
        Detected conflicts, possibly empty. Never raises.
    """
    try:
        return _detect(guidelines, frozenset(o.strip().upper() for o in organizations))
    except Exception:
        logger.exception("Conflict detection failed; continuing without conflicts")
        return []


def _detect(
    guidelines: Sequence[GuidelineRecord], whitelist: frozenset[str]
) -> list[Conflict]:
    candidates = [g for g in guidelines if g.organization.strip().upper() in whitelist]
    skipped = len(guidelines) - len(candidates)
    if skipped:
        logger.debug("%d guideline(s) from non-whitelisted organisations not scanned", skipped)

    conflicts: list[Conflict] = []
    for i in range(len(candidates)):
        for j in range(i + 1, len(candidates)):
            conflict = compare_guidelines(candidates[i], candidates[j])
            if conflict is not None:
                conflicts.append(conflict)

    if conflicts:
        majors = sum(1 for c in conflicts if c.severity == "major")
        logger.warning(
            "Detected %d guideline conflicts (%d major, %d minor)",
            len(conflicts), majors, len(conflicts) - majors,
        )
    else:
        logger.info("No guideline conflicts among %d scanned guidelines", len(candidates))
    return conflicts


def compare_guidelines(a: GuidelineRecord, b: GuidelineRecord) -> Conflict | None:
    """Compare one pair. Topic and severity do not depend on argument order."""
    topic = shared_topic(a.topic, b.topic)
    if topic is None:
        return None

    pos_a = a.position.lower()
    pos_b = b.position.lower()
    sources = [
        ConflictSource(organization=a.organization, position=a.position),
        ConflictSource(organization=b.organization, position=b.position),
    ]

    flipped_elsewhere = False
    for pair in OPPOSING_POSITIONS:
        match_a = pair.match(pos_a)
        match_b = pair.match(pos_b)
        if match_a is None or match_b is None or match_a[0] == match_b[0]:
            continue
        action_a = action_phrase(pos_a, match_a[1])
        action_b = action_phrase(pos_b, match_b[1])
        if not same_action(action_a, action_b):
            logger.debug(
                "%s flip between %s and %s concerns different actions (%r vs %r)",
                pair.name, a.organization, b.organization, action_a, action_b,
            )
            flipped_elsewhere = True
            continue
        return Conflict(
            topic=topic,
            sources=sources,
            severity="major",
            description=(
                f"{a.organization} and {b.organization} take opposite "
                f"{pair.name} positions on '{topic}'."
            ),
        )

    if flipped_elsewhere:
        # Opposite stances on different actions are not comparable thresholds
        return None

    for unit, pattern in THRESHOLD_UNITS:
        values_a = _extract_values(pattern, pos_a)
        values_b = _extract_values(pattern, pos_b)
        if values_a and values_b and values_a != values_b:
            return Conflict(
                topic=topic,
                sources=sources,
                severity="minor",
                description=(
                    f"{a.organization} and {b.organization} differ on the {unit} "
                    f"threshold for '{topic}': {_fmt(values_a)} vs {_fmt(values_b)}."
                ),
            )

    return None


def shared_topic(topic_a: str, topic_b: str) -> str | None:
    """Return the overlapping topic label, or None if the topics are unrelated.

    Topics overlap when their normalised forms are equal or one contains the
    other. The shorter original label names the conflict.
    """
    norm_a = normalize_topic(topic_a)
    norm_b = normalize_topic(topic_b)
    if not norm_a or not norm_b:
        return None
    if norm_a != norm_b and norm_a not in norm_b and norm_b not in norm_a:
        return None
    return min((len(norm_a), norm_a, topic_a), (len(norm_b), norm_b, topic_b))[2]


def action_phrase(position: str, keyword: re.Match[str]) -> str:
    """Normalised phrase a polarity keyword applies to.

    Normally the clause after the keyword ("recommend **drug x**"). When
    that clause is empty or only a qualifier ("indicated after MI"), the
    clause before the keyword is used instead ("**drug x** is not recommended").
    """
    tail = _content_words(_CLAUSE_RE.split(position[keyword.end():], maxsplit=1)[0])
    if tail and tail[0] not in QUALIFIER_WORDS:
        return " ".join(tail)
    return " ".join(_content_words(_CLAUSE_RE.split(position[:keyword.start()])[-1]))


def same_action(action_a: str, action_b: str) -> bool:
    """Whole-word containment either way; an unknown action matches anything."""
    if not action_a or not action_b:
        return True
    return f" {action_a} " in f" {action_b} " or f" {action_b} " in f" {action_a} "


def normalize_topic(topic: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = _PUNCT_RE.sub(" ", topic.lower())
    return _WS_RE.sub(" ", text).strip()


def format_conflicts_for_prompt(conflicts: Sequence[Conflict]) -> str | None:
    """Render a notice block for the generation prompt, or None if no conflicts."""
    if not conflicts:
        return None

    lines = ["", "--- GUIDELINE CONFLICTS DETECTED ---", ""]
    for idx, conflict in enumerate(conflicts, start=1):
        lines.append(f"{idx}. **{conflict.topic}** ({conflict.severity.upper()})")
        for source in conflict.sources:
            lines.append(f'   - {source.organization}: "{source.position}"')
        lines.append(f"   {conflict.description}")
        lines.append("")
    lines.append(
        "Present each position with its source, state the disagreement "
        "explicitly, and do not favour one organisation without evidence."
    )
    lines.append("--- END GUIDELINE CONFLICTS ---")
    lines.append("")
    return "\n".join(lines)


def _content_words(text: str) -> list[str]:
    words = normalize_topic(text).split()
    while words and words[0] in ACTION_STOPWORDS:
        words.pop(0)
    while words and words[-1] in ACTION_STOPWORDS:
        words.pop()
    return words


def _extract_values(pattern: re.Pattern[str], text: str) -> frozenset[float]:
    values: set[float] = set()
    for match in pattern.finditer(text):
        group = next((g for g in match.groups() if g), None)
        if group is not None:
            values.add(float(group))
    return frozenset(values)


def _fmt(values: frozenset[float]) -> str:
    return ", ".join(f"{v:g}" for v in sorted(values))
