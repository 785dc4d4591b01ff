# src/evidence/lexicon.py - v2
"""Static lexicon for guideline conflict detection.

Kept apart from the scanning logic so it can be extended and tested on its
own. Everything here is immutable and compiled once at import.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Organisations whose guidelines are conflict-checked (upper-cased)
CONFLICT_ORGANIZATIONS: frozenset[str] = frozenset({
    "WHO",
    "CDC",
    "NICE",
    "BMJ",
    "ACC/AHA",
    "ACC",
    "AHA",
    "ESC",
    "AAP",
    "USPSTF",
})


@dataclass(frozen=True)
class PolarityPair:
    """An affirmative keyword and the phrases that negate it."""

    name: str
    affirmative: re.Pattern[str]
    negations: tuple[re.Pattern[str], ...]

    def match(self, text: str) -> tuple[str, re.Match[str]] | None:
        """First negation match, else affirmative match, for lower-cased text."""
        for pattern in self.negations:
            found = pattern.search(text)
            if found:
                return "negative", found
        found = self.affirmative.search(text)
        if found:
            return "affirmative", found
        return None

    def polarity(self, text: str) -> str | None:
        """Return "negative", "affirmative" or None for lower-cased text."""
        matched = self.match(text)
        return matched[0] if matched else None


def _pair(name: str, affirmative: str, *negations: str) -> PolarityPair:
    return PolarityPair(
        name=name,
        affirmative=re.compile(affirmative),
        negations=tuple(re.compile(n) for n in negations),
    )


# Scanned in order; the first pair with opposite polarity wins.
OPPOSING_POSITIONS: tuple[PolarityPair, ...] = (
    _pair(
        "recommendation",
        r"\brecommend(?:s|ed|ation)?\b",
        r"\b(?:do|does|did)\s+not\s+recommend",
        r"\b(?:don't|doesn't)\s+recommend",
        r"\bnot\s+recommended\b",
        r"\brecommends?\s+against\b",
        r"\brecommendation\s+against\b",
    ),
    _pair(
        "obligation",
        r"\bshould\b",
        r"\bshould\s+not\b",
        r"\bshouldn't\b",
    ),
    _pair(
        "indication",
        r"\bindicated\b",
        r"\bnot\s+indicated\b",
        r"\bcontraindicated\b",
    ),
    _pair(
        "suggestion",
        r"\bsuggests?\b",
        r"\bsuggests?\s+against\b",
        r"\b(?:do|does)\s+not\s+suggest",
    ),
    _pair(
        "initiation",
        r"\b(?:initiate|start|use)\b",
        r"\bavoid\b",
        r"\b(?:do|does)\s+not\s+(?:initiate|start|use)\b",
    ),
)

_NUM = r"(\d+(?:\.\d+)?)"

# (unit, pattern) scanned in order for threshold divergence; each match
# yields one numeric value from whichever group participated.
THRESHOLD_UNITS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (unit, re.compile(pattern))
    for unit, pattern in (
        ("age", rf"\bages?\s+(?:of\s+)?(?:[<>]=?\s*|≥\s*|≤\s*)?{_NUM}|{_NUM}\s*(?:years?|yrs?)\s+(?:of\s+age|old)\b"),
        ("mmHg", rf"{_NUM}\s*mm\s*hg\b"),
        ("mg", rf"{_NUM}\s*mg\b"),
        ("mcg", rf"{_NUM}\s*(?:mcg|µg|μg)"),
        ("g", rf"{_NUM}\s*g\b"),
        ("ml", rf"{_NUM}\s*ml\b"),
        ("%", rf"{_NUM}\s*%"),
        ("years", rf"{_NUM}\s*(?:years?|yrs?)\b(?!\s+(?:of\s+age|old))"),
        ("months", rf"{_NUM}\s*months?\b"),
        ("weeks", rf"{_NUM}\s*weeks?\b"),
        ("days", rf"{_NUM}\s*days?\b"),
        ("hours", rf"{_NUM}\s*(?:hours?|hrs?)\b"),
    )
)

# Words trimmed from either end of the phrase a polarity keyword governs
ACTION_STOPWORDS: frozenset[str] = frozenset({
    "a", "an", "the", "we", "i", "it", "this", "that", "is", "are", "be",
    "been", "to", "of", "routinely", "strongly", "generally", "currently",
})

# A phrase after the keyword that opens with one of these is a qualifier
# ("indicated after MI"); the action is then the phrase before the keyword.
QUALIFIER_WORDS: frozenset[str] = frozenset({
    "in", "for", "after", "before", "during", "with", "among", "at", "when",
    "if", "on", "until", "unless",
})
