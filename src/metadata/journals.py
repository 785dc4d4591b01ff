# src/metadata/journals.py - v1
"""Leading-journal abbreviation table.

Keys are lower-case journal names or common abbreviations as they appear in
CrossRef ``container-title``; values are the display abbreviation.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

LEADING_JOURNALS: Mapping[str, str] = MappingProxyType({
    "new england journal of medicine": "NEJM",
    "nejm": "NEJM",
    "n engl j med": "NEJM",
    "lancet": "Lancet",
    "the lancet": "Lancet",
    "jama": "JAMA",
    "journal of the american medical association": "JAMA",
    "bmj": "BMJ",
    "british medical journal": "BMJ",
    "nature": "Nature",
    "nature medicine": "Nature Medicine",
    "science": "Science",
    "circulation": "Circulation",
    "european heart journal": "Eur Heart J",
    "eur heart j": "Eur Heart J",
    "annals of internal medicine": "Ann Intern Med",
    "cochrane database of systematic reviews": "Cochrane",
    "cochrane database syst rev": "Cochrane",
    "diabetes care": "Diabetes Care",
    "kidney international": "Kidney Int",
})

# Longest keys first so "nature medicine" wins over "nature"
_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{re.escape(key)}\b"), abbrev)
    for key, abbrev in sorted(LEADING_JOURNALS.items(), key=lambda kv: -len(kv[0]))
)


def match_leading_journal(journal: str) -> str | None:
    """Return the abbreviation for a leading journal, or None.

    Exact (case-insensitive) match first, then whole-word substring match.
    """
    name = " ".join(journal.lower().split())
    if not name:
        return None
    exact = LEADING_JOURNALS.get(name)
    if exact is not None:
        return exact
    for pattern, abbrev in _PATTERNS:
        if pattern.search(name):
            return abbrev
    return None
