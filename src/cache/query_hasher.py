# src/cache/query_hasher.py - v1
"""Deterministic query hashing for cache keys.

Queries are normalised before hashing so that trivially different spellings
of the same question ("Hypertension  Treatment" vs "hypertension treatment")
share one cache entry. Punctuation is kept: in clinical queries it often
carries meaning ("HbA1c < 7%", "COVID-19").
"""

from __future__ import annotations

import hashlib
import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """NFKC-normalise, case-fold, trim and collapse internal whitespace."""
    text = unicodedata.normalize("NFKC", query)
    text = text.casefold()
    return _WHITESPACE_RE.sub(" ", text).strip()


def hash_query(query: str) -> str:
    """SHA-256 of the normalised query as 64 lowercase hex characters."""
    normalized = normalize_query(query)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
