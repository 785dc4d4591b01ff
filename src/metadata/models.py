# src/metadata/models.py - v1
"""Bibliographic metadata models."""

from __future__ import annotations

from pydantic import BaseModel


class ReferenceMetadata(BaseModel):
    """Normalised reference metadata for one cited work."""

    title: str
    authors: str = ""
    journal: str = ""
    published_date: str = ""
    year: str = ""
    source: str = ""
    is_leading_journal: bool = False
    resolved: bool = False

    @classmethod
    def fallback(cls, title: str) -> ReferenceMetadata:
        """Placeholder used when the lookup cannot be made or fails."""
        return cls(title=title)
