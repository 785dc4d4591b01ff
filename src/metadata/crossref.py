# src/metadata/crossref.py - v1
"""CrossRef metadata lookup for cited DOIs.

Given a reference URL, extracts the DOI, queries the CrossRef works API once
and maps the response onto ReferenceMetadata. Lookups are best-effort: any
failure yields fallback metadata built from the caller's title.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import urllib.parse
import urllib.request
from typing import Any, Mapping

from medevidence.metadata.journals import match_leading_journal
from medevidence.metadata.models import ReferenceMetadata
from medevidence.version import __version__

logger = logging.getLogger(__name__)

_DOI_RE = re.compile(r"doi\.org/(10\.\d{4,9}/[^\s?#]+)", re.IGNORECASE)

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

MAX_AUTHORS = 3


def extract_doi(url: str) -> str | None:
    """Extract a DOI from a doi.org URL, or None."""
    match = _DOI_RE.search(url or "")
    return match.group(1) if match else None


def parse_crossref_work(work: Mapping[str, Any], fallback_title: str) -> ReferenceMetadata:
    """Map a CrossRef ``message`` object onto ReferenceMetadata."""
    titles = work.get("title") or []
    title = titles[0] if titles else fallback_title

    journals = work.get("container-title") or []
    journal = journals[0] if journals else ""

    published_date, year = _format_date(work)

    abbrev = match_leading_journal(journal)
    if abbrev is not None:
        source, is_leading = abbrev, True
    else:
        source, is_leading = " ".join(journal.split()[:3]), False

    return ReferenceMetadata(
        title=title,
        authors=_format_authors(work.get("author") or []),
        journal=journal,
        published_date=published_date,
        year=year,
        source=source,
        is_leading_journal=is_leading,
        resolved=True,
    )


def _format_authors(authors: list[Mapping[str, Any]]) -> str:
    names: list[str] = []
    for author in authors[:MAX_AUTHORS]:
        given, family = author.get("given"), author.get("family")
        if given and family:
            names.append(f"{given} {family}")
        else:
            name = author.get("name") or family or ""
            if name:
                names.append(name)
    if len(authors) > MAX_AUTHORS:
        names.append("et al.")
    return ", ".join(names)


def _format_date(work: Mapping[str, Any]) -> tuple[str, str]:
    """Return (published_date, year) from the first date-parts present."""
    parts: list[Any] | None = None
    for field in ("published", "published-print", "published-online"):
        date_parts = (work.get(field) or {}).get("date-parts") or []
        if date_parts and date_parts[0] and date_parts[0][0] is not None:
            parts = date_parts[0]
            break
    if not parts:
        return "", ""

    year = str(parts[0])
    month = int(parts[1]) if len(parts) >= 2 and parts[1] else None
    if month is None or not 1 <= month <= 12:
        return year, year
    if len(parts) >= 3 and parts[2]:
        return f"{_MONTHS[month - 1]} {int(parts[2])}, {year}", year
    return f"{_MONTHS[month - 1]} {year}", year


class CrossrefClient:
    """Async CrossRef works client with a per-instance result cache.

    Usage:
        client = CrossrefClient()
        meta = await client.fetch_metadata("https://doi.org/10.1056/NEJMoa2034577", "Fallback")
    """

    def __init__(
        self,
        base_url: str = "https://api.crossref.org/works/",
        timeout_s: float = 10.0,
        mailto: str = "",
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._timeout_s = timeout_s
        self._mailto = mailto
        self._cache: dict[str, ReferenceMetadata] = {}

    async def fetch_metadata(self, url: str, fallback_title: str) -> ReferenceMetadata:
        """Resolve metadata for a reference URL. Never raises."""
        cached = self._cache.get(url)
        if cached is not None:
            return cached

        doi = extract_doi(url)
        if doi is None:
            logger.debug("No DOI in %s; skipping metadata lookup", url)
            return ReferenceMetadata.fallback(fallback_title)

        try:
            work = await asyncio.wait_for(
                asyncio.to_thread(self._get_work, doi), timeout=self._timeout_s
            )
            metadata = parse_crossref_work(work, fallback_title)
        except Exception as e:
            logger.warning("Failed to fetch metadata for DOI %s: %s", doi, e)
            return ReferenceMetadata.fallback(fallback_title)

        self._cache[url] = metadata
        return metadata

    def clear_cache(self) -> None:
        self._cache.clear()

    def _get_work(self, doi: str) -> Mapping[str, Any]:
        """Blocking GET /works/{doi}; returns the ``message`` object."""
        request = urllib.request.Request(
            f"{self._base_url}{urllib.parse.quote(doi, safe='')}",
            headers={"User-Agent": self._user_agent(), "Accept": "application/json"},
        )
        with urllib.request.urlopen(request, timeout=self._timeout_s) as resp:  # noqa: S310
            data = json.loads(resp.read().decode("utf-8"))
        work = data.get("message")
        if not work:
            raise ValueError("CrossRef response has no message")
        return work

    def _user_agent(self) -> str:
        agent = f"medevidence/{__version__}"
        if self._mailto:
            agent += f" (mailto:{self._mailto})"
        return agent
