# src/main.py - v3
"""CLI entry point: score, conflicts, hash, metadata, cache-stats commands.

Usage:
    medevidence score <counts.json>
    medevidence conflicts <guidelines.json>
    medevidence hash <query> [--source pubmed]
    medevidence metadata <url> [--title TITLE]
    medevidence cache-stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from medevidence.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="medevidence",
        description=f"medevidence v{__version__} - evidence cache, conflicts and sufficiency",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- score ---
    p_score = subparsers.add_parser(
        "score", help="Score evidence sufficiency from a counts JSON file",
    )
    p_score.add_argument("file", type=Path, help="JSON object of category counts")
    p_score.add_argument(
        "--warning", action="store_true",
        help="Also print the quality warning text, if any",
    )
    p_score.set_defaults(func=_cmd_score)

    # --- conflicts ---
    p_conflicts = subparsers.add_parser(
        "conflicts", help="Detect conflicts in a guidelines JSON file",
    )
    p_conflicts.add_argument("file", type=Path, help="JSON array of guideline records")
    p_conflicts.set_defaults(func=_cmd_conflicts)

    # --- hash ---
    p_hash = subparsers.add_parser(
        "hash", help="Print the cache hash (and key) for a query",
    )
    p_hash.add_argument("query", help="Query text")
    p_hash.add_argument(
        "--source", default=None,
        help="Also print the full cache key for this source",
    )
    p_hash.set_defaults(func=_cmd_hash)

    # --- metadata ---
    p_meta = subparsers.add_parser(
        "metadata", help="Look up CrossRef metadata for a DOI URL",
    )
    p_meta.add_argument("url", help="Reference URL containing a doi.org DOI")
    p_meta.add_argument(
        "--title", default="", help="Fallback title when lookup fails",
    )
    p_meta.set_defaults(func=_cmd_metadata)

    # --- cache-stats ---
    p_stats = subparsers.add_parser(
        "cache-stats", help="Probe the configured cache and print its availability",
    )
    p_stats.set_defaults(func=_cmd_cache_stats)

    return parser


async def _cmd_score(args: argparse.Namespace) -> int:
    """Score a counts file."""
    from medevidence.evidence.sufficiency_scorer import (
        format_sufficiency_warning,
        score_evidence_sufficiency,
    )

    data = _load_json(args.file)
    if not isinstance(data, dict):
        logger.error("Expected a JSON object of counts in %s", args.file)
        return 1

    score = score_evidence_sufficiency(data)
    print(score.model_dump_json(indent=2))
    if args.warning:
        warning = format_sufficiency_warning(score)
        if warning:
            print(warning)
    return 0


async def _cmd_conflicts(args: argparse.Namespace) -> int:
    """Detect conflicts in a guidelines file."""
    from pydantic import TypeAdapter, ValidationError

    from medevidence.evidence.conflict_detector import detect_conflicts
    from medevidence.evidence.models import GuidelineRecord

    data = _load_json(args.file)
    try:
        guidelines = TypeAdapter(list[GuidelineRecord]).validate_python(data)
    except ValidationError as e:
        logger.error("Invalid guidelines in %s: %s", args.file, e)
        return 1

    conflicts = detect_conflicts(guidelines)
    print(json.dumps([c.model_dump() for c in conflicts], indent=2))
    return 0


async def _cmd_hash(args: argparse.Namespace) -> int:
    """Print the query hash and optionally the cache key."""
    from medevidence.cache.evidence_cache import build_cache_key
    from medevidence.cache.query_hasher import hash_query

    print(hash_query(args.query))
    if args.source:
        print(build_cache_key(args.query, args.source))
    return 0


async def _cmd_metadata(args: argparse.Namespace) -> int:
    """Fetch reference metadata for a URL."""
    from medevidence.api.facade import create_crossref_client
    from medevidence.config.settings import Settings

    client = create_crossref_client(Settings())
    metadata = await client.fetch_metadata(args.url, args.title)
    print(metadata.model_dump_json(indent=2))
    return 0 if metadata.resolved else 2


async def _cmd_cache_stats(args: argparse.Namespace) -> int:
    """Connect to the configured cache and report availability.

    Hit/miss counters are process-local, so a fresh CLI process has none
    worth printing.
    """
    from medevidence.cache.cache_factory import create_evidence_cache
    from medevidence.config.settings import load_settings

    settings = load_settings()
    cache = await create_evidence_cache(settings)
    try:
        print(f"\nEvidence cache ({settings.cache_backend}):")
        print(f"  Configured: {settings.cache_configured}")
        print(f"  Available:  {cache.is_available()}")
    finally:
        await cache.close()
    return 0


def _load_json(path: Path) -> Any:
    """Read a JSON file; raises with a clear message on bad input."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from medevidence.config.settings import Settings
    from medevidence.logging.logger import configure_from_settings, setup_logging

    try:
        settings = Settings()
    except Exception as exc:
        # Commands that need settings will report the error themselves
        setup_logging(level="DEBUG" if verbose else "WARNING", log_format="text")
        logger.debug("Settings unavailable for logging setup: %s", exc)
        return
    configure_from_settings(settings, verbose=verbose)


if __name__ == "__main__":
    sys.exit(main())
