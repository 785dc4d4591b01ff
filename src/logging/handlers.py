# src/logging/handlers.py - v2
"""Handler builders: stderr console output and size-rotated log files."""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*(KB|MB|GB)$", re.IGNORECASE)
_SIZE_MULTIPLIERS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse '10MB'-style sizes into bytes (KB, MB, GB; any case)."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_MULTIPLIERS[match.group(2).upper()]


def create_console_handler(formatter: logging.Formatter) -> logging.Handler:
    """Handler writing to stderr, leaving stdout to CLI command output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    return handler


def create_rotating_handler(
    log_file: str | Path,
    formatter: logging.Formatter | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a size-rotated file handler.

    Args:
        log_file: Path to log file. Parent directories are created.
        formatter: Formatter to attach, if any.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler
