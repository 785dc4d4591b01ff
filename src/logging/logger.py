# src/logging/logger.py - v2
"""Logger setup for the medevidence namespace.

JSON lines in deployed services, a compact text layout for the CLI. Both
formatters stamp each record with the request context (request id, query
hash, pipeline stage and source) so concurrent requests can be told apart.
Raw query text is never part of the context; only its hash is.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from medevidence.logging.context import get_context
from medevidence.logging.handlers import create_console_handler, create_rotating_handler

if TYPE_CHECKING:
    from medevidence.config.settings import Settings

ROOT_LOGGER = "medevidence"

# Third-party loggers kept at WARNING whatever our level is
NOISY_LOGGERS = ("redis", "urllib3", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Structured payloads passed as ``extra={"data": {...}}`` land under
    ``data``; the request context lands under ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``time [LEVEL] logger [request] (stage:source) - message``"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.request_id:
            parts.append(f"[{ctx.request_id}]")
        if ctx.stage:
            parts.append(f"({ctx.stage}:{ctx.source})" if ctx.source else f"({ctx.stage})")
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Named logger under the medevidence namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """(Re)configure the medevidence logger; repeated calls replace handlers.

    Args:
        level: Log level name.
        log_format: "json" or "text".
        log_file: Optional rotated log file in addition to stderr.
        rotation: Max file size before rotation.
        retention: Number of rotated files to keep.
    """
    try:
        formatter = _FORMATTERS[log_format]()
    except KeyError:
        raise ValueError(f"Unknown log format: {log_format!r}") from None

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(create_console_handler(formatter))
    if log_file:
        root.addHandler(
            create_rotating_handler(
                log_file, formatter, rotation=rotation, retention=retention
            )
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_settings(settings: Settings, verbose: bool = False) -> None:
    """Apply the LOG_* settings; ``verbose`` forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
