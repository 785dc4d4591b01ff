# src/logging/context.py - v1
"""Contextual logging support: attach request_id, query hash, source and
pipeline stage to log records.

Context variables are task-local under asyncio, so concurrent requests and
the per-source fan-out inside one request each see their own values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_query_hash: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "query_hash", default=None
)
_source: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    query_hash: str | None = None
    source: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        query_hash=_query_hash.get(),
        source=_source.get(),
        stage=_stage.get(),
    )


def set_request_context(request_id: str, query_hash: str | None = None) -> None:
    """Set request-level context (called once per pipeline run)."""
    _request_id.set(request_id)
    _query_hash.set(query_hash)


def set_stage_context(stage: str, source: str | None = None) -> None:
    """Set stage-level context (called per pipeline stage or per source)."""
    _stage.set(stage)
    _source.set(source)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _query_hash.set(None)
    _source.set(None)
    _stage.set(None)
