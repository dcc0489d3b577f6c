"""Progress reporting for long-running passes.

Sinks are fire-and-forget: a sink that raises is logged and otherwise
ignored, so reporting can never break the pass it observes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from reelarr.models.release import utcnow

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receives start/update/complete/error events from a pass."""

    def start(self, kind: str, total: int) -> None: ...

    def update(self, step: str, processed: int, total: int | None = None, errors: int = 0) -> None: ...

    def complete(self) -> None: ...

    def error(self, message: str) -> None: ...


@dataclass
class ProgressSnapshot:
    """Point-in-time view of a pass."""

    kind: str
    is_running: bool
    current_step: str
    percent: int
    total: int
    processed: int
    errors: int
    started_at: datetime
    ended_at: datetime | None = None
    error: str | None = None


class SyncProgress:
    """In-memory tracker for the most recent pass."""

    def __init__(self) -> None:
        self._current: ProgressSnapshot | None = None

    def start(self, kind: str, total: int) -> None:
        self._current = ProgressSnapshot(
            kind=kind,
            is_running=True,
            current_step="Starting...",
            percent=0,
            total=total,
            processed=0,
            errors=0,
            started_at=utcnow(),
        )

    def update(self, step: str, processed: int, total: int | None = None, errors: int = 0) -> None:
        current = self._current
        if current is None:
            return
        current.current_step = step
        current.processed = processed
        current.errors = errors
        if total is not None:
            current.total = total
        if current.total > 0:
            current.percent = round(processed / current.total * 100)

    def complete(self) -> None:
        current = self._current
        if current is None:
            return
        current.is_running = False
        current.percent = 100
        current.ended_at = utcnow()

    def error(self, message: str) -> None:
        current = self._current
        if current is None:
            return
        current.is_running = False
        current.error = message
        current.ended_at = utcnow()

    def get(self) -> ProgressSnapshot | None:
        """Return the current snapshot, if a pass has started."""
        return self._current

    def clear(self) -> None:
        self._current = None


class LoggingProgressSink:
    """Reports progress through the module logger."""

    def start(self, kind: str, total: int) -> None:
        logger.info("Starting %s pass over %d items", kind, total)

    def update(self, step: str, processed: int, total: int | None = None, errors: int = 0) -> None:
        logger.debug("%s (%d/%s, %d errors)", step, processed, total if total is not None else "?", errors)

    def complete(self) -> None:
        logger.info("Pass complete")

    def error(self, message: str) -> None:
        logger.error("Pass failed: %s", message)


class SafeProgress:
    """Wraps a sink so its failures are logged instead of raised."""

    def __init__(self, sink: ProgressSink | None) -> None:
        self._sink = sink

    def _emit(self, event: str, *args: object) -> None:
        if self._sink is None:
            return
        try:
            getattr(self._sink, event)(*args)
        except Exception:
            logger.exception("Progress sink failed on %s", event)

    def start(self, kind: str, total: int) -> None:
        self._emit("start", kind, total)

    def update(self, step: str, processed: int, total: int | None = None, errors: int = 0) -> None:
        self._emit("update", step, processed, total, errors)

    def complete(self) -> None:
        self._emit("complete")

    def error(self, message: str) -> None:
        self._emit("error", message)
