"""Structured progress events emitted during an import run.

The import engine does not print or log directly.  It emits ``ImportEvent``
objects to an ``ImportEventSink``; the default sink forwards them to the
standard ``logging`` module, and callers can plug in their own (the CLI
renders them with rich, tests collect them in memory).

Usage:
    from db_importer.events import CollectingEventSink, EventKind

    sink = CollectingEventSink()
    importer = DatabaseImporter(database, events=sink)
    await importer.import_database(snapshot)
    [e.table for e in sink.of_kind(EventKind.TABLE_COMPLETED)]
"""

import logging
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Kinds of events an import run emits."""

    RUN_STARTED = "run_started"
    STRATEGY_DOWNGRADED = "strategy_downgraded"
    TABLE_STARTED = "table_started"
    TABLE_CLEARED = "table_cleared"
    TABLE_SKIPPED = "table_skipped"
    TABLE_COMPLETED = "table_completed"
    TABLE_FAILED = "table_failed"
    ROW_CONFLICT = "row_conflict"
    ROW_SKIPPED = "row_skipped"
    ROW_WARNING = "row_warning"
    CYCLE_DETECTED = "cycle_detected"
    MODULE_CLONED = "module_cloned"
    FK_CHECKS_TOGGLE_FAILED = "fk_checks_toggle_failed"
    RUN_COMMITTED = "run_committed"
    RUN_ROLLED_BACK = "run_rolled_back"
    POST_COMMIT_FAILED = "post_commit_failed"
    DOCUMENTATION_FALLBACK = "documentation_fallback"
    SUMMARY = "summary"


class ImportEvent(BaseModel):
    """A single progress event.

    Attributes:
        kind: What happened.
        table: Table the event refers to, if any.
        message: Operator-facing one-line description.
        data: Extra structured details (row id, counts, constraint name, ...).
    """

    kind: EventKind
    table: str | None = None
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class ImportEventSink(Protocol):
    """Destination for import events."""

    def emit(self, event: ImportEvent) -> None:
        """Receive one event.  Must not raise."""
        ...


_LEVELS: dict[EventKind, int] = {
    EventKind.TABLE_FAILED: logging.ERROR,
    EventKind.RUN_ROLLED_BACK: logging.ERROR,
    EventKind.ROW_WARNING: logging.WARNING,
    EventKind.ROW_SKIPPED: logging.WARNING,
    EventKind.CYCLE_DETECTED: logging.WARNING,
    EventKind.FK_CHECKS_TOGGLE_FAILED: logging.WARNING,
    EventKind.POST_COMMIT_FAILED: logging.WARNING,
    EventKind.STRATEGY_DOWNGRADED: logging.WARNING,
    EventKind.DOCUMENTATION_FALLBACK: logging.WARNING,
    EventKind.ROW_CONFLICT: logging.DEBUG,
}


class LoggingEventSink:
    """Forward events to a ``logging.Logger``.

    Errors and warnings keep their level; routine progress is logged at
    ``INFO`` and per-row conflicts at ``DEBUG``.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: ImportEvent) -> None:
        level = _LEVELS.get(event.kind, logging.INFO)
        prefix = f"[{event.table}] " if event.table else ""
        self._log.log(level, f"{prefix}{event.message}", extra={"import_event": event.kind.value})


class CollectingEventSink:
    """Keep every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[ImportEvent] = []

    def emit(self, event: ImportEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> list[ImportEvent]:
        """Return the collected events of one kind."""
        return [e for e in self.events if e.kind is kind]


class SampledRowEvents:
    """Limit per-row diagnostics to the first few per table.

    Row conflicts can number in the thousands on a re-run; only the first
    ``limit`` per (table, kind) are emitted, the rest are counted.
    """

    def __init__(self, sink: ImportEventSink, limit: int = 3) -> None:
        self._sink = sink
        self._limit = limit
        self._seen: dict[tuple[str | None, EventKind], int] = {}

    def emit(self, event: ImportEvent) -> None:
        key = (event.table, event.kind)
        seen = self._seen.get(key, 0)
        self._seen[key] = seen + 1
        if seen < self._limit:
            self._sink.emit(event)

    def suppressed(self, table: str) -> int:
        """Number of row events for *table* that were counted but not emitted."""
        return sum(
            max(0, count - self._limit)
            for (t, _), count in self._seen.items()
            if t == table
        )
