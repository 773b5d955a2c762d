"""Alteration event sinks.

Every structural decision made during a reconciliation pass is reported
as a ``(message, kind)`` event.  The sink is injected into
``SchemaReconciler``; there is no process-wide suppression flag.

Usage:
    from db_reconcile.events import ConsoleEventSink, LoggingEventSink

    reconciler = SchemaReconciler(backend, events=ConsoleEventSink())
    reconciler = SchemaReconciler(backend, events=LoggingEventSink())
    reconciler = SchemaReconciler(backend, quiet=True)
"""

import logging
from enum import StrEnum
from typing import Protocol

from rich.console import Console


class AlterationKind(StrEnum):
    """Kinds of alteration events."""

    CREATED = "created"
    CHANGED = "changed"
    OBSOLETE = "obsolete"
    REPAIRED = "repaired"
    ERROR = "error"
    DELETED = "deleted"
    INFO = "info"


class EventSink(Protocol):
    """Receives human-readable alteration messages."""

    def __call__(self, message: str, kind: AlterationKind = AlterationKind.INFO) -> None:
        ...


class NullEventSink:
    """Discards every event."""

    def __call__(self, message: str, kind: AlterationKind = AlterationKind.INFO) -> None:
        return None


class RecordingEventSink:
    """Keeps every event in memory, in emission order.

    Example:
        >>> sink = RecordingEventSink()
        >>> sink("Table Member: created", AlterationKind.CREATED)
        >>> sink.messages(AlterationKind.CREATED)
        ['Table Member: created']
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, AlterationKind]] = []

    def __call__(self, message: str, kind: AlterationKind = AlterationKind.INFO) -> None:
        self.events.append((message, AlterationKind(kind)))

    def messages(self, kind: AlterationKind | None = None) -> list[str]:
        """Return recorded messages, optionally filtered by kind."""
        return [m for m, k in self.events if kind is None or k == kind]


class LoggingEventSink:
    """Forwards events to a stdlib logger.

    ``error`` events are logged at ERROR, destructive kinds (``obsolete``,
    ``deleted``) at WARNING, and everything else at INFO.
    """

    _LEVELS = {
        AlterationKind.ERROR: logging.ERROR,
        AlterationKind.OBSOLETE: logging.WARNING,
        AlterationKind.DELETED: logging.WARNING,
    }

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("db_reconcile.alterations")

    def __call__(self, message: str, kind: AlterationKind = AlterationKind.INFO) -> None:
        kind = AlterationKind(kind)
        self._logger.log(self._LEVELS.get(kind, logging.INFO), "[%s] %s", kind.value, message)


class ConsoleEventSink:
    """Prints events to a rich console, coloured by kind."""

    STYLES = {
        AlterationKind.CREATED: "green",
        AlterationKind.OBSOLETE: "red",
        AlterationKind.ERROR: "red",
        AlterationKind.DELETED: "red",
        AlterationKind.CHANGED: "blue",
        AlterationKind.REPAIRED: "blue",
    }

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def __call__(self, message: str, kind: AlterationKind = AlterationKind.INFO) -> None:
        style = self.STYLES.get(AlterationKind(kind))
        # markup=False: messages contain SQL with square brackets
        self._console.print(f"  - {message}", style=style, markup=False, highlight=False)
