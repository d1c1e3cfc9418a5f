"""Journal — all-or-nothing scopes for registry entry points.

Each entry point runs inside ``journal.atomic(...)``.  Mutations register
an undo callback and events are buffered instead of published.  When a
scope exits normally:

- a nested scope (a re-entrant call made from inside a ledger transfer)
  hands its undo log and events to the enclosing scope;
- the outermost scope publishes its buffered events in order.

When a scope raises, its undo callbacks run newest-first and its events
are dropped, leaving state exactly as it was when the scope opened.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from core.event_bus import EventBus, RegistryEvent

Undo = Callable[[], None]


@dataclass
class _Frame:
    operation: str
    undo_log: list[Undo] = field(default_factory=list)
    events: list[tuple[RegistryEvent, dict[str, Any]]] = field(default_factory=list)

    def rollback(self) -> None:
        for undo in reversed(self.undo_log):
            undo()
        self.undo_log.clear()
        self.events.clear()


class Journal:
    """Stack of open scopes; empty between top-level operations."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus
        self._frames: list[_Frame] = []

    @property
    def depth(self) -> int:
        """Number of open scopes (0 outside any operation, >1 when re-entered)."""
        return len(self._frames)

    @contextmanager
    def atomic(self, operation: str) -> Iterator[None]:
        frame = _Frame(operation)
        self._frames.append(frame)
        try:
            yield
        except BaseException:
            self._frames.pop()
            frame.rollback()
            raise
        self._frames.pop()

        if self._frames:
            parent = self._frames[-1]
            parent.undo_log.extend(frame.undo_log)
            parent.events.extend(frame.events)
            return

        if self._event_bus is not None:
            for topic, payload in frame.events:
                self._event_bus.publish(topic, payload)

    def record(self, undo: Undo) -> None:
        """Register the inverse of a mutation that has just been applied."""
        if not self._frames:
            raise RuntimeError("registry mutation outside an atomic scope")
        self._frames[-1].undo_log.append(undo)

    def emit(self, topic: RegistryEvent, payload: dict[str, Any]) -> None:
        """Buffer an event until the outermost scope commits."""
        if not self._frames:
            raise RuntimeError("registry event outside an atomic scope")
        self._frames[-1].events.append((topic, payload))
