"""EventBus — synchronous fan-out of registry events with trace_id and history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

import structlog

from config.settings import settings

logger = structlog.get_logger("core.event_bus")

WILDCARD = "*"


class RegistryEvent(str, Enum):
    """Observable event topics emitted for external indexers."""

    POSITION_MINTED = "PositionMinted"
    REWARDS_ADDED = "RewardsAdded"
    REWARDS_CLAIMED = "RewardsClaimed"
    POSITION_SPLIT = "PositionSplit"
    POSITIONS_MERGED = "PositionsMerged"
    POSITION_BURNED = "PositionBurned"
    POSITION_TRANSFERRED = "PositionTransferred"
    MINTER_AUTHORIZED = "MinterAuthorized"
    MINTER_REVOKED = "MinterRevoked"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable event flowing through the EventBus."""

    topic: str
    payload: dict[str, Any]
    trace_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Event], None]


class EventBus:
    """Fan-out pub/sub event bus with synchronous delivery.

    Handlers run inline during ``publish()`` in subscription order.  A
    handler that raises is logged and skipped; it never affects delivery
    to other handlers or the publisher.  The registry only publishes
    after an operation has committed, so observers always see final state.

    Usage::

        bus = EventBus()
        bus.subscribe("PositionMinted", lambda e: print(e.payload))
        bus.publish("PositionMinted", {"id": 1})
    """

    def __init__(self, history_maxlen: int | None = None) -> None:
        maxlen = settings.EVENT_HISTORY_MAXLEN if history_maxlen is None else history_maxlen
        # topic -> handlers
        self._subscribers: dict[str, list[Handler]] = {}
        self._history: deque[Event] = deque(maxlen=maxlen)
        self._stats_published: int = 0
        self._stats_failed: int = 0

    # ── Publish ──────────────────────────────────────────────────

    def publish(
        self,
        topic: str | RegistryEvent,
        payload: dict[str, Any],
        trace_id: str | None = None,
    ) -> Event:
        """Publish an event to all subscribers of *topic* and of ``"*"``.

        Parameters
        ----------
        topic:
            Event topic (a :class:`RegistryEvent` or any string).
        payload:
            Arbitrary dict payload.
        trace_id:
            Optional correlation id; auto-generated UUID4 if omitted.
        """
        if isinstance(topic, RegistryEvent):
            topic = topic.value
        if trace_id is None:
            trace_id = str(uuid4())

        event = Event(topic=topic, payload=payload, trace_id=trace_id)
        self._history.append(event)
        self._stats_published += 1

        handlers = [*self._subscribers.get(topic, []), *self._subscribers.get(WILDCARD, [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._stats_failed += 1
                logger.exception(
                    "event_bus.handler_failed",
                    topic=topic,
                    trace_id=trace_id,
                )
        return event

    # ── Subscribe ────────────────────────────────────────────────

    def subscribe(self, topic: str | RegistryEvent, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *topic*; returns a callable that unsubscribes."""
        if isinstance(topic, RegistryEvent):
            topic = topic.value
        self._subscribers.setdefault(topic, []).append(handler)

        def _unsubscribe() -> None:
            subs = self._subscribers.get(topic, [])
            if handler in subs:
                subs.remove(handler)
            if not subs:
                self._subscribers.pop(topic, None)

        return _unsubscribe

    # ── Introspection ────────────────────────────────────────────

    def history(self, topic: str | RegistryEvent | None = None) -> list[Event]:
        """Return retained events, optionally filtered by topic."""
        if topic is None:
            return list(self._history)
        if isinstance(topic, RegistryEvent):
            topic = topic.value
        return [e for e in self._history if e.topic == topic]

    @property
    def topics(self) -> list[str]:
        """Return list of topics with active subscribers."""
        return list(self._subscribers.keys())

    def subscriber_count(self, topic: str) -> int:
        """Return number of active subscribers for *topic*."""
        return len(self._subscribers.get(topic, []))

    @property
    def stats(self) -> dict[str, int]:
        """Return basic stats: published and failed-handler counts."""
        return {
            "published": self._stats_published,
            "failed": self._stats_failed,
        }
