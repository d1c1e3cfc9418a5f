"""Shared fixtures for registry tests."""

from __future__ import annotations

from typing import Any

import pytest

from core.auth import AuthorizationGate
from core.event_bus import EventBus
from ledger.value_ledger import InMemoryValueLedger
from registry.position_registry import PositionRegistry

ADMIN = "admin"
MINTER = "minter"
ALICE = "alice"
BOB = "bob"

START_TIME = 1_700_000_000


class FakeClock:
    """Manually advanced unix-seconds clock."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def gate(bus: EventBus) -> AuthorizationGate:
    return AuthorizationGate(owner=ADMIN, minters=[MINTER], event_bus=bus)


@pytest.fixture
def ledger() -> InMemoryValueLedger:
    return InMemoryValueLedger(reserve=1_000_000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(
    gate: AuthorizationGate,
    ledger: InMemoryValueLedger,
    bus: EventBus,
    clock: FakeClock,
) -> PositionRegistry:
    return PositionRegistry(gate, ledger, event_bus=bus, clock=clock)


def snapshot(registry: PositionRegistry, bus: EventBus) -> dict[str, Any]:
    """Everything observable about the registry, index order included."""
    positions = {}
    for pool_id in registry.get_pool_ids():
        for pid in registry.get_positions_by_pool(pool_id):
            positions[pid] = (registry.get_position(pid).model_dump(), registry.owner_of(pid))
    return {
        "positions": positions,
        "by_pool": {p: registry.get_positions_by_pool(p) for p in registry.get_pool_ids()},
        "by_owner": {o: registry.get_positions_by_owner(o) for o in registry.get_owners()},
        "next_id": registry.next_position_id,
        "total": registry.get_total_positions(),
        "events": len(bus.history()),
    }
