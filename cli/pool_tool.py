"""Pool Tool CLI — reward calculator and scenario replay.

Provides command-line access to the reward math and a way to run a
scripted sequence of registry operations against an in-memory ledger.

Usage:
    python3 -m cli.pool_tool rewards --shares 2500 2500 5000 --total 10000 --amount 1001
    python3 -m cli.pool_tool fee --amount 10000
    python3 -m cli.pool_tool staking --stake 1000000 --seconds 2592000
    python3 -m cli.pool_tool replay scenario.json

Scenario file format::

    {
      "owner": "admin",
      "reserve": 100000,
      "start_time": 1700000000,
      "operations": [
        {"op": "authorize", "caller": "admin", "minter": "minter"},
        {"op": "mint", "caller": "minter", "to": "alice", "pool_id": 1,
         "principal": 1000, "share_bps": 5000},
        {"op": "add_rewards", "caller": "minter", "id": 1, "amount": 50},
        {"op": "claim", "caller": "alice", "id": 1}
      ]
    }
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable

import structlog

from config.settings import settings
from core.auth import AuthorizationGate
from core.errors import RegistryError
from core.event_bus import EventBus
from core.logger import setup_logging
from distributor.rewards import (
    calculate_amount_after_fee,
    calculate_payment_amount,
    calculate_platform_fee,
    calculate_rewards,
    calculate_staking_reward,
)
from ledger.value_ledger import InMemoryValueLedger
from registry.position_registry import PositionRegistry

logger = structlog.get_logger("cli.pool_tool")


class ScenarioError(Exception):
    """Raised when a scenario file is malformed."""


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


# ── Calculator commands ──────────────────────────────────────────────


def cmd_rewards(args: argparse.Namespace) -> int:
    """Split a reward across share weights."""
    total = args.total if args.total is not None else sum(args.shares)
    rewards = calculate_rewards(args.shares, total, args.amount)
    _print_json({"shares": args.shares, "total_share": total, "rewards": rewards})
    return 0


def cmd_fee(args: argparse.Namespace) -> int:
    """Show platform fee, net and gross amounts."""
    _print_json(
        {
            "amount": args.amount,
            "fee_bps": args.bps,
            "fee": calculate_platform_fee(args.amount, args.bps),
            "after_fee": calculate_amount_after_fee(args.amount, args.bps),
            "payment_amount": calculate_payment_amount(args.amount, args.bps),
        }
    )
    return 0


def cmd_staking(args: argparse.Namespace) -> int:
    """Compute simple staking yield."""
    reward = calculate_staking_reward(args.stake, args.seconds, args.rate_bps)
    _print_json(
        {
            "stake": args.stake,
            "seconds": args.seconds,
            "annual_rate_bps": args.rate_bps,
            "reward": reward,
        }
    )
    return 0


# ── Replay ───────────────────────────────────────────────────────────


class _ScenarioClock:
    """Deterministic clock advanced by ``{"op": "advance", "seconds": N}``."""

    def __init__(self, start: int) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def _require(op: dict[str, Any], *keys: str) -> list[Any]:
    missing = [k for k in keys if k not in op]
    if missing:
        raise ScenarioError(f"operation {op.get('op')!r} missing fields: {', '.join(missing)}")
    return [op[k] for k in keys]


def run_scenario(scenario: dict[str, Any]) -> dict[str, Any]:
    """Execute a scenario and return results plus final pool/owner stats."""
    owner = scenario.get("owner", "admin")
    bus = EventBus()
    gate = AuthorizationGate(owner=owner, event_bus=bus)
    ledger = InMemoryValueLedger(reserve=scenario.get("reserve", 0))
    clock = _ScenarioClock(scenario.get("start_time", 0))
    registry = PositionRegistry(gate, ledger, event_bus=bus, clock=clock)

    handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
        "authorize": lambda op: gate.authorize_minter(*_require(op, "caller", "minter")),
        "revoke": lambda op: gate.revoke_minter(*_require(op, "caller", "minter")),
        "pause": lambda op: gate.pause(*_require(op, "caller")),
        "unpause": lambda op: gate.unpause(*_require(op, "caller")),
        "deposit": lambda op: ledger.deposit(*_require(op, "amount")),
        "mint": lambda op: registry.mint(
            *_require(op, "caller", "to", "pool_id", "principal", "share_bps")
        ),
        "add_rewards": lambda op: registry.add_rewards(*_require(op, "caller", "id", "amount")),
        "claim": lambda op: registry.claim_rewards(*_require(op, "caller", "id")),
        "split": lambda op: registry.split_position(*_require(op, "caller", "id", "amounts")),
        "merge": lambda op: registry.merge_positions(*_require(op, "caller", "ids")),
        "burn": lambda op: registry.burn(*_require(op, "caller", "id")),
        "transfer": lambda op: registry.transfer_position(*_require(op, "caller", "id", "to")),
    }

    results: list[dict[str, Any]] = []
    for index, op in enumerate(scenario.get("operations", [])):
        name = op.get("op")
        if name == "advance":
            clock.now += _require(op, "seconds")[0]
            continue
        handler = handlers.get(name)
        if handler is None:
            raise ScenarioError(f"unknown operation {name!r} at index {index}")
        results.append({"index": index, "op": name, "result": handler(op)})

    pools = {
        str(pool_id): registry.get_pool_stats(pool_id).model_dump()
        for pool_id in sorted(registry.get_pool_ids())
    }
    owners = {
        name: registry.get_owner_stats(name).model_dump()
        for name in sorted(registry.get_owners())
    }
    return {
        "results": results,
        "total_positions": registry.get_total_positions(),
        "pools": pools,
        "owners": owners,
        "ledger": ledger.snapshot(),
        "events": bus.stats["published"],
    }


def cmd_replay(args: argparse.Namespace) -> int:
    """Run a JSON scenario against a fresh registry."""
    path = Path(args.scenario)
    try:
        scenario = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"ERROR: cannot read scenario {path}: {exc}", file=sys.stderr)
        return 1

    try:
        report = run_scenario(scenario)
    except (RegistryError, ScenarioError) as exc:
        logger.error("pool_tool.replay_failed", scenario=str(path), error=type(exc).__name__)
        print(f"ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    _print_json(report)
    return 0


# ── Parser ───────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pool_tool",
        description="Revenue-pool reward calculator and registry scenario replay",
    )
    subparsers = parser.add_subparsers(dest="command")

    # rewards
    sub_rewards = subparsers.add_parser("rewards", help="Distribute a reward by shares")
    sub_rewards.add_argument("--shares", type=int, nargs="+", required=True)
    sub_rewards.add_argument(
        "--total",
        type=int,
        default=None,
        help="Total share (default: sum of --shares)",
    )
    sub_rewards.add_argument("--amount", type=int, required=True)

    # fee
    sub_fee = subparsers.add_parser("fee", help="Platform fee breakdown")
    sub_fee.add_argument("--amount", type=int, required=True)
    sub_fee.add_argument(
        "--bps",
        type=int,
        default=settings.PLATFORM_FEE_BPS,
        help=f"Fee in basis points (default: {settings.PLATFORM_FEE_BPS})",
    )

    # staking
    sub_staking = subparsers.add_parser("staking", help="Staking reward for a duration")
    sub_staking.add_argument("--stake", type=int, required=True)
    sub_staking.add_argument("--seconds", type=int, required=True)
    sub_staking.add_argument(
        "--rate-bps",
        type=int,
        default=settings.STAKING_ANNUAL_RATE_BPS,
        help=f"Annual rate in basis points (default: {settings.STAKING_ANNUAL_RATE_BPS})",
    )

    # replay
    sub_replay = subparsers.add_parser("replay", help="Run a JSON scenario")
    sub_replay.add_argument("scenario", help="Path to scenario JSON file")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    cmd_map = {
        "rewards": cmd_rewards,
        "fee": cmd_fee,
        "staking": cmd_staking,
        "replay": cmd_replay,
    }

    handler = cmd_map.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except RegistryError as exc:
        print(f"ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
