"""PositionRegistry — owns every position and the owner/pool indices.

Entry points take the acting ``caller`` explicitly.  Each one runs inside a
journal scope (see :mod:`registry.journal`): it either commits all of its
effects and then publishes its events, or raises and leaves positions,
indices, counters and event history exactly as they were.

The value ledger is the only external call.  ``claim_rewards`` zeroes the
position's rewards *before* calling ``ledger.transfer`` so that a transfer
which re-enters the registry sees the already-updated state.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Sequence

import structlog

from config.settings import settings
from core.arith import MAX_UINT256, require_uint, saturating_sum
from core.auth import AuthorizationGate
from core.errors import (
    IncompatiblePositionsError,
    InsufficientPositionsError,
    InvalidAmountError,
    InvalidSplitError,
    LengthMismatchError,
    NoRewardsToClaimError,
    NotOwnerError,
    PositionNotFoundError,
    RegistryError,
    ValidationError,
)
from core.event_bus import EventBus, RegistryEvent
from distributor.rewards import allocate_proportionally
from ledger.value_ledger import ValueLedger
from models.position import Position
from models.stats import OwnerStats, PoolStats
from registry.indices import PositionIndex
from registry.journal import Journal

logger = structlog.get_logger("registry.position_registry")


def _require_address(address: str, name: str = "address") -> str:
    if not isinstance(address, str) or not address:
        raise ValidationError(f"{name} must be a non-empty string", field=name)
    return address


def _require_page_arg(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer", field=name)
    return value


class PositionRegistry:
    """Registry of pool positions with split/merge and reward claiming.

    Parameters
    ----------
    gate:
        Authorization gate deciding who may mint and add rewards, and
        whether the registry is paused.
    ledger:
        Value ledger that pays out claimed rewards.
    event_bus:
        Optional bus receiving events after each committed operation.
    clock:
        Returns the current unix time in seconds; defaults to ``time.time``.

    Usage::

        gate = AuthorizationGate(owner="admin", minters=["minter"])
        registry = PositionRegistry(gate, InMemoryValueLedger(reserve=10_000))
        pid = registry.mint("minter", "alice", pool_id=1, principal=1000, share_bps=5000)
        registry.add_rewards("minter", pid, 50)
        registry.claim_rewards("alice", pid)   # -> 50
    """

    def __init__(
        self,
        gate: AuthorizationGate,
        ledger: ValueLedger,
        event_bus: EventBus | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._gate = gate
        self._ledger = ledger
        self._event_bus = event_bus
        self._clock = clock or (lambda: int(time.time()))
        self._journal = Journal(event_bus)

        self._positions: dict[int, Position] = {}
        self._owners: dict[int, str] = {}
        self._by_owner: PositionIndex[str] = PositionIndex()
        self._by_pool: PositionIndex[int] = PositionIndex()
        self._next_id: int = 1

    # ── Properties ───────────────────────────────────────────────

    @property
    def gate(self) -> AuthorizationGate:
        return self._gate

    @property
    def next_position_id(self) -> int:
        """Id the next created position will receive."""
        return self._next_id

    # ── Minting / rewards ────────────────────────────────────────

    def mint(
        self,
        caller: str,
        to: str,
        pool_id: int,
        principal: int,
        share_bps: int,
    ) -> int:
        """Create a position for *to*; returns the new position id."""
        with self._operation("mint", caller=caller, to=to, pool_id=pool_id):
            self._gate.require_not_paused()
            self._gate.require_authorized(caller)
            _require_address(to, "to")
            require_uint(pool_id, "pool_id")
            require_uint(principal, "principal")
            require_uint(share_bps, "share_bps")
            if principal == 0:
                raise InvalidAmountError("principal must be greater than zero", field="principal")

            position = self._create(
                owner=to,
                pool_id=pool_id,
                principal=principal,
                share_bps=share_bps,
                rewards=0,
                created_at=self._clock(),
            )
            logger.info(
                "registry.minted",
                position_id=position.id,
                owner=to,
                pool_id=pool_id,
                principal=principal,
                share_bps=share_bps,
            )
            return position.id

    def batch_mint(
        self,
        caller: str,
        recipients: Sequence[str],
        pool_id: int,
        principals: Sequence[int],
        shares: Sequence[int],
    ) -> list[int]:
        """Mint one position per recipient; all succeed or none do."""
        with self._operation("batch_mint", caller=caller, pool_id=pool_id):
            self._gate.require_not_paused()
            self._gate.require_authorized(caller)
            if not recipients or not (len(recipients) == len(principals) == len(shares)):
                raise LengthMismatchError(
                    "recipients, principals and shares must be non-empty and equally long",
                    recipients=len(recipients),
                    principals=len(principals),
                    shares=len(shares),
                )
            return [
                self.mint(caller, to, pool_id, principal, share)
                for to, principal, share in zip(recipients, principals, shares)
            ]

    def add_rewards(self, caller: str, position_id: int, amount: int) -> None:
        """Credit *amount* to a position's accrued rewards.

        There is no budget check: any authorized minter can credit any
        amount that keeps the balance within uint256.
        """
        with self._operation("add_rewards", caller=caller, position_id=position_id):
            self._gate.require_not_paused()
            self._gate.require_authorized(caller)
            require_uint(amount, "amount")
            if amount == 0:
                raise InvalidAmountError("reward amount must be greater than zero", field="amount")
            position = self._get(position_id)

            new_total = position.accumulated_rewards + amount
            if new_total > MAX_UINT256:
                raise InvalidAmountError(
                    "accumulated rewards would exceed uint256",
                    position_id=position_id,
                )
            self._set_rewards(position, new_total)
            self._journal.emit(
                RegistryEvent.REWARDS_ADDED,
                {"id": position_id, "amount": amount},
            )
            logger.info(
                "registry.rewards_added",
                position_id=position_id,
                amount=amount,
                accumulated=new_total,
            )

    def batch_add_rewards(
        self,
        caller: str,
        position_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        with self._operation("batch_add_rewards", caller=caller):
            self._gate.require_not_paused()
            self._gate.require_authorized(caller)
            if not position_ids or len(position_ids) != len(amounts):
                raise LengthMismatchError(
                    "position_ids and amounts must be non-empty and equally long",
                    position_ids=len(position_ids),
                    amounts=len(amounts),
                )
            for position_id, amount in zip(position_ids, amounts):
                self.add_rewards(caller, position_id, amount)

    def claim_rewards(self, caller: str, position_id: int) -> int:
        """Pay out a position's accrued rewards to its owner.

        Rewards are zeroed before the ledger transfer.  If the transfer
        fails, the claim and anything done re-entrantly during it is
        rolled back and the ledger error propagates.
        """
        with self._operation("claim_rewards", caller=caller, position_id=position_id):
            position = self._get(position_id)
            owner = self._require_owner(caller, position_id)
            amount = position.accumulated_rewards
            if amount == 0:
                raise NoRewardsToClaimError(
                    f"position {position_id} has no rewards to claim",
                    position_id=position_id,
                )

            self._set_rewards(position, 0)
            try:
                self._ledger.transfer(owner, amount)
            except Exception:
                logger.error(
                    "registry.claim_rolled_back",
                    position_id=position_id,
                    owner=owner,
                    amount=amount,
                )
                raise

            self._journal.emit(
                RegistryEvent.REWARDS_CLAIMED,
                {"id": position_id, "owner": owner, "amount": amount},
            )
            logger.info("registry.claimed", position_id=position_id, owner=owner, amount=amount)
            return amount

    # ── Split / merge / burn / transfer ──────────────────────────

    def split_position(
        self,
        caller: str,
        position_id: int,
        amounts: Sequence[int],
    ) -> list[int]:
        """Replace a position with one child per entry of *amounts*.

        ``sum(amounts)`` must equal the parent's principal.  Share and
        rewards are divided proportionally; the last child takes the
        rounding remainder so all three totals are conserved exactly.
        Children inherit the parent's pool, owner and ``created_at``.
        """
        with self._operation("split_position", caller=caller, position_id=position_id):
            self._gate.require_not_paused()
            parent = self._get(position_id)
            owner = self._require_owner(caller, position_id)

            amounts = list(amounts)
            if not amounts:
                raise InvalidSplitError("split requires at least one amount", position_id=position_id)
            for amount in amounts:
                require_uint(amount, "amount")
                if amount == 0:
                    raise InvalidAmountError("split amounts must be greater than zero", field="amount")
            if sum(amounts) != parent.principal:
                raise InvalidSplitError(
                    "split amounts must sum to the position principal",
                    position_id=position_id,
                    expected=parent.principal,
                    actual=sum(amounts),
                )

            shares = allocate_proportionally(parent.share_bps, amounts, parent.principal)
            rewards = allocate_proportionally(
                parent.accumulated_rewards, amounts, parent.principal
            )

            new_ids = [
                self._create(
                    owner=owner,
                    pool_id=parent.pool_id,
                    principal=amount,
                    share_bps=share,
                    rewards=reward,
                    created_at=parent.created_at,
                    parent_id=parent.id,
                    is_derived=True,
                ).id
                for amount, share, reward in zip(amounts, shares, rewards)
            ]
            self._destroy(position_id)

            self._journal.emit(
                RegistryEvent.POSITION_SPLIT,
                {"id": position_id, "new_ids": list(new_ids)},
            )
            logger.info(
                "registry.split",
                position_id=position_id,
                new_ids=new_ids,
                shares=shares,
            )
            return new_ids

    def merge_positions(self, caller: str, position_ids: Sequence[int]) -> int:
        """Combine positions of one pool and one owner into a single position.

        Principal, share and rewards are summed with saturation at
        uint256 max.  The result keeps the earliest ``created_at``.
        """
        ids = list(position_ids)
        with self._operation("merge_positions", caller=caller, position_ids=ids):
            self._gate.require_not_paused()
            if len(ids) < 2:
                raise InsufficientPositionsError(
                    "merge requires at least two positions",
                    count=len(ids),
                )
            if len(set(ids)) != len(ids):
                raise IncompatiblePositionsError("merge ids must be distinct", position_ids=ids)

            positions = [self._get(pid) for pid in ids]
            for pid in ids:
                self._require_owner(caller, pid)
            pool_ids = {p.pool_id for p in positions}
            if len(pool_ids) != 1:
                raise IncompatiblePositionsError(
                    "positions belong to different pools",
                    pool_ids=sorted(pool_ids),
                )

            principal = saturating_sum([p.principal for p in positions])
            share_bps = saturating_sum([p.share_bps for p in positions])
            rewards = saturating_sum([p.accumulated_rewards for p in positions])
            created_at = min(p.created_at for p in positions)

            for pid in ids:
                self._destroy(pid)
            merged = self._create(
                owner=caller,
                pool_id=positions[0].pool_id,
                principal=principal,
                share_bps=share_bps,
                rewards=rewards,
                created_at=created_at,
                is_derived=True,
            )

            self._journal.emit(
                RegistryEvent.POSITIONS_MERGED,
                {"ids": ids, "new_id": merged.id},
            )
            logger.info(
                "registry.merged",
                position_ids=ids,
                new_id=merged.id,
                principal=principal,
                saturated=MAX_UINT256 in (principal, share_bps, rewards),
            )
            return merged.id

    def burn(self, caller: str, position_id: int) -> None:
        """Destroy a position; unclaimed rewards are forfeited."""
        with self._operation("burn", caller=caller, position_id=position_id):
            self._gate.require_not_paused()
            position = self._get(position_id)
            self._require_owner(caller, position_id)
            forfeited = position.accumulated_rewards
            self._destroy(position_id)
            if forfeited:
                logger.warning("registry.burn_forfeits_rewards", position_id=position_id, forfeited=forfeited)
            logger.info("registry.burned", position_id=position_id)

    def transfer_position(self, caller: str, position_id: int, to: str) -> None:
        """Hand a position to a new owner, moving its owner-index entry with it."""
        with self._operation("transfer_position", caller=caller, position_id=position_id, to=to):
            self._gate.require_not_paused()
            _require_address(to, "to")
            self._get(position_id)
            owner = self._require_owner(caller, position_id)
            if to == owner:
                raise ValidationError("cannot transfer a position to its current owner", to=to)
            self._set_owner(position_id, to)
            self._journal.emit(
                RegistryEvent.POSITION_TRANSFERRED,
                {"id": position_id, "from": owner, "to": to},
            )
            logger.info("registry.transferred", position_id=position_id, from_owner=owner, to=to)

    # ── Queries ──────────────────────────────────────────────────

    def exists(self, position_id: int) -> bool:
        return position_id in self._positions

    def get_position(self, position_id: int) -> Position:
        """Return a copy of the position; edits to it do not reach the registry."""
        return self._get(position_id).model_copy()

    def owner_of(self, position_id: int) -> str:
        self._get(position_id)
        return self._owners[position_id]

    def get_positions_by_owner(self, owner: str) -> list[int]:
        return self._by_owner.get(owner)

    def get_positions_by_pool(self, pool_id: int) -> list[int]:
        return self._by_pool.get(pool_id)

    def get_positions_by_pool_paged(
        self,
        pool_id: int,
        offset: int,
        limit: int | None = None,
    ) -> list[int]:
        """Return at most *limit* pool position ids starting at *offset*.

        An offset at or past the end yields an empty list, not an error.
        Order is arbitrary and shifts when positions are removed.
        """
        _require_page_arg(offset, "offset")
        limit = settings.DEFAULT_PAGE_LIMIT if limit is None else _require_page_arg(limit, "limit")
        return self._by_pool.slice(pool_id, offset, limit)

    def get_positions_by_owner_paged(
        self,
        owner: str,
        offset: int,
        limit: int | None = None,
    ) -> list[int]:
        _require_page_arg(offset, "offset")
        limit = settings.DEFAULT_PAGE_LIMIT if limit is None else _require_page_arg(limit, "limit")
        return self._by_owner.slice(owner, offset, limit)

    def get_pool_ids(self) -> list[int]:
        """Pools that currently hold at least one position."""
        return self._by_pool.keys()

    def get_owners(self) -> list[str]:
        """Addresses that currently hold at least one position."""
        return self._by_owner.keys()

    def get_total_positions(self) -> int:
        """Number of live positions (burned ones are not counted)."""
        return len(self._positions)

    def get_owner_stats(self, owner: str) -> OwnerStats:
        stats = OwnerStats()
        for pid in self._by_owner.get(owner):
            position = self._positions[pid]
            stats.position_count += 1
            stats.total_principal += position.principal
            stats.total_rewards += position.accumulated_rewards
        return stats

    def get_pool_stats(self, pool_id: int) -> PoolStats:
        stats = PoolStats()
        owners: set[str] = set()
        for pid in self._by_pool.get(pool_id):
            position = self._positions[pid]
            stats.position_count += 1
            stats.total_principal += position.principal
            stats.total_rewards += position.accumulated_rewards
            owners.add(self._owners[pid])
        stats.unique_owners = len(owners)
        return stats

    # ── Internals: scope ─────────────────────────────────────────

    @contextmanager
    def _operation(self, name: str, **context: Any) -> Iterator[None]:
        try:
            with self._journal.atomic(name):
                yield
        except RegistryError as exc:
            logger.warning(
                "registry.rejected",
                operation=name,
                error=type(exc).__name__,
                reason=exc.message,
                **context,
            )
            raise
        except Exception as exc:
            logger.error(
                "registry.aborted",
                operation=name,
                error=type(exc).__name__,
                **context,
            )
            raise

    # ── Internals: lookups ───────────────────────────────────────

    def _get(self, position_id: int) -> Position:
        position = self._positions.get(position_id)
        if position is None:
            raise PositionNotFoundError(position_id)
        return position

    def _require_owner(self, caller: str, position_id: int) -> str:
        owner = self._owners[position_id]
        if caller != owner:
            raise NotOwnerError(
                f"{caller!r} does not own position {position_id}",
                caller=caller,
                position_id=position_id,
            )
        return owner

    # ── Internals: journaled mutations ───────────────────────────
    # Each helper applies one change and records its exact inverse.
    # Ownership and index membership always change in the same helper.

    def _create(
        self,
        owner: str,
        pool_id: int,
        principal: int,
        share_bps: int,
        rewards: int,
        created_at: int,
        parent_id: int = 0,
        is_derived: bool = False,
    ) -> Position:
        position_id = self._next_id
        self._next_id += 1

        position = Position(
            id=position_id,
            pool_id=pool_id,
            principal=principal,
            share_bps=share_bps,
            accumulated_rewards=rewards,
            created_at=created_at,
            parent_id=parent_id,
            is_derived=is_derived,
        )
        self._positions[position_id] = position
        self._owners[position_id] = owner
        self._by_owner.add(owner, position_id)
        self._by_pool.add(pool_id, position_id)

        def undo() -> None:
            self._by_pool.remove(pool_id, position_id)
            self._by_owner.remove(owner, position_id)
            del self._owners[position_id]
            del self._positions[position_id]
            self._next_id = position_id

        self._journal.record(undo)
        self._journal.emit(
            RegistryEvent.POSITION_MINTED,
            {"id": position_id, "owner": owner, "pool_id": pool_id, "amount": principal},
        )
        return position

    def _destroy(self, position_id: int) -> None:
        position = self._positions.pop(position_id)
        owner = self._owners.pop(position_id)
        owner_slot = self._by_owner.remove(owner, position_id)
        pool_slot = self._by_pool.remove(position.pool_id, position_id)

        def undo() -> None:
            self._by_pool.restore(position.pool_id, position_id, pool_slot)
            self._by_owner.restore(owner, position_id, owner_slot)
            self._owners[position_id] = owner
            self._positions[position_id] = position

        self._journal.record(undo)
        self._journal.emit(
            RegistryEvent.POSITION_BURNED,
            {"id": position_id, "owner": owner},
        )

    def _set_rewards(self, position: Position, value: int) -> None:
        previous = position.accumulated_rewards
        position.accumulated_rewards = value

        def undo() -> None:
            position.accumulated_rewards = previous

        self._journal.record(undo)

    def _set_owner(self, position_id: int, new_owner: str) -> None:
        old_owner = self._owners[position_id]
        slot = self._by_owner.remove(old_owner, position_id)
        self._owners[position_id] = new_owner
        self._by_owner.add(new_owner, position_id)

        def undo() -> None:
            self._by_owner.remove(new_owner, position_id)
            self._owners[position_id] = old_owner
            self._by_owner.restore(old_owner, position_id, slot)

        self._journal.record(undo)
