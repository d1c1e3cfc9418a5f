"""ValueLedger — interface to the balance system that actually pays rewards.

The registry never stores ledger state; it only asks the ledger to move
funds out of its reward reserve when a holder claims.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from core.arith import require_uint
from core.errors import InsufficientBalanceError, ValidationError

logger = structlog.get_logger("ledger.value_ledger")


class ValueLedger(ABC):
    """Abstract base class for reward-paying ledgers.

    Implementations:
    - ``InMemoryValueLedger`` — dict-backed reserve for tests and replays

    ``transfer`` may call back into the registry synchronously; the
    registry finalizes its own state before calling it.
    """

    @abstractmethod
    def transfer(self, to: str, amount: int) -> None:
        """Pay *amount* to *to* from the reward reserve.

        Raises ``InsufficientBalanceError`` if the reserve cannot cover it.
        """


class InMemoryValueLedger(ValueLedger):
    """Reward reserve plus per-account balances, all in integer base units."""

    def __init__(self, reserve: int = 0) -> None:
        self._reserve = require_uint(reserve, "reserve")
        self._balances: dict[str, int] = {}

    # ── Properties ───────────────────────────────────────────────

    @property
    def reserve(self) -> int:
        """Funds available for reward payouts."""
        return self._reserve

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def snapshot(self) -> dict[str, int | dict[str, int]]:
        """Return ledger state as a JSON-safe dict."""
        return {"reserve": self._reserve, "balances": dict(self._balances)}

    # ── Mutations ────────────────────────────────────────────────

    def deposit(self, amount: int) -> None:
        """Fund the reward reserve."""
        require_uint(amount, "amount")
        self._reserve += amount
        logger.info("ledger.deposit", amount=amount, reserve=self._reserve)

    def transfer(self, to: str, amount: int) -> None:
        require_uint(amount, "amount")
        if not to:
            raise ValidationError("transfer recipient must be non-empty")
        if amount > self._reserve:
            logger.warning(
                "ledger.insufficient_reserve",
                to=to,
                amount=amount,
                reserve=self._reserve,
            )
            raise InsufficientBalanceError(
                f"reserve {self._reserve} cannot cover {amount}",
                to=to,
                amount=amount,
                reserve=self._reserve,
            )
        self._reserve -= amount
        self._balances[to] = self._balances.get(to, 0) + amount
        logger.info("ledger.transfer", to=to, amount=amount)
