"""Error taxonomy for the position registry and reward math.

Four families, each a subclass of :class:`RegistryError`:

- ``ValidationError``    — malformed input (zero amount, length mismatch, bad split)
- ``AuthorizationError`` — caller lacks the role or does not own the position
- ``NotFoundError``      — referenced position is absent
- ``StateError``         — the request is well-formed but the current state refuses it

Every error aborts the whole operation; nothing is committed.
"""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base class. ``context`` carries the structured fields for logging."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


# ── Families ─────────────────────────────────────────────────────────


class ValidationError(RegistryError):
    """Input rejected before any state was read or written."""


class AuthorizationError(RegistryError):
    """Caller is not permitted to perform the operation."""


class NotFoundError(RegistryError):
    """Referenced entity does not exist."""


class StateError(RegistryError):
    """Operation is not allowed in the current state."""


# ── Validation ───────────────────────────────────────────────────────


class InvalidAmountError(ValidationError):
    pass


class InvalidSplitError(ValidationError):
    pass


class LengthMismatchError(ValidationError):
    pass


class InvalidFeeError(ValidationError):
    pass


class ZeroTotalShareError(ValidationError):
    pass


class ZeroRewardAmountError(ValidationError):
    pass


class ZeroRecipientsError(ValidationError):
    pass


# ── Authorization ────────────────────────────────────────────────────


class UnauthorizedError(AuthorizationError):
    """Caller is not an authorized minter (or not the gate owner)."""


class NotOwnerError(AuthorizationError):
    """Caller does not own the referenced position."""


# ── Not found ────────────────────────────────────────────────────────


class PositionNotFoundError(NotFoundError):
    def __init__(self, position_id: int) -> None:
        super().__init__(f"position {position_id} does not exist", position_id=position_id)
        self.position_id = position_id


# ── State ────────────────────────────────────────────────────────────


class NoRewardsToClaimError(StateError):
    pass


class InsufficientPositionsError(StateError):
    pass


class IncompatiblePositionsError(StateError):
    pass


class PausedError(StateError):
    pass


class InsufficientBalanceError(StateError):
    """Raised by a value ledger when an account cannot cover a transfer."""
