"""AuthorizationGate — owner role, minter membership set and pause toggle.

Injected into the registry at construction; there is no module-level
authorization state.
"""

from __future__ import annotations

import structlog

from core.errors import PausedError, UnauthorizedError, ValidationError
from core.event_bus import EventBus, RegistryEvent

logger = structlog.get_logger("core.auth")


class AuthorizationGate:
    """Membership set of callers allowed to mint positions and add rewards.

    Parameters
    ----------
    owner:
        Address holding the administrative role.  Only the owner can
        change membership or pause.
    minters:
        Initial authorized minters.  The owner is *not* implicitly a minter.
    event_bus:
        Optional bus for ``MinterAuthorized`` / ``MinterRevoked`` /
        ``Paused`` / ``Unpaused`` events.
    """

    def __init__(
        self,
        owner: str,
        minters: list[str] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        if not owner:
            raise ValidationError("gate owner must be a non-empty address")
        self._owner = owner
        self._minters: set[str] = set(minters or [])
        self._paused = False
        self._event_bus = event_bus

    # ── Properties ───────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def minters(self) -> set[str]:
        """Return a copy of the authorized minter set."""
        return set(self._minters)

    def is_authorized(self, address: str) -> bool:
        return address in self._minters

    # ── Checks ───────────────────────────────────────────────────

    def require_authorized(self, caller: str) -> None:
        if caller not in self._minters:
            raise UnauthorizedError(f"{caller!r} is not an authorized minter", caller=caller)

    def require_not_paused(self) -> None:
        if self._paused:
            raise PausedError("registry is paused")

    def require_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise UnauthorizedError(f"{caller!r} is not the gate owner", caller=caller)

    # ── Admin ────────────────────────────────────────────────────

    def authorize_minter(self, caller: str, address: str) -> None:
        self.require_owner(caller)
        if not address:
            raise ValidationError("minter address must be non-empty")
        if address in self._minters:
            return
        self._minters.add(address)
        logger.info("auth.minter_authorized", minter=address)
        self._emit(RegistryEvent.MINTER_AUTHORIZED, {"minter": address})

    def revoke_minter(self, caller: str, address: str) -> None:
        self.require_owner(caller)
        if address not in self._minters:
            return
        self._minters.discard(address)
        logger.info("auth.minter_revoked", minter=address)
        self._emit(RegistryEvent.MINTER_REVOKED, {"minter": address})

    def pause(self, caller: str) -> None:
        self.require_owner(caller)
        if self._paused:
            return
        self._paused = True
        logger.warning("auth.paused", by=caller)
        self._emit(RegistryEvent.PAUSED, {"by": caller})

    def unpause(self, caller: str) -> None:
        self.require_owner(caller)
        if not self._paused:
            return
        self._paused = False
        logger.info("auth.unpaused", by=caller)
        self._emit(RegistryEvent.UNPAUSED, {"by": caller})

    def _emit(self, topic: RegistryEvent, payload: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, payload)
