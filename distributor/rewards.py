"""Reward math — stateless integer calculations for payouts, fees and staking.

Every function floors.  Proportional allocation hands the rounding
remainder to the *last* entry in input order, so allocations always sum
to the amount being distributed.  That tie-break is order dependent on
purpose: callers that care about who absorbs dust control it by ordering.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from core.arith import (
    BPS_DENOMINATOR,
    PERCENT_DENOMINATOR,
    SECONDS_PER_YEAR,
    mul_div,
    require_uint,
)
from core.errors import (
    InvalidAmountError,
    InvalidFeeError,
    ZeroRecipientsError,
    ZeroRewardAmountError,
    ZeroTotalShareError,
)

logger = structlog.get_logger("distributor.rewards")


# ── Proportional allocation ──────────────────────────────────────────


def allocate_proportionally(
    total: int,
    weights: Sequence[int],
    weight_total: int,
) -> list[int]:
    """Split *total* across *weights* with floor-then-remainder rounding.

    Every entry except the last is ``floor(total * weights[i] / weight_total)``;
    the last receives ``total - sum(previous)``.

    Callers guarantee ``weights`` is non-empty and ``weight_total > 0``.
    """
    allocations: list[int] = []
    allocated = 0
    last = len(weights) - 1
    for i, weight in enumerate(weights):
        if i == last:
            if allocated > total:
                # only possible when sum(weights) > weight_total
                raise InvalidAmountError(
                    "weights exceed their declared total",
                    weight_total=weight_total,
                )
            allocations.append(total - allocated)
        else:
            amount = mul_div(total, weight, weight_total)
            allocations.append(amount)
            allocated += amount
    return allocations


def calculate_rewards(
    shares: Sequence[int],
    total_share: int,
    reward_amount: int,
) -> list[int]:
    """Distribute *reward_amount* across recipients by *shares*.

    Parameters
    ----------
    shares:
        Per-recipient share weights, in payout order.
    total_share:
        Denominator for the weights (normally ``sum(shares)``).
    reward_amount:
        Amount to distribute.

    Returns
    -------
    list[int]
        One reward per recipient; ``sum(result) == reward_amount``.

    Raises
    ------
    ZeroTotalShareError, ZeroRewardAmountError, ZeroRecipientsError
    """
    require_uint(total_share, "total_share")
    require_uint(reward_amount, "reward_amount")
    if total_share == 0:
        raise ZeroTotalShareError("total share must be greater than zero")
    if reward_amount == 0:
        raise ZeroRewardAmountError("reward amount must be greater than zero")
    if len(shares) == 0:
        raise ZeroRecipientsError("at least one recipient is required")
    for share in shares:
        require_uint(share, "share")

    rewards = allocate_proportionally(reward_amount, shares, total_share)
    logger.debug(
        "rewards.distributed",
        recipients=len(rewards),
        reward_amount=reward_amount,
        dust=rewards[-1] - mul_div(reward_amount, shares[-1], total_share),
    )
    return rewards


def calculate_reward(share: int, total_share: int, reward_amount: int) -> int:
    """Single-recipient variant of :func:`calculate_rewards` (no remainder)."""
    require_uint(share, "share")
    require_uint(total_share, "total_share")
    require_uint(reward_amount, "reward_amount")
    if total_share == 0:
        raise ZeroTotalShareError("total share must be greater than zero")
    if reward_amount == 0:
        raise ZeroRewardAmountError("reward amount must be greater than zero")
    return mul_div(reward_amount, share, total_share)


# ── Fees ─────────────────────────────────────────────────────────────


def _require_fee_bps(fee_bps: int) -> int:
    require_uint(fee_bps, "fee_bps")
    if fee_bps > BPS_DENOMINATOR:
        raise InvalidFeeError(f"fee of {fee_bps} bps exceeds 100%", fee_bps=fee_bps)
    return fee_bps


def calculate_platform_fee(amount: int, fee_bps: int) -> int:
    require_uint(amount, "amount")
    _require_fee_bps(fee_bps)
    return mul_div(amount, fee_bps, BPS_DENOMINATOR)


def calculate_amount_after_fee(amount: int, fee_bps: int) -> int:
    return amount - calculate_platform_fee(amount, fee_bps)


def calculate_payment_amount(value: int, fee_bps: int) -> int:
    """Gross amount a payer sends so that *value* remains after the fee."""
    return value + calculate_platform_fee(value, fee_bps)


# ── Staking / multipliers ────────────────────────────────────────────


def calculate_staking_reward(
    stake_amount: int,
    duration_seconds: int,
    annual_rate_bps: int,
) -> int:
    """Simple (non-compounding) pro-rata staking yield.

    ``floor(stake * seconds * rate_bps / (SECONDS_PER_YEAR * 10000))``
    """
    require_uint(stake_amount, "stake_amount")
    require_uint(duration_seconds, "duration_seconds")
    require_uint(annual_rate_bps, "annual_rate_bps")
    if stake_amount == 0 or duration_seconds == 0:
        return 0
    return (stake_amount * duration_seconds * annual_rate_bps) // (
        SECONDS_PER_YEAR * BPS_DENOMINATOR
    )


def apply_recycling_multiplier(base_reward: int, multiplier_pct: int) -> int:
    require_uint(base_reward, "base_reward")
    require_uint(multiplier_pct, "multiplier_pct")
    return mul_div(base_reward, multiplier_pct, PERCENT_DENOMINATOR)


def calculate_quest_reward(base_reward: int, multiplier_pct: int) -> int:
    return apply_recycling_multiplier(base_reward, multiplier_pct)


def calculate_total_reward(base: int, staking: int, quest: int) -> int:
    return base + staking + quest
