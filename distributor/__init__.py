"""Poolshare — reward distribution math."""

from .rewards import (
    allocate_proportionally,
    apply_recycling_multiplier,
    calculate_amount_after_fee,
    calculate_payment_amount,
    calculate_platform_fee,
    calculate_quest_reward,
    calculate_reward,
    calculate_rewards,
    calculate_staking_reward,
    calculate_total_reward,
)

__all__ = [
    "allocate_proportionally",
    "apply_recycling_multiplier",
    "calculate_amount_after_fee",
    "calculate_payment_amount",
    "calculate_platform_fee",
    "calculate_quest_reward",
    "calculate_reward",
    "calculate_rewards",
    "calculate_staking_reward",
    "calculate_total_reward",
]
