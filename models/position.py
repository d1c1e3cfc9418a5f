"""Position — fractional ownership of a revenue pool."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from core.arith import MAX_UINT256


class Position(BaseModel):
    """Stake in a pool, accruing a proportional share of its rewards.

    The owner is not part of the record; the registry tracks ownership
    alongside its owner index.
    """

    model_config = ConfigDict(strict=True, validate_assignment=True)

    id: int = Field(..., gt=0)
    pool_id: int = Field(..., ge=0)

    principal: int = Field(..., ge=0, le=MAX_UINT256, description="Amount staked")
    share_bps: int = Field(..., ge=0, le=MAX_UINT256, description="Share in basis points")
    accumulated_rewards: int = Field(default=0, ge=0, le=MAX_UINT256)

    created_at: int = Field(..., ge=0, description="Unix seconds")

    # Lineage
    parent_id: int = Field(default=0, ge=0, description="0 unless created by a split")
    is_derived: bool = Field(default=False, description="Output of a split or merge")
