"""Aggregates over the owner and pool indices."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OwnerStats(BaseModel):
    """Totals across every position held by one owner."""

    position_count: int = Field(default=0, ge=0)
    total_principal: int = Field(default=0, ge=0)
    total_rewards: int = Field(default=0, ge=0)


class PoolStats(OwnerStats):
    """Owner totals plus the number of distinct holders in the pool."""

    unique_owners: int = Field(default=0, ge=0)
