"""Poolshare — models package."""

from .position import Position
from .stats import OwnerStats, PoolStats

__all__ = [
    "OwnerStats",
    "PoolStats",
    "Position",
]
