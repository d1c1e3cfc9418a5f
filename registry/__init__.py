"""Poolshare — position registry package."""

from .indices import PositionIndex, PositionSet
from .journal import Journal
from .position_registry import PositionRegistry

__all__ = [
    "Journal",
    "PositionIndex",
    "PositionRegistry",
    "PositionSet",
]
