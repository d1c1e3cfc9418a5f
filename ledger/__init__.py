"""Poolshare — value ledger interface."""

from .value_ledger import InMemoryValueLedger, ValueLedger

__all__ = [
    "InMemoryValueLedger",
    "ValueLedger",
]
