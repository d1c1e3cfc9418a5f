"""Unsigned 256-bit integer helpers.

Amounts, shares and rewards are plain Python ints constrained to
``[0, MAX_UINT256]``.  Division always floors.
"""

from __future__ import annotations

from core.errors import InvalidAmountError

MAX_UINT256 = 2**256 - 1
BPS_DENOMINATOR = 10_000
PERCENT_DENOMINATOR = 100
SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def require_uint(value: int, name: str = "amount") -> int:
    """Return *value* if it is an int in ``[0, MAX_UINT256]``.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            f"{name} must be an integer, got {type(value).__name__}",
            field=name,
        )
    if value < 0 or value > MAX_UINT256:
        raise InvalidAmountError(f"{name} out of uint256 range", field=name, value=value)
    return value


def saturating_add(a: int, b: int) -> int:
    """``a + b`` clamped at ``MAX_UINT256`` instead of wrapping."""
    total = a + b
    return MAX_UINT256 if total > MAX_UINT256 else total


def saturating_sum(values: list[int]) -> int:
    total = 0
    for v in values:
        total = saturating_add(total, v)
    return total


def mul_div(a: int, b: int, denominator: int) -> int:
    """``floor(a * b / denominator)`` without intermediate overflow."""
    return (a * b) // denominator
