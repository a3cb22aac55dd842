"""
services/money.py — Shared monetary constants and Decimal helpers.

All monetary arithmetic in SettleUp uses Decimal. Floats that arrive from
callers are converted through str() so 0.1 becomes Decimal("0.1"), not the
binary expansion of 0.1.

TOLERANCE is part of the balance contract: any magnitude below one cent is
treated as exactly zero for display and for every threshold comparison in
balance_service and simplify_service.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

CENT      = Decimal("0.01")
TOLERANCE = CENT
ZERO      = Decimal("0.00")


def as_decimal(value) -> Decimal:
    """
    Converts int / str / float / Decimal to Decimal.

    Raises:
        TypeError  -- value is a bool or another unsupported type.
        InvalidOperation -- value is a string that is not a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount.")
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (int, str)):
        return Decimal(value)
    raise TypeError(f"Unsupported monetary value type: {type(value).__name__}")


def finite_decimal_or_none(value) -> Decimal | None:
    """Returns value as a finite Decimal, or None when it is NaN, infinite or unparseable."""
    try:
        amount = as_decimal(value)
    except (TypeError, InvalidOperation):
        return None
    if not amount.is_finite():
        return None
    return amount


def is_negligible(value: Decimal) -> bool:
    """True when |value| is below one cent."""
    return abs(value) < TOLERANCE


def to_cents(value: Decimal) -> Decimal:
    """Rounds to cents (half-up); anything below one cent in magnitude becomes 0.00."""
    if is_negligible(value):
        return ZERO
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate_cents(values: Sequence[Decimal]) -> list[Decimal]:
    """
    Rounds full-precision amounts to cents so that the results add up to
    the rounded total (largest-remainder method).

    Values below one cent in magnitude become 0.00 first. Every other value
    is floored to the cent, then the spare cents go one each to the values
    with the largest remainders; ties keep input order.

    Example: [1, -0.125 × 8] → [1.00, -0.12 × 4, -0.13 × 4], sum 0.00.
    """
    exact = [ZERO if is_negligible(v) else v for v in values]
    target = sum(exact, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    floors = [v.quantize(CENT, rounding=ROUND_FLOOR) for v in exact]

    spare = int((target - sum(floors, ZERO)) / CENT)
    by_remainder = sorted(
        range(len(exact)),
        key=lambda i: exact[i] - floors[i],
        reverse=True,
    )
    for i in by_remainder[:spare]:
        floors[i] += CENT

    return [f if f else ZERO for f in floors]
