"""Rounding helpers applied at the point where aggregates are returned."""

import math
from decimal import ROUND_HALF_UP, Decimal


def round_money(value: float, places: int = 2) -> float:
    """Round half-up to `places` decimals (2 for money).

    Non-finite values (an amount too large for a float) pass through
    unchanged.
    """
    if not math.isfinite(value):
        return float(value)
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float, places: int = 2) -> float:
    """`part / whole * 100`, rounded; 0 when `whole` is 0."""
    if whole == 0:
        return 0.0
    return round_money(part / whole * 100, places)
