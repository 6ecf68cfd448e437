"""
Numeric and time helpers shared by the analytics engines and stores.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import math


def round_half_away(value: float, decimals: int = 2) -> float:
    """
    Round to a fixed number of decimals, ties away from zero.

    Python's built-in ``round`` uses banker's rounding; dashboard figures
    follow fixed-point formatting instead (2.345 -> 2.35, -2.345 -> -2.35).

    Args:
        value: Number to round
        decimals: Number of decimal places

    Returns:
        Rounded float. NaN and infinities are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-decimals)
    rounded = float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))
    # Normalise -0.0
    return rounded + 0.0


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed fractional hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / 3600.0
