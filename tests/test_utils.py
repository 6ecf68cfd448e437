"""
Tests for numeric and time helpers.
"""
import math
from datetime import datetime, timedelta, timezone

import pytest

from habitat_analytics.utils import ensure_utc, hours_between, round_half_away, utc_now


@pytest.mark.parametrize("value,decimals,expected", [
    (1.005, 2, 1.01),
    (2.345, 2, 2.35),
    (-2.345, 2, -2.35),
    (0.125, 2, 0.13),
    (2.5, 0, 3.0),
    (0.33335, 4, 0.3334),
    (10.0, 2, 10.0),
])
def test_round_half_away(value, decimals, expected):
    """Test ties round away from zero."""
    assert round_half_away(value, decimals) == expected


def test_round_half_away_negative_zero():
    """Test tiny negatives do not produce -0.0."""
    result = round_half_away(-0.001, 2)

    assert result == 0.0
    assert math.copysign(1.0, result) == 1.0


def test_round_half_away_non_finite():
    """Test NaN and infinity pass through."""
    assert math.isnan(round_half_away(float("nan")))
    assert round_half_away(float("inf")) == float("inf")


def test_ensure_utc():
    """Test naive and offset datetimes are normalised to UTC."""
    naive = datetime(2026, 1, 1, 12, 0)
    offset = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert ensure_utc(offset).tzinfo == timezone.utc
    assert ensure_utc(offset).hour == 12


def test_hours_between():
    """Test fractional hour differences."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)

    assert hours_between(start, start + timedelta(minutes=90)) == 1.5
    assert hours_between(start, start) == 0.0


def test_utc_now_is_aware():
    """Test the current time carries UTC."""
    assert utc_now().tzinfo == timezone.utc
