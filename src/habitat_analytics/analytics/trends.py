"""
Trend analyzer.

Classifies the direction of change for a resource and merges its history
with the regression forecast.
"""
import logging
from typing import Optional, Sequence

from ..constants import (
    DEFAULT_EXPOSED_PREDICTIONS,
    DEFAULT_FORECAST_HORIZON,
    STATS_DECIMALS,
    TREND_THRESHOLD_PERCENT,
)
from ..models import (
    LinearRegression,
    ResourceMetric,
    TimeRange,
    TrendData,
    TrendDirection,
    TrendPoint,
)
from ..utils import round_half_away
from .regression import fit_linear_regression

logger = logging.getLogger(__name__)


def change_percentage(first_level: float, last_level: float) -> float:
    """Percent change from first to last level; 0 when the first level is 0."""
    if first_level == 0:
        return 0.0
    return (last_level - first_level) / first_level * 100


def classify_trend(change_pct: float) -> TrendDirection:
    """Increasing above +5%, decreasing below -5%, otherwise stable."""
    if change_pct > TREND_THRESHOLD_PERCENT:
        return TrendDirection.INCREASING
    if change_pct < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def build_trend_data(
    resource_id: str,
    metrics: Sequence[ResourceMetric],
    time_range: TimeRange,
    include_predictions: bool = True,
    regression: Optional[LinearRegression] = None,
    horizon: int = DEFAULT_FORECAST_HORIZON,
    exposed_predictions: int = DEFAULT_EXPOSED_PREDICTIONS,
) -> Optional[TrendData]:
    """
    Build TrendData for one resource.

    Only the first ``exposed_predictions`` forecast points are used. They are
    paired with historical points in order, so the i-th historical point
    carries the i-th prediction and later points carry none.

    Args:
        resource_id: Resource identifier
        metrics: The resource's metrics, any order
        time_range: Window label echoed in the result
        include_predictions: Attach predicted levels to the series
        regression: Precomputed regression over the sorted metrics
        horizon: Forecast length when the regression is computed here
        exposed_predictions: Number of predictions attached to the series

    Returns:
        TrendData, or None for an empty group
    """
    if not metrics:
        return None

    ordered = sorted(metrics, key=lambda m: m.timestamp)
    change_pct = change_percentage(ordered[0].level, ordered[-1].level)
    average_consumption = sum(m.consumption_rate for m in ordered) / len(ordered)

    predictions = []
    if include_predictions:
        if regression is None:
            regression = fit_linear_regression(ordered, horizon=horizon)
        predictions = regression.predictions[:exposed_predictions]

    data = []
    for idx, metric in enumerate(ordered):
        predicted = predictions[idx].predicted_level if idx < len(predictions) else None
        data.append(TrendPoint(timestamp=metric.timestamp, level=metric.level, predicted_level=predicted))

    trend = classify_trend(change_pct)
    logger.debug(f"Trend for {resource_id}: {trend.value} ({change_pct:.2f}%)")

    return TrendData(
        resource_id=resource_id,
        resource_type=ordered[0].resource_type,
        time_range=time_range,
        data=data,
        trend=trend,
        change_percentage=round_half_away(change_pct, STATS_DECIMALS),
        average_consumption=round_half_away(average_consumption, STATS_DECIMALS),
    )
