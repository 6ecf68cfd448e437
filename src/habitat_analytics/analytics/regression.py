"""
Regression engine.

Ordinary least squares of resource level against elapsed hours since the
first sample, projected forward with a 95% normal-approximation band.

Example:
    >>> from habitat_analytics.analytics.regression import fit_linear_regression
    >>> regression = fit_linear_regression(sorted_metrics)
    >>> regression.predictions[0].predicted_level
"""
import logging
import math
from datetime import timedelta
from typing import Sequence

import numpy as np

from ..constants import (
    CONFIDENCE_Z_95,
    DEFAULT_FORECAST_HORIZON,
    DEFAULT_STEP_HOURS,
    INTERCEPT_DECIMALS,
    R_SQUARED_DECIMALS,
    SLOPE_DECIMALS,
    STATS_DECIMALS,
)
from ..exceptions import UndefinedRegressionError
from ..models import ConfidenceInterval, LinearRegression, Prediction, ResourceMetric
from ..utils import hours_between, round_half_away

logger = logging.getLogger(__name__)


def standard_error(ss_residual: float, n: int) -> float:
    """
    Standard error of the residuals, sqrt(SSres / (n - 2)).

    Raises:
        UndefinedRegressionError: If n <= 2 (no residual degrees of freedom)
    """
    if n <= 2:
        raise UndefinedRegressionError(
            f"Standard error needs more than 2 samples, got {n}"
        )
    return math.sqrt(ss_residual / (n - 2))


def fit_linear_regression(
    metrics: Sequence[ResourceMetric],
    horizon: int = DEFAULT_FORECAST_HORIZON,
) -> LinearRegression:
    """
    Fit level = slope * hours + intercept and forecast ``horizon`` points.

    ``metrics`` must already be in ascending timestamp order. The forecast
    step is the mean spacing of the input (one hour for a single sample or a
    zero span). Predicted levels and both band bounds are floored at zero.

    Degenerate inputs:
        * no samples: zero regression with no predictions
        * zero spread in x: slope 0, intercept = mean level
        * zero spread in y: R^2 is 1.0 for a perfect fit, otherwise 0.0
        * n <= 2: zero-width confidence interval

    Args:
        metrics: Chronologically ordered metrics for one resource
        horizon: Number of future points to project

    Returns:
        LinearRegression with rounded coefficients and predictions
    """
    n = len(metrics)
    if n == 0:
        return LinearRegression(slope=0.0, intercept=0.0, r_squared=0.0, predictions=[])

    start = metrics[0].timestamp
    x = np.array([hours_between(start, m.timestamp) for m in metrics], dtype=float)
    y = np.array([m.level for m in metrics], dtype=float)

    sum_x = float(x.sum())
    sum_y = float(y.sum())
    sum_xy = float((x * y).sum())
    sum_xx = float((x * x).sum())

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        slope = 0.0
        intercept = sum_y / n
    else:
        slope = (n * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / n

    fitted = slope * x + intercept
    ss_total = float(((y - sum_y / n) ** 2).sum())
    ss_residual = float(((y - fitted) ** 2).sum())

    if ss_total == 0:
        r_squared = 1.0 if ss_residual == 0 else 0.0
    else:
        r_squared = 1 - ss_residual / ss_total

    try:
        margin = CONFIDENCE_Z_95 * standard_error(ss_residual, n)
    except UndefinedRegressionError as e:
        logger.debug(f"{e}; using zero-width confidence interval")
        margin = 0.0

    last = metrics[-1].timestamp
    span_hours = hours_between(start, last)
    step_hours = span_hours / (n - 1) if n > 1 and span_hours > 0 else DEFAULT_STEP_HOURS

    predictions = []
    for step in range(1, horizon + 1):
        future = last + timedelta(hours=step * step_hours)
        predicted = slope * hours_between(start, future) + intercept
        predictions.append(
            Prediction(
                timestamp=future,
                predicted_level=round_half_away(max(0.0, predicted), STATS_DECIMALS),
                confidence_interval=ConfidenceInterval(
                    lower=round_half_away(max(0.0, predicted - margin), STATS_DECIMALS),
                    upper=round_half_away(max(0.0, predicted + margin), STATS_DECIMALS),
                ),
            )
        )

    return LinearRegression(
        slope=round_half_away(slope, SLOPE_DECIMALS),
        intercept=round_half_away(intercept, INTERCEPT_DECIMALS),
        r_squared=round_half_away(r_squared, R_SQUARED_DECIMALS),
        predictions=predictions,
    )
