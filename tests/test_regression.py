"""
Tests for the regression engine.
"""
from datetime import timedelta

import pytest

from habitat_analytics.analytics.regression import fit_linear_regression, standard_error
from habitat_analytics.exceptions import UndefinedRegressionError


def test_empty_series_gives_zero_regression():
    """Test no samples yields a zero regression without predictions."""
    regression = fit_linear_regression([])

    assert regression.slope == 0
    assert regression.intercept == 0
    assert regression.r_squared == 0
    assert regression.predictions == []


def test_two_point_fit(make_metrics):
    """Test slope and intercept on two points ten hours apart."""
    metrics = make_metrics([100.0, 50.0], step_hours=10)

    regression = fit_linear_regression(metrics)

    assert regression.slope == -5
    assert regression.intercept == 100
    assert regression.r_squared == 1.0
    assert len(regression.predictions) == 24


def test_two_point_predictions_floored_and_non_increasing(make_metrics):
    """Test forecast levels never go negative and never rise on a falling fit."""
    metrics = make_metrics([100.0, 50.0], step_hours=10)

    predictions = fit_linear_regression(metrics).predictions
    levels = [p.predicted_level for p in predictions]

    assert all(level >= 0 for level in levels)
    assert all(b <= a for a, b in zip(levels, levels[1:]))
    assert all(p.confidence_interval.lower >= 0 for p in predictions)


def test_predictions_strictly_decreasing_before_floor(make_metrics):
    """Test forecast falls strictly while it is above zero."""
    metrics = make_metrics([1000.0, 990.0], step_hours=1)

    levels = [p.predicted_level for p in fit_linear_regression(metrics).predictions]

    assert levels[:5] == [980.0, 970.0, 960.0, 950.0, 940.0]
    assert all(b < a for a, b in zip(levels, levels[1:]))


def test_prediction_step_is_mean_interval(make_metrics):
    """Test forecast timestamps advance by the mean input spacing."""
    metrics = make_metrics([10.0, 11.0, 12.0], step_hours=2)

    predictions = fit_linear_regression(metrics).predictions

    assert predictions[0].timestamp == metrics[-1].timestamp + timedelta(hours=2)
    assert predictions[23].timestamp == metrics[-1].timestamp + timedelta(hours=48)


def test_single_point_defaults(make_metrics):
    """Test one sample gives a flat forecast stepping by one hour."""
    metrics = make_metrics([75.0])

    regression = fit_linear_regression(metrics)

    assert regression.slope == 0
    assert regression.intercept == 75
    assert regression.r_squared == 1.0
    assert regression.predictions[0].timestamp == metrics[0].timestamp + timedelta(hours=1)
    assert all(p.predicted_level == 75.0 for p in regression.predictions)


def test_small_samples_use_zero_width_interval(make_metrics):
    """Test n <= 2 gives lower == upper == predicted level."""
    metrics = make_metrics([100.0, 98.0])

    for prediction in fit_linear_regression(metrics).predictions:
        assert prediction.confidence_interval.lower == prediction.predicted_level
        assert prediction.confidence_interval.upper == prediction.predicted_level


def test_confidence_interval_wraps_prediction(make_metrics):
    """Test the band is symmetric around predictions well above zero."""
    metrics = make_metrics([100.0, 98.0, 99.0, 96.0, 97.0, 94.0])

    regression = fit_linear_regression(metrics)
    first = regression.predictions[0]

    assert regression.slope < 0
    assert 0 < regression.r_squared < 1
    assert first.confidence_interval.lower < first.predicted_level < first.confidence_interval.upper
    upper_gap = first.confidence_interval.upper - first.predicted_level
    lower_gap = first.predicted_level - first.confidence_interval.lower
    assert upper_gap == pytest.approx(lower_gap, abs=0.02)


def test_flat_series_is_perfect_fit(make_metrics):
    """Test zero variance in levels gives slope 0 and R^2 of 1."""
    metrics = make_metrics([50.0] * 8)

    regression = fit_linear_regression(metrics)

    assert regression.slope == 0
    assert regression.r_squared == 1.0
    assert all(p.predicted_level == 50.0 for p in regression.predictions)


def test_identical_timestamps(make_metrics):
    """Test zero spread in time falls back to the mean level."""
    metrics = make_metrics([40.0, 60.0, 50.0], step_hours=0)

    regression = fit_linear_regression(metrics)

    assert regression.slope == 0
    assert regression.intercept == 50
    assert regression.predictions[0].timestamp == metrics[0].timestamp + timedelta(hours=1)


def test_custom_horizon(make_metrics):
    """Test the forecast length follows the horizon argument."""
    metrics = make_metrics([10.0, 20.0, 30.0])

    assert len(fit_linear_regression(metrics, horizon=5).predictions) == 5


def test_regression_is_repeatable(make_metrics):
    """Test repeated fits on the same input are identical."""
    metrics = make_metrics([100.0, 97.5, 96.0, 91.0, 90.5])

    assert fit_linear_regression(metrics) == fit_linear_regression(metrics)


@pytest.mark.parametrize("n", [0, 1, 2])
def test_standard_error_undefined_for_small_samples(n):
    """Test standard error refuses n <= 2."""
    with pytest.raises(UndefinedRegressionError):
        standard_error(10.0, n)


def test_standard_error_value():
    """Test standard error formula."""
    assert standard_error(8.0, 4) == pytest.approx(2.0)
