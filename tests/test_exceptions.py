"""
Tests for exception handling and custom exception types.

Verifies that specific exceptions are raised appropriately.
"""

import pytest

from habitat_analytics.analytics.regression import standard_error
from habitat_analytics.analytics.statistics import mean
from habitat_analytics.config import AnalyticsConfig
from habitat_analytics.exceptions import (
    AnalysisError,
    APIError,
    BadRequestError,
    ConfigurationError,
    EmptySampleError,
    HabitatAnalyticsError,
    InvalidConfigError,
    StorageError,
    UndefinedRegressionError,
)
from habitat_analytics.api.analytics import parse_analytics_query
from habitat_analytics.storage import SQLiteMetricStore


def test_exception_hierarchy():
    """Test every error derives from the package base class."""
    for exc in (AnalysisError, StorageError, ConfigurationError, APIError):
        assert issubclass(exc, HabitatAnalyticsError)
    assert issubclass(EmptySampleError, AnalysisError)
    assert issubclass(UndefinedRegressionError, AnalysisError)
    assert issubclass(BadRequestError, APIError)
    assert issubclass(InvalidConfigError, ConfigurationError)
    assert issubclass(InvalidConfigError, ValueError)


def test_empty_sample_error():
    """Test EmptySampleError raised for empty statistics input."""
    with pytest.raises(EmptySampleError):
        mean([])


def test_undefined_regression_error():
    """Test UndefinedRegressionError raised for two samples."""
    with pytest.raises(UndefinedRegressionError, match="more than 2 samples"):
        standard_error(0.0, 2)


def test_invalid_config_error():
    """Test InvalidConfigError raised by validation."""
    with pytest.raises(InvalidConfigError, match="Configuration validation failed"):
        AnalyticsConfig(forecast_horizon=0).validate()


def test_bad_request_error():
    """Test BadRequestError raised for an unknown window."""
    with pytest.raises(BadRequestError):
        parse_analytics_query({"timeRange": "forever"})


def test_storage_error_on_unopenable_database(tmp_path):
    """Test StorageError raised when the database path is a directory."""
    with pytest.raises(StorageError):
        SQLiteMetricStore(tmp_path)
