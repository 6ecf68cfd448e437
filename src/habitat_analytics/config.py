"""Configuration management for Habitat Analytics.

Configuration can be loaded from environment variables, YAML/TOML files, or
direct instantiation.

Example:
    >>> from habitat_analytics.config import AnalyticsConfig
    >>> config = AnalyticsConfig.load()
    >>> config.validate()
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_RETENTION_DAYS,
    DEFAULT_TIME_RANGE,
    TIME_RANGE_HOURS,
    DEFAULT_FORECAST_HORIZON,
    DEFAULT_EXPOSED_PREDICTIONS,
    DEFAULT_MIN_ANOMALY_SAMPLES,
    DEFAULT_Z_SCORE_THRESHOLD,
    DEFAULT_LEAK_WINDOW,
    DEFAULT_LEAK_RATE_FACTOR,
    DEFAULT_PATTERN_WINDOW,
    DEFAULT_PATTERN_VARIANCE_FACTOR,
    DEFAULT_METRIC_QUERY_LIMIT,
    DEFAULT_ANOMALY_QUERY_LIMIT,
    VALID_LOG_LEVELS,
)
from .exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "HABITAT_ANALYTICS_"


def _get_int_env(key: str, default: int) -> int:
    """Safely get a positive integer from an environment variable.

    Returns the default if the variable is unset, unparsable or not positive.

    Example:
        >>> import os
        >>> os.environ['TEST_VAR'] = '100'
        >>> _get_int_env('TEST_VAR', 50)
        100
        >>> _get_int_env('MISSING_VAR', 50)
        50
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = int(value)
        if result <= 0:
            logger.warning(
                f"Environment variable {key}={value} must be positive. Using default: {default}"
            )
            return default
        return result
    except ValueError:
        logger.warning(
            f"Environment variable {key}={value} is not a valid integer. Using default: {default}"
        )
        return default


def _get_float_env(key: str, default: float) -> float:
    """Safely get a positive float from an environment variable."""
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = float(value)
        if result <= 0:
            logger.warning(
                f"Environment variable {key}={value} must be positive. Using default: {default}"
            )
            return default
        return result
    except ValueError:
        logger.warning(
            f"Environment variable {key}={value} is not a valid number. Using default: {default}"
        )
        return default


@dataclass
class AnalyticsConfig:
    """
    Configuration for the analytics engine.

    Configuration can be loaded from:
    1. Configuration files (YAML or TOML)
    2. Environment variables (override file settings)
    3. Direct instantiation with parameters

    Environment variables:
        HABITAT_ANALYTICS_DB_PATH: SQLite database path (default: "habitat_analytics.db")
        HABITAT_ANALYTICS_RETENTION_DAYS: Metric retention in days (default: 90)
        HABITAT_ANALYTICS_DEFAULT_TIME_RANGE: Default lookback window (default: "7d")
        HABITAT_ANALYTICS_FORECAST_HORIZON: Predicted points per regression (default: 24)
        HABITAT_ANALYTICS_EXPOSED_PREDICTIONS: Predictions attached to trends (default: 10)
        HABITAT_ANALYTICS_MIN_ANOMALY_SAMPLES: Minimum group size for detection (default: 10)
        HABITAT_ANALYTICS_Z_SCORE_THRESHOLD: Spike/drop z-score threshold (default: 3.0)
        HABITAT_ANALYTICS_LOG_LEVEL: Logging level (default: "INFO")
        HABITAT_ANALYTICS_LOG_FILE: Log file path (optional)

    Config file locations (searched in order):
        ./habitat-analytics.yaml, ./habitat-analytics.toml
        ~/.habitat-analytics.yaml, ~/.habitat-analytics.toml
        /etc/habitat-analytics.yaml, /etc/habitat-analytics.toml
    """
    # Storage
    db_path: str = "habitat_analytics.db"
    retention_days: int = DEFAULT_RETENTION_DAYS
    metric_query_limit: int = DEFAULT_METRIC_QUERY_LIMIT
    anomaly_query_limit: int = DEFAULT_ANOMALY_QUERY_LIMIT

    # Forecasting
    default_time_range: str = DEFAULT_TIME_RANGE
    forecast_horizon: int = DEFAULT_FORECAST_HORIZON
    exposed_predictions: int = DEFAULT_EXPOSED_PREDICTIONS

    # Anomaly detection
    min_anomaly_samples: int = DEFAULT_MIN_ANOMALY_SAMPLES
    z_score_threshold: float = DEFAULT_Z_SCORE_THRESHOLD
    leak_window: int = DEFAULT_LEAK_WINDOW
    leak_rate_factor: float = DEFAULT_LEAK_RATE_FACTOR
    pattern_window: int = DEFAULT_PATTERN_WINDOW
    pattern_variance_factor: float = DEFAULT_PATTERN_VARIANCE_FACTOR

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            InvalidConfigError: If any configuration value is invalid
        """
        errors = []

        for name in (
            "retention_days",
            "metric_query_limit",
            "anomaly_query_limit",
            "forecast_horizon",
            "min_anomaly_samples",
            "leak_window",
            "pattern_window",
        ):
            value = getattr(self, name)
            if value <= 0:
                errors.append(f"{name} must be positive, got {value}")

        if self.exposed_predictions < 0:
            errors.append(f"exposed_predictions must not be negative, got {self.exposed_predictions}")
        if self.exposed_predictions > self.forecast_horizon:
            errors.append(
                f"exposed_predictions ({self.exposed_predictions}) cannot exceed "
                f"forecast_horizon ({self.forecast_horizon})"
            )

        for name in ("z_score_threshold", "leak_rate_factor", "pattern_variance_factor"):
            value = getattr(self, name)
            if value <= 0:
                errors.append(f"{name} must be positive, got {value}")

        if self.default_time_range not in TIME_RANGE_HOURS:
            errors.append(
                f"default_time_range must be one of {sorted(TIME_RANGE_HOURS)}, "
                f"got '{self.default_time_range}'"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'"
            )

        if errors:
            raise InvalidConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))

    @classmethod
    def from_env(cls) -> 'AnalyticsConfig':
        """
        Create configuration from environment variables only.

        Returns:
            AnalyticsConfig instance populated from environment variables
        """
        return cls(
            db_path=os.getenv(f"{ENV_PREFIX}DB_PATH", "habitat_analytics.db"),
            retention_days=_get_int_env(f"{ENV_PREFIX}RETENTION_DAYS", DEFAULT_RETENTION_DAYS),
            metric_query_limit=_get_int_env(f"{ENV_PREFIX}METRIC_QUERY_LIMIT", DEFAULT_METRIC_QUERY_LIMIT),
            anomaly_query_limit=_get_int_env(f"{ENV_PREFIX}ANOMALY_QUERY_LIMIT", DEFAULT_ANOMALY_QUERY_LIMIT),
            default_time_range=os.getenv(f"{ENV_PREFIX}DEFAULT_TIME_RANGE", DEFAULT_TIME_RANGE),
            forecast_horizon=_get_int_env(f"{ENV_PREFIX}FORECAST_HORIZON", DEFAULT_FORECAST_HORIZON),
            exposed_predictions=_get_int_env(f"{ENV_PREFIX}EXPOSED_PREDICTIONS", DEFAULT_EXPOSED_PREDICTIONS),
            min_anomaly_samples=_get_int_env(f"{ENV_PREFIX}MIN_ANOMALY_SAMPLES", DEFAULT_MIN_ANOMALY_SAMPLES),
            z_score_threshold=_get_float_env(f"{ENV_PREFIX}Z_SCORE_THRESHOLD", DEFAULT_Z_SCORE_THRESHOLD),
            leak_window=_get_int_env(f"{ENV_PREFIX}LEAK_WINDOW", DEFAULT_LEAK_WINDOW),
            leak_rate_factor=_get_float_env(f"{ENV_PREFIX}LEAK_RATE_FACTOR", DEFAULT_LEAK_RATE_FACTOR),
            pattern_window=_get_int_env(f"{ENV_PREFIX}PATTERN_WINDOW", DEFAULT_PATTERN_WINDOW),
            pattern_variance_factor=_get_float_env(
                f"{ENV_PREFIX}PATTERN_VARIANCE_FACTOR", DEFAULT_PATTERN_VARIANCE_FACTOR
            ),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
            log_file=os.getenv(f"{ENV_PREFIX}LOG_FILE"),
        )

    @classmethod
    def from_file(cls, config_path: Optional[str] = None) -> 'AnalyticsConfig':
        """
        Create configuration from file with environment variable overrides.

        If no path is provided, searches standard locations. Falls back to
        environment-only configuration if the file cannot be loaded.

        Args:
            config_path: Optional explicit path to config file.

        Returns:
            AnalyticsConfig instance with merged configuration
        """
        from .config_loader import load_config_with_overrides

        try:
            config_dict = load_config_with_overrides(config_path)
            return cls(**config_dict)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load configuration from file: {e}")
            logger.warning("Falling back to environment variable configuration")
            return cls.from_env()

    @classmethod
    def load(cls, config_path: Optional[str] = None, use_file: bool = True) -> 'AnalyticsConfig':
        """
        Load configuration with automatic fallback.

        Args:
            config_path: Optional explicit path to config file
            use_file: If True, attempts to load from file before env vars
        """
        if use_file:
            return cls.from_file(config_path)
        return cls.from_env()
