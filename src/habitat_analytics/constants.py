"""
Tuning constants for the analytics engine.
"""

# Retention
DEFAULT_RETENTION_DAYS = 90

# Query defaults
DEFAULT_TIME_RANGE = "7d"
TIME_RANGE_HOURS = {
    "24h": 24,
    "7d": 7 * 24,
    "30d": 30 * 24,
    "90d": 90 * 24,
}
DEFAULT_METRIC_QUERY_LIMIT = 10000
DEFAULT_ANOMALY_QUERY_LIMIT = 1000

# Statistics
STATS_DECIMALS = 2
PEAK_USAGE_COUNT = 5

# Regression / forecasting
DEFAULT_FORECAST_HORIZON = 24
DEFAULT_EXPOSED_PREDICTIONS = 10
CONFIDENCE_Z_95 = 1.96
DEFAULT_STEP_HOURS = 1.0
SLOPE_DECIMALS = 4
INTERCEPT_DECIMALS = 2
R_SQUARED_DECIMALS = 4

# Trend classification (percent)
TREND_THRESHOLD_PERCENT = 5.0

# Anomaly detection
DEFAULT_MIN_ANOMALY_SAMPLES = 10
DEFAULT_Z_SCORE_THRESHOLD = 3.0
DEFAULT_LEAK_WINDOW = 5
DEFAULT_LEAK_RATE_FACTOR = 0.5
DEFAULT_PATTERN_WINDOW = 10
DEFAULT_PATTERN_VARIANCE_FACTOR = 2.0

# Severity cut-offs on deviation percentage
SEVERITY_CRITICAL_PERCENT = 50.0
SEVERITY_HIGH_PERCENT = 30.0
SEVERITY_MEDIUM_PERCENT = 15.0

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
