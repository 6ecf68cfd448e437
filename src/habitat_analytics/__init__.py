"""
Habitat Analytics: trends, statistics, forecasting and anomaly detection for
a simulated habitat dashboard.
"""
from .version import __version__, VERSION_INFO, get_version, get_version_info
from .logging_context import (
    get_logger,
    set_context,
    get_context,
    clear_context,
    LoggingContext,
)
from .metrics import (
    track_analysis_duration,
    track_analysis_total,
    track_anomalies_detected,
    get_metrics_text,
)

__all__ = [
    "__version__",
    "VERSION_INFO",
    "get_version",
    "get_version_info",
    "get_logger",
    "set_context",
    "get_context",
    "clear_context",
    "LoggingContext",
    "track_analysis_duration",
    "track_analysis_total",
    "track_anomalies_detected",
    "get_metrics_text",
]
