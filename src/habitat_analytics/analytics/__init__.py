"""
Analytics for habitat resource metrics.

Statistics, linear-regression forecasting, trend classification and
anomaly detection over per-resource metric series.
"""

from .anomaly_detector import AnomalyDetector, calculate_severity
from .grouping import group_by_resource
from .regression import fit_linear_regression, standard_error
from .service import AnalyticsService, create_service
from .statistics import SampleSummary, build_aggregated_stats, summarize
from .trends import build_trend_data, change_percentage, classify_trend

__all__ = [
    "AnalyticsService",
    "create_service",
    "AnomalyDetector",
    "calculate_severity",
    "group_by_resource",
    "fit_linear_regression",
    "standard_error",
    "SampleSummary",
    "build_aggregated_stats",
    "summarize",
    "build_trend_data",
    "change_percentage",
    "classify_trend",
]
