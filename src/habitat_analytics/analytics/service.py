"""
Analytics service.

Entry point for the dashboard's analytics calls: each call pulls a fresh
result set from the metric store, groups it by resource and runs the
statistics, regression, trend and anomaly engines on every group.
"""
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional

from ..config import AnalyticsConfig
from ..logging_config import setup_logging_from_config
from ..logging_context import LoggingContext, get_logger
from ..metrics import track_analysis_duration, track_analysis_total, track_anomalies_detected
from ..models import (
    AggregatedStats,
    AnalyticsQuery,
    Anomaly,
    MetricMetadata,
    ResourceMetric,
    TrendData,
)
from ..storage.base import MetricFilter, MetricStore
from ..storage.sqlite_store import SQLiteMetricStore
from ..utils import utc_now
from .anomaly_detector import AnomalyDetector
from .grouping import group_by_resource
from .regression import fit_linear_regression
from .statistics import build_aggregated_stats
from .trends import build_trend_data

logger = get_logger(__name__)


class AnalyticsService:
    """
    Per-call analytics over a metric store.

    The service keeps no derived state between calls. Detected anomalies
    are written to the store before ``detect_anomalies`` returns; a storage
    failure propagates to the caller and anomalies written before it stay
    written.

    Example:
        >>> service = AnalyticsService(InMemoryMetricStore())
        >>> service.record_metric("oxygen-1", "oxygen", level=92.5, consumption_rate=1.2)
        >>> trends = service.get_trend_data(AnalyticsQuery(time_range="24h"))
    """

    def __init__(
        self,
        store: MetricStore,
        config: Optional[AnalyticsConfig] = None,
        detector: Optional[AnomalyDetector] = None,
    ):
        self.store = store
        self.config = config or AnalyticsConfig()
        self.detector = detector or AnomalyDetector.from_config(self.config)

    @contextmanager
    def _track(self, operation: str, query: Optional[AnalyticsQuery] = None) -> Iterator[None]:
        """Run a call under a query id, recording duration and outcome."""
        query_id = str(uuid.uuid4())
        started = time.perf_counter()
        context = {"query_id": query_id, "operation": operation}
        if query is not None and query.resource_id:
            context["resource_id"] = query.resource_id

        with LoggingContext(**context):
            try:
                yield
            except Exception:
                elapsed = time.perf_counter() - started
                track_analysis_duration(operation, elapsed, status="error")
                track_analysis_total(operation, status="error")
                logger.exception(f"{operation} failed")
                raise

            elapsed = time.perf_counter() - started
            track_analysis_duration(operation, elapsed)
            track_analysis_total(operation)
            logger.debug(f"{operation} completed in {elapsed:.3f}s")

    def _metric_filter(self, query: AnalyticsQuery) -> MetricFilter:
        return MetricFilter.from_query(query, limit=self.config.metric_query_limit)

    def record_metric(
        self,
        resource_id: str,
        resource_type: str,
        level: float,
        consumption_rate: float,
        timestamp: Optional[datetime] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ResourceMetric:
        """
        Record one metric observation.

        Args:
            resource_id: Resource identifier
            resource_type: Resource category
            level: Current level (>= 0)
            consumption_rate: Current consumption rate (>= 0)
            timestamp: Observation time, defaults to now
            metadata: Optional temperature/pressure/humidity readings

        Returns:
            The stored metric with its generated id
        """
        metric = ResourceMetric(
            id=str(uuid.uuid4()),
            resource_id=resource_id,
            resource_type=resource_type,
            timestamp=timestamp or utc_now(),
            level=level,
            consumption_rate=consumption_rate,
            metadata=MetricMetadata(**metadata) if metadata else None,
        )
        with self._track("record_metric"):
            return self.store.write_metric(metric)

    def latest_metric(self, resource_id: str) -> Optional[ResourceMetric]:
        """Most recent metric for a resource, if any."""
        return self.store.latest_metric(resource_id)

    def get_trend_data(self, query: AnalyticsQuery) -> List[TrendData]:
        """Trend and forecast per resource in the query scope."""
        with self._track("trends", query):
            metrics = self.store.query_metrics(self._metric_filter(query))
            if not metrics:
                return []

            trends = []
            for resource_id, group in group_by_resource(metrics).items():
                regression = None
                if query.include_predictions:
                    regression = fit_linear_regression(group, horizon=self.config.forecast_horizon)
                trend = build_trend_data(
                    resource_id,
                    group,
                    query.time_range,
                    include_predictions=query.include_predictions,
                    regression=regression,
                    exposed_predictions=self.config.exposed_predictions,
                )
                if trend is not None:
                    trends.append(trend)

            logger.info(f"Computed trends for {len(trends)} resources")
            return trends

    def get_aggregated_stats(self, query: AnalyticsQuery) -> List[AggregatedStats]:
        """Aggregated statistics per resource in the query scope."""
        with self._track("stats", query):
            metrics = self.store.query_metrics(self._metric_filter(query))
            if not metrics:
                return []

            stats = []
            for resource_id, group in group_by_resource(metrics).items():
                resource_stats = build_aggregated_stats(resource_id, group, query.time_range)
                if resource_stats is not None:
                    stats.append(resource_stats)
            return stats

    def detect_anomalies(self, query: AnalyticsQuery) -> List[Anomaly]:
        """
        Detect and persist anomalies per resource in the query scope.

        Detection is not deduplicated: re-running over the same window
        stores new records with new ids.
        """
        with self._track("detect_anomalies", query):
            metrics = self.store.query_metrics(self._metric_filter(query))

            anomalies: List[Anomaly] = []
            for resource_id, group in group_by_resource(metrics).items():
                anomalies.extend(self.detector.detect(resource_id, group))

            for anomaly in anomalies:
                self.store.write_anomaly(anomaly)
                track_anomalies_detected(anomaly.type.value, anomaly.severity.value)

            if anomalies:
                logger.info(f"Stored {len(anomalies)} anomalies")
            return anomalies

    def get_anomalies(self, query: AnalyticsQuery) -> List[Anomaly]:
        """Previously detected anomalies in the query scope, newest first."""
        with self._track("anomalies", query):
            return self.store.query_anomalies(
                MetricFilter.from_query(query, limit=self.config.anomaly_query_limit)
            )


def create_service(config: Optional[AnalyticsConfig] = None) -> AnalyticsService:
    """
    Build a ready-to-use service backed by SQLite.

    Loads configuration when none is given, validates it, configures
    logging from ``log_level``/``log_file`` and opens the store at
    ``db_path``.

    Raises:
        InvalidConfigError: If the configuration fails validation
        StorageError: If the database cannot be opened
    """
    config = config or AnalyticsConfig.load()
    config.validate()
    setup_logging_from_config(config)

    store = SQLiteMetricStore.from_config(config)
    logger.info(f"Analytics service ready (store {config.db_path}, default window {config.default_time_range})")
    return AnalyticsService(store, config)
