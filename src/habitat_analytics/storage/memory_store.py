"""
In-memory metric store.

Backs tests and embedded use where no database is wanted.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional

from ..constants import DEFAULT_RETENTION_DAYS
from ..models import Anomaly, ResourceMetric
from ..utils import ensure_utc, utc_now
from .base import MetricFilter, MetricStore

logger = logging.getLogger(__name__)


class InMemoryMetricStore(MetricStore):
    """
    List-backed metric store.

    Writes are serialised with a lock; reads work on a snapshot.

    Example:
        >>> store = InMemoryMetricStore()
        >>> store.write_metric(metric)
        >>> store.latest_metric("oxygen-1")
    """

    def __init__(self, retention_days: int = DEFAULT_RETENTION_DAYS):
        self.retention_days = retention_days
        self._metrics: List[ResourceMetric] = []
        self._anomalies: List[Anomaly] = []
        self._lock = threading.Lock()

    def write_metric(self, metric: ResourceMetric) -> ResourceMetric:
        with self._lock:
            self._metrics.append(metric)
        return metric

    def query_metrics(self, metric_filter: MetricFilter) -> List[ResourceMetric]:
        bounds = metric_filter.resolve_bounds()
        matching = [
            m for m in list(self._metrics)
            if metric_filter.matches(m.resource_id, m.resource_type, m.timestamp, bounds)
        ]
        matching.sort(key=lambda m: m.timestamp, reverse=True)
        limit = metric_filter.limit or self.default_metric_limit
        return matching[:limit]

    def write_anomaly(self, anomaly: Anomaly) -> Anomaly:
        with self._lock:
            self._anomalies.append(anomaly)
        return anomaly

    def query_anomalies(self, metric_filter: MetricFilter) -> List[Anomaly]:
        bounds = metric_filter.resolve_bounds()
        matching = [
            a for a in list(self._anomalies)
            if metric_filter.matches(a.resource_id, a.resource_type, a.timestamp, bounds)
        ]
        matching.sort(key=lambda a: a.timestamp, reverse=True)
        limit = metric_filter.limit or self.default_anomaly_limit
        return matching[:limit]

    def latest_metric(self, resource_id: str) -> Optional[ResourceMetric]:
        candidates = [m for m in list(self._metrics) if m.resource_id == resource_id]
        if not candidates:
            return None
        return max(candidates, key=lambda m: m.timestamp)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Drop metrics older than the retention window.

        Returns:
            Number of metrics removed
        """
        cutoff = (ensure_utc(now) if now else utc_now()) - timedelta(days=self.retention_days)
        with self._lock:
            before = len(self._metrics)
            self._metrics = [m for m in self._metrics if m.timestamp >= cutoff]
            removed = before - len(self._metrics)

        if removed:
            logger.debug(f"Purged {removed} expired metrics")
        return removed

    def __len__(self) -> int:
        return len(self._metrics)
