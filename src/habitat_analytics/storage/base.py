"""
Metric store interface.

The analytics engine reads metrics and writes anomalies only through this
interface. Implementations must tolerate concurrent reads; serialising
concurrent writes is their own concern.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..constants import DEFAULT_ANOMALY_QUERY_LIMIT, DEFAULT_METRIC_QUERY_LIMIT
from ..models import Anomaly, AnalyticsQuery, ResourceMetric, TimeRange
from ..utils import ensure_utc, utc_now


@dataclass(frozen=True)
class MetricFilter:
    """
    Filter for metric and anomaly queries.

    Attributes:
        resource_id: Restrict to one resource
        resource_type: Restrict to one resource type
        start: Explicit inclusive lower bound
        end: Explicit inclusive upper bound
        time_range: Named lookback window used when ``start`` is absent
        limit: Maximum number of records returned
    """
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    time_range: Optional[TimeRange] = None
    limit: Optional[int] = None

    @classmethod
    def from_query(cls, query: AnalyticsQuery, limit: Optional[int] = None) -> 'MetricFilter':
        """Build a filter from an analytics query."""
        return cls(
            resource_id=query.resource_id,
            resource_type=query.resource_type,
            start=query.start_date,
            end=query.end_date,
            time_range=query.time_range,
            limit=limit,
        )

    def resolve_bounds(self, now: Optional[datetime] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Resolve the effective (lower, upper) time bounds.

        An explicit ``start`` wins over the named window. With only ``end``
        given, the named window still supplies the lower bound.
        """
        lower = ensure_utc(self.start) if self.start else None
        upper = ensure_utc(self.end) if self.end else None

        if lower is None and self.time_range is not None:
            now = ensure_utc(now) if now else utc_now()
            lower = now - timedelta(hours=TimeRange(self.time_range).hours)

        return lower, upper

    def matches(self, resource_id: str, resource_type: str, timestamp: datetime,
                bounds: Tuple[Optional[datetime], Optional[datetime]]) -> bool:
        """Check a record against this filter using pre-resolved bounds."""
        if self.resource_id and resource_id != self.resource_id:
            return False
        if self.resource_type and resource_type != self.resource_type:
            return False
        lower, upper = bounds
        if lower and timestamp < lower:
            return False
        if upper and timestamp > upper:
            return False
        return True


class MetricStore(ABC):
    """Persistence for resource metrics and detected anomalies."""

    default_metric_limit = DEFAULT_METRIC_QUERY_LIMIT
    default_anomaly_limit = DEFAULT_ANOMALY_QUERY_LIMIT

    @abstractmethod
    def write_metric(self, metric: ResourceMetric) -> ResourceMetric:
        """Persist a metric and return it."""

    @abstractmethod
    def query_metrics(self, metric_filter: MetricFilter) -> List[ResourceMetric]:
        """Return matching metrics, newest first."""

    @abstractmethod
    def write_anomaly(self, anomaly: Anomaly) -> Anomaly:
        """Persist an anomaly and return it."""

    @abstractmethod
    def query_anomalies(self, metric_filter: MetricFilter) -> List[Anomaly]:
        """Return matching anomalies, newest first."""

    @abstractmethod
    def latest_metric(self, resource_id: str) -> Optional[ResourceMetric]:
        """Return the most recent metric for a resource, if any."""
