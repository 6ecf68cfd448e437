"""
SQLite-based metric store.

Persists resource metrics and detected anomalies, with retention cleanup
matching the dashboard's 90-day metric lifetime.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar

from ..constants import DEFAULT_RETENTION_DAYS
from ..exceptions import StorageError
from ..models import Anomaly, MetricMetadata, ResourceMetric
from ..utils import ensure_utc, utc_now
from .base import MetricFilter, MetricStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_epoch(value: datetime) -> float:
    return ensure_utc(value).timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SQLiteMetricStore(MetricStore):
    """
    SQLite storage for metrics and anomalies.

    Database errors and rows that fail model validation are logged and
    re-raised as StorageError.

    Example:
        >>> store = SQLiteMetricStore("habitat_analytics.db")
        >>> store.write_metric(metric)
        >>> recent = store.query_metrics(MetricFilter(resource_id="oxygen-1"))
        >>> store.cleanup_expired()
    """

    def __init__(self, db_path: str | Path = "habitat_analytics.db",
                 retention_days: int = DEFAULT_RETENTION_DAYS):
        """
        Initialize metric store.

        Args:
            db_path: Path to SQLite database file
            retention_days: Age after which metrics are removed by cleanup
        """
        self.db_path = Path(db_path)
        self.retention_days = retention_days
        self._init_database()

    @classmethod
    def from_config(cls, config) -> 'SQLiteMetricStore':
        """Build a store from an AnalyticsConfig."""
        store = cls(config.db_path, retention_days=config.retention_days)
        store.default_metric_limit = config.metric_query_limit
        store.default_anomaly_limit = config.anomaly_query_limit
        return store

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS resource_metrics (
                    id TEXT PRIMARY KEY,
                    resource_id TEXT NOT NULL,
                    resource_type TEXT NOT NULL,
                    ts REAL NOT NULL,
                    level REAL NOT NULL,
                    consumption_rate REAL NOT NULL,
                    metadata TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS anomalies (
                    id TEXT PRIMARY KEY,
                    resource_id TEXT NOT NULL,
                    resource_type TEXT NOT NULL,
                    ts REAL NOT NULL,
                    type TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    description TEXT NOT NULL,
                    expected_value REAL NOT NULL,
                    actual_value REAL NOT NULL,
                    deviation REAL NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_metrics_resource_ts
                ON resource_metrics(resource_id, ts DESC)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_metrics_type_ts
                ON resource_metrics(resource_type, ts DESC)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_anomalies_resource_ts
                ON anomalies(resource_id, ts DESC)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_anomalies_severity_ts
                ON anomalies(severity, ts DESC)
            """)

            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Error opening database {self.db_path}: {e}")
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}")
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _where(self, metric_filter: MetricFilter) -> Tuple[str, List[Any]]:
        clauses = []
        params: List[Any] = []

        if metric_filter.resource_id:
            clauses.append("resource_id = ?")
            params.append(metric_filter.resource_id)

        if metric_filter.resource_type:
            clauses.append("resource_type = ?")
            params.append(metric_filter.resource_type)

        lower, upper = metric_filter.resolve_bounds()
        if lower:
            clauses.append("ts >= ?")
            params.append(_to_epoch(lower))
        if upper:
            clauses.append("ts <= ?")
            params.append(_to_epoch(upper))

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def write_metric(self, metric: ResourceMetric) -> ResourceMetric:
        """
        Store a metric.

        Raises:
            StorageError: On any database failure, including a duplicate id
        """
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO resource_metrics (
                    id, resource_id, resource_type, ts, level, consumption_rate, metadata
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                metric.id,
                metric.resource_id,
                metric.resource_type,
                _to_epoch(metric.timestamp),
                metric.level,
                metric.consumption_rate,
                json.dumps(metric.metadata.model_dump(exclude_none=True)) if metric.metadata else None,
            ))
            conn.commit()

        logger.debug(f"Stored metric {metric.id} for {metric.resource_id}")
        return metric

    def query_metrics(self, metric_filter: MetricFilter) -> List[ResourceMetric]:
        """Get matching metrics, newest first."""
        where, params = self._where(metric_filter)
        params.append(metric_filter.limit or self.default_metric_limit)

        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM resource_metrics{where} ORDER BY ts DESC LIMIT ?",
                params,
            ).fetchall()

        return [self._decode(self._row_to_metric, r) for r in rows]

    def latest_metric(self, resource_id: str) -> Optional[ResourceMetric]:
        """Get the newest metric for a resource."""
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT * FROM resource_metrics
                WHERE resource_id = ?
                ORDER BY ts DESC LIMIT 1
            """, (resource_id,)).fetchone()

        return self._decode(self._row_to_metric, row) if row else None

    def write_anomaly(self, anomaly: Anomaly) -> Anomaly:
        """
        Store an anomaly.

        Raises:
            StorageError: On any database failure
        """
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO anomalies (
                    id, resource_id, resource_type, ts, type, severity,
                    description, expected_value, actual_value, deviation
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                anomaly.id,
                anomaly.resource_id,
                anomaly.resource_type,
                _to_epoch(anomaly.timestamp),
                anomaly.type.value,
                anomaly.severity.value,
                anomaly.description,
                anomaly.expected_value,
                anomaly.actual_value,
                anomaly.deviation,
            ))
            conn.commit()

        logger.debug(f"Stored anomaly {anomaly.id} ({anomaly.type.value}) for {anomaly.resource_id}")
        return anomaly

    def query_anomalies(self, metric_filter: MetricFilter) -> List[Anomaly]:
        """Get matching anomalies, newest first."""
        where, params = self._where(metric_filter)
        params.append(metric_filter.limit or self.default_anomaly_limit)

        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM anomalies{where} ORDER BY ts DESC LIMIT ?",
                params,
            ).fetchall()

        return [self._decode(self._row_to_anomaly, r) for r in rows]

    def cleanup_expired(self, days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """
        Remove metrics older than the retention window.

        Anomalies are kept.

        Args:
            days: Age threshold, defaults to the store's retention
            now: Reference instant, defaults to the current time

        Returns:
            Number of metrics removed
        """
        days = self.retention_days if days is None else days
        cutoff = (ensure_utc(now) if now else utc_now()) - timedelta(days=days)

        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM resource_metrics WHERE ts < ?",
                (_to_epoch(cutoff),),
            )
            conn.commit()
            count = cursor.rowcount

        if count:
            logger.info(f"Cleaned up {count} expired metrics")
        return count

    @staticmethod
    def _row_to_metric(row: sqlite3.Row) -> ResourceMetric:
        metadata = json.loads(row['metadata']) if row['metadata'] else None
        return ResourceMetric(
            id=row['id'],
            resource_id=row['resource_id'],
            resource_type=row['resource_type'],
            timestamp=_from_epoch(row['ts']),
            level=row['level'],
            consumption_rate=row['consumption_rate'],
            metadata=MetricMetadata(**metadata) if metadata is not None else None,
        )

    @staticmethod
    def _row_to_anomaly(row: sqlite3.Row) -> Anomaly:
        return Anomaly(
            id=row['id'],
            resource_id=row['resource_id'],
            resource_type=row['resource_type'],
            timestamp=_from_epoch(row['ts']),
            type=row['type'],
            severity=row['severity'],
            description=row['description'],
            expected_value=row['expected_value'],
            actual_value=row['actual_value'],
            deviation=row['deviation'],
        )

    @staticmethod
    def _decode(row_to_model: Callable[[sqlite3.Row], T], row: sqlite3.Row) -> T:
        """Build a model from a row; malformed rows raise StorageError."""
        try:
            return row_to_model(row)
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed row {row['id']}: {e}")
            raise StorageError(f"Malformed row {row['id']}: {e}") from e
