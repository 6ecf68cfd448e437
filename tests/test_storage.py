"""
Tests for metric stores.

Both stores are exercised through the same scenarios.
"""
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from habitat_analytics.config import AnalyticsConfig
from habitat_analytics.exceptions import StorageError
from habitat_analytics.models import Anomaly, AnomalyType, MetricMetadata, ResourceMetric, Severity, TimeRange
from habitat_analytics.storage import InMemoryMetricStore, MetricFilter, SQLiteMetricStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryMetricStore()
    return SQLiteMetricStore(tmp_path / "metrics.db")


def _anomaly(anomaly_id: str, timestamp: datetime, resource_id: str = "oxygen-1") -> Anomaly:
    return Anomaly(
        id=anomaly_id,
        resource_id=resource_id,
        resource_type="oxygen",
        timestamp=timestamp,
        type=AnomalyType.SPIKE,
        severity=Severity.HIGH,
        description="Unusual spike in oxygen levels detected",
        expected_value=100.0,
        actual_value=140.0,
        deviation=40.0,
    )


class TestMetricFilter:
    """Tests for time bound resolution."""

    def test_named_window(self):
        """Test the window supplies the lower bound."""
        lower, upper = MetricFilter(time_range=TimeRange.LAST_24_HOURS).resolve_bounds(now=NOW)

        assert lower == NOW - timedelta(hours=24)
        assert upper is None

    def test_explicit_start_wins(self):
        """Test an explicit start overrides the named window."""
        start = NOW - timedelta(days=60)
        metric_filter = MetricFilter(start=start, time_range=TimeRange.LAST_24_HOURS)

        lower, _ = metric_filter.resolve_bounds(now=NOW)

        assert lower == start

    def test_end_only_keeps_window(self):
        """Test an end bound alone is combined with the window."""
        end = NOW - timedelta(hours=2)
        metric_filter = MetricFilter(end=end, time_range=TimeRange.LAST_7_DAYS)

        lower, upper = metric_filter.resolve_bounds(now=NOW)

        assert lower == NOW - timedelta(days=7)
        assert upper == end

    def test_no_bounds(self):
        """Test an unbounded filter."""
        assert MetricFilter().resolve_bounds(now=NOW) == (None, None)

    def test_naive_bounds_are_utc(self):
        """Test naive datetimes are read as UTC."""
        lower, _ = MetricFilter(start=datetime(2026, 1, 1)).resolve_bounds(now=NOW)

        assert lower == datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_query_newest_first(store, make_metrics, recent_start):
    """Test results come back in descending timestamp order."""
    for metric in make_metrics([1.0, 2.0, 3.0], start=recent_start(3)):
        store.write_metric(metric)

    results = store.query_metrics(MetricFilter(resource_id="oxygen-1"))

    assert [m.level for m in results] == [3.0, 2.0, 1.0]


def test_query_filters(store, make_metrics, recent_start):
    """Test resource id and type filters."""
    start = recent_start(3)
    for metric in make_metrics([1.0, 2.0], resource_id="oxygen-1", start=start):
        store.write_metric(metric)
    for metric in make_metrics([5.0], resource_id="water-1", resource_type="water", start=start):
        store.write_metric(metric)

    assert len(store.query_metrics(MetricFilter(resource_id="oxygen-1"))) == 2
    assert [m.resource_id for m in store.query_metrics(MetricFilter(resource_type="water"))] == ["water-1"]
    assert len(store.query_metrics(MetricFilter())) == 3


def test_query_time_window(store, make_metrics, recent_start):
    """Test the named window excludes older metrics."""
    # Points at 47.5h .. 0.5h ago; the last 24 fall inside 24h
    for metric in make_metrics([float(i) for i in range(48)], start=recent_start(48) + timedelta(minutes=30)):
        store.write_metric(metric)

    results = store.query_metrics(MetricFilter(time_range=TimeRange.LAST_24_HOURS))

    assert len(results) == 24
    assert min(m.level for m in results) == 24.0


def test_query_limit(store, make_metrics, recent_start):
    """Test the result limit keeps the newest records."""
    for metric in make_metrics([float(i) for i in range(10)], start=recent_start(10)):
        store.write_metric(metric)

    results = store.query_metrics(MetricFilter(limit=3))

    assert [m.level for m in results] == [9.0, 8.0, 7.0]


def test_metric_roundtrip(store):
    """Test stored fields survive a write and read."""
    metric = ResourceMetric(
        id="metric-1",
        resource_id="oxygen-1",
        resource_type="oxygen",
        timestamp=NOW,
        level=92.5,
        consumption_rate=1.25,
        metadata=MetricMetadata(temperature=21.5, pressure=101.3),
    )
    store.write_metric(metric)

    stored = store.latest_metric("oxygen-1")

    assert stored == metric
    assert stored.timestamp.tzinfo is not None


def test_latest_metric(store, make_metrics):
    """Test the most recent metric is returned."""
    for metric in make_metrics([1.0, 2.0, 3.0]):
        store.write_metric(metric)

    assert store.latest_metric("oxygen-1").level == 3.0
    assert store.latest_metric("missing") is None


def test_anomalies_roundtrip(store, recent_start):
    """Test anomalies are stored and returned newest first."""
    start = recent_start(5)
    store.write_anomaly(_anomaly("a-1", start))
    store.write_anomaly(_anomaly("a-2", start + timedelta(hours=2)))
    store.write_anomaly(_anomaly("a-3", start, resource_id="water-1"))

    results = store.query_anomalies(MetricFilter(resource_id="oxygen-1"))

    assert [a.id for a in results] == ["a-2", "a-1"]
    assert results[0].type == AnomalyType.SPIKE
    assert results[0].severity == Severity.HIGH
    assert results[0].deviation == 40.0


def test_sqlite_duplicate_id_raises(tmp_path, make_metrics):
    """Test a primary key conflict surfaces as StorageError."""
    store = SQLiteMetricStore(tmp_path / "metrics.db")
    metric = make_metrics([1.0])[0]
    store.write_metric(metric)

    with pytest.raises(StorageError):
        store.write_metric(metric)


def test_sqlite_persists_across_instances(tmp_path, make_metrics):
    """Test data is visible to a second store on the same file."""
    db_path = tmp_path / "metrics.db"
    SQLiteMetricStore(db_path).write_metric(make_metrics([7.0])[0])

    assert SQLiteMetricStore(db_path).latest_metric("oxygen-1").level == 7.0


def test_sqlite_cleanup_expired(tmp_path, make_metrics):
    """Test metrics older than retention are removed and anomalies kept."""
    store = SQLiteMetricStore(tmp_path / "metrics.db", retention_days=90)
    old = make_metrics([1.0, 2.0], start=NOW - timedelta(days=100))
    fresh = make_metrics([3.0], start=NOW - timedelta(days=1))
    for metric in old + fresh:
        store.write_metric(metric)
    store.write_anomaly(_anomaly("a-1", NOW - timedelta(days=100)))

    removed = store.cleanup_expired(now=NOW)

    assert removed == 2
    assert [m.level for m in store.query_metrics(MetricFilter())] == [3.0]
    assert len(store.query_anomalies(MetricFilter())) == 1


def test_memory_purge_expired(make_metrics):
    """Test the in-memory store drops metrics past retention."""
    store = InMemoryMetricStore(retention_days=30)
    for metric in make_metrics([1.0], start=NOW - timedelta(days=31)) + make_metrics([2.0], start=NOW):
        store.write_metric(metric)

    assert store.purge_expired(now=NOW) == 1
    assert len(store) == 1


def test_sqlite_from_config(tmp_path):
    """Test store settings come from configuration."""
    config = AnalyticsConfig(db_path=str(tmp_path / "cfg.db"), retention_days=30, metric_query_limit=50)

    store = SQLiteMetricStore.from_config(config)

    assert store.retention_days == 30
    assert store.default_metric_limit == 50
    assert (tmp_path / "cfg.db").exists()


def test_sqlite_malformed_row_raises_storage_error(tmp_path):
    """Test rows that fail model validation surface as StorageError."""
    db_path = tmp_path / "metrics.db"
    store = SQLiteMetricStore(db_path)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO resource_metrics (id, resource_id, resource_type, ts, level, consumption_rate, metadata) "
            "VALUES ('bad-1', 'oxygen-1', 'oxygen', ?, -5.0, 1.0, NULL)",
            (NOW.timestamp(),),
        )
        conn.execute(
            "INSERT INTO anomalies (id, resource_id, resource_type, ts, type, severity, description, "
            "expected_value, actual_value, deviation) "
            "VALUES ('bad-2', 'oxygen-1', 'oxygen', ?, 'meltdown', 'high', 'x', 1.0, 2.0, 3.0)",
            (NOW.timestamp(),),
        )

    with pytest.raises(StorageError, match="bad-1"):
        store.query_metrics(MetricFilter())
    with pytest.raises(StorageError, match="bad-1"):
        store.latest_metric("oxygen-1")
    with pytest.raises(StorageError, match="bad-2"):
        store.query_anomalies(MetricFilter())
