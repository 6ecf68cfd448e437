"""
Prometheus-style metrics for the analytics engine.

Counts analytics calls and detected anomalies and records call durations.
Metrics are exposed in Prometheus text format.
"""

from typing import Dict, Optional
import threading


class MetricsCollector:
    """
    Singleton metrics collector.

    Collects counters and histograms in memory and renders them in
    Prometheus-compatible text format.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize metrics storage."""
        self._counters: Dict[str, Dict[str, int]] = {}
        self._histograms: Dict[str, Dict[str, list]] = {}
        self._write_lock = threading.Lock()

    def increment_counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None):
        """
        Increment a counter metric.

        Args:
            name: Metric name
            value: Increment amount (default 1)
            labels: Label dictionary
        """
        label_key = self._make_label_key(labels or {})

        with self._write_lock:
            series = self._counters.setdefault(name, {})
            series[label_key] = series.get(label_key, 0) + value

    def record_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """
        Record a histogram observation.

        Args:
            name: Metric name
            value: Observed value
            labels: Label dictionary
        """
        label_key = self._make_label_key(labels or {})

        with self._write_lock:
            self._histograms.setdefault(name, {}).setdefault(label_key, []).append(value)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Return the current value of a counter (0 if never incremented)."""
        return self._counters.get(name, {}).get(self._make_label_key(labels or {}), 0)

    def get_metrics(self) -> str:
        """
        Get all metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        for name, labels_dict in self._counters.items():
            lines.append(f"# TYPE {name} counter")
            for label_key, value in labels_dict.items():
                lines.append(f"{name}{{{label_key}}} {value}")

        # Histograms (simplified - just count and sum)
        for name, labels_dict in self._histograms.items():
            lines.append(f"# TYPE {name} histogram")
            for label_key, values in labels_dict.items():
                lines.append(f"{name}_count{{{label_key}}} {len(values)}")
                lines.append(f"{name}_sum{{{label_key}}} {sum(values)}")

        return "\n".join(lines)

    def reset(self) -> None:
        """Drop all collected series."""
        with self._write_lock:
            self._counters.clear()
            self._histograms.clear()

    def _make_label_key(self, labels: Dict[str, str]) -> str:
        """Convert label dict to string key."""
        if not labels:
            return ""
        return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))


metrics = MetricsCollector()


def track_analysis_duration(operation: str, duration_seconds: float, status: str = "success"):
    """Track duration of an analytics call."""
    metrics.record_histogram(
        "habitat_analytics_duration_seconds",
        duration_seconds,
        {"operation": operation, "status": status}
    )


def track_analysis_total(operation: str, status: str = "success"):
    """Increment total analytics call counter."""
    metrics.increment_counter(
        "habitat_analytics_total",
        1,
        {"operation": operation, "status": status}
    )


def track_anomalies_detected(anomaly_type: str, severity: str, count: int = 1):
    """Increment detected anomaly counter."""
    metrics.increment_counter(
        "habitat_anomalies_detected_total",
        count,
        {"type": anomaly_type, "severity": severity}
    )


def get_metrics_text() -> str:
    """
    Get all metrics in Prometheus text format.

    This can be exposed via an HTTP endpoint (e.g., /metrics).
    """
    return metrics.get_metrics()
