"""
Anomaly detection engine for habitat resource metrics.

Four independent passes run over each resource's chronologically ordered
series:

* spike / drop: global z-score of the level above a threshold
* leak: a trailing window of strictly decreasing levels whose average
  per-step decrease is steep relative to the global standard deviation
* unusual pattern: trailing-window variance well above the global variance

A single point can trigger more than one anomaly type.
"""
import logging
import uuid
from typing import Callable, List, Optional, Sequence

from ..constants import (
    DEFAULT_LEAK_RATE_FACTOR,
    DEFAULT_LEAK_WINDOW,
    DEFAULT_MIN_ANOMALY_SAMPLES,
    DEFAULT_PATTERN_VARIANCE_FACTOR,
    DEFAULT_PATTERN_WINDOW,
    DEFAULT_Z_SCORE_THRESHOLD,
    SEVERITY_CRITICAL_PERCENT,
    SEVERITY_HIGH_PERCENT,
    SEVERITY_MEDIUM_PERCENT,
    STATS_DECIMALS,
)
from ..models import Anomaly, AnomalyType, ResourceMetric, Severity
from ..utils import round_half_away
from .statistics import mean, population_std_dev, population_variance

logger = logging.getLogger(__name__)


def calculate_severity(deviation: float) -> Severity:
    """Map a deviation percentage to a severity level."""
    if deviation > SEVERITY_CRITICAL_PERCENT:
        return Severity.CRITICAL
    if deviation > SEVERITY_HIGH_PERCENT:
        return Severity.HIGH
    if deviation > SEVERITY_MEDIUM_PERCENT:
        return Severity.MEDIUM
    return Severity.LOW


def _percent_of(difference: float, reference: float) -> float:
    if reference == 0:
        return 0.0
    return difference / reference * 100


class AnomalyDetector:
    """
    Statistical anomaly detector for one resource's metric series.

    The detector is stateless between calls: every statistic is computed
    from the series passed to ``detect``. Each anomaly receives a fresh
    identifier, so running detection twice over the same series yields
    distinct records.

    Example:
        >>> detector = AnomalyDetector()
        >>> anomalies = detector.detect("oxygen-1", sorted_metrics)
        >>> [a.type for a in anomalies]
    """

    def __init__(
        self,
        min_samples: int = DEFAULT_MIN_ANOMALY_SAMPLES,
        z_threshold: float = DEFAULT_Z_SCORE_THRESHOLD,
        leak_window: int = DEFAULT_LEAK_WINDOW,
        leak_rate_factor: float = DEFAULT_LEAK_RATE_FACTOR,
        pattern_window: int = DEFAULT_PATTERN_WINDOW,
        pattern_variance_factor: float = DEFAULT_PATTERN_VARIANCE_FACTOR,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize anomaly detector.

        Args:
            min_samples: Groups smaller than this produce no anomalies
            z_threshold: Z-score above which a level is a spike or drop
            leak_window: Trailing points inspected for a leak
            leak_rate_factor: Required mean decrease per step, as a
                fraction of the global standard deviation
            pattern_window: Trailing points whose variance is compared
                with the global variance
            pattern_variance_factor: Local/global variance ratio that flags
                an unusual pattern
            id_factory: Identifier generator (UUID4 strings by default)
        """
        self.min_samples = min_samples
        self.z_threshold = z_threshold
        self.leak_window = leak_window
        self.leak_rate_factor = leak_rate_factor
        self.pattern_window = pattern_window
        self.pattern_variance_factor = pattern_variance_factor
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    @classmethod
    def from_config(cls, config) -> 'AnomalyDetector':
        """Build a detector from an AnalyticsConfig."""
        return cls(
            min_samples=config.min_anomaly_samples,
            z_threshold=config.z_score_threshold,
            leak_window=config.leak_window,
            leak_rate_factor=config.leak_rate_factor,
            pattern_window=config.pattern_window,
            pattern_variance_factor=config.pattern_variance_factor,
        )

    def detect(self, resource_id: str, metrics: Sequence[ResourceMetric]) -> List[Anomaly]:
        """
        Detect anomalies in one resource's series.

        Args:
            resource_id: Resource identifier
            metrics: The resource's metrics in ascending timestamp order

        Returns:
            Anomalies in series order; empty when the group is below
            ``min_samples``
        """
        if len(metrics) < self.min_samples:
            logger.debug(
                f"Insufficient data for {resource_id}: {len(metrics)} < {self.min_samples}"
            )
            return []

        levels = [m.level for m in metrics]
        average = mean(levels)
        variance = population_variance(levels)
        std_deviation = population_std_dev(levels)

        anomalies: List[Anomaly] = []
        for i in range(1, len(metrics)):
            current = metrics[i]

            if std_deviation > 0:
                z_score = abs(current.level - average) / std_deviation
                if z_score > self.z_threshold and current.level > average:
                    anomalies.append(self._spike(resource_id, current, average))
                if z_score > self.z_threshold and current.level < average:
                    anomalies.append(self._drop(resource_id, current, average))

            if i >= self.leak_window:
                window = levels[i - self.leak_window:i]
                leak = self._check_leak(resource_id, current, window, std_deviation)
                if leak:
                    anomalies.append(leak)

            if i >= self.pattern_window and variance > 0:
                window = levels[i - self.pattern_window:i]
                pattern = self._check_pattern(resource_id, current, window, variance)
                if pattern:
                    anomalies.append(pattern)

        if anomalies:
            logger.info(f"Detected {len(anomalies)} anomalies for {resource_id}")
        return anomalies

    def _spike(self, resource_id: str, current: ResourceMetric, average: float) -> Anomaly:
        deviation = _percent_of(current.level - average, average)
        return self._build(
            resource_id,
            current,
            AnomalyType.SPIKE,
            f"Unusual spike in {current.resource_type} levels detected",
            expected=average,
            actual=current.level,
            deviation=deviation,
        )

    def _drop(self, resource_id: str, current: ResourceMetric, average: float) -> Anomaly:
        deviation = _percent_of(average - current.level, average)
        return self._build(
            resource_id,
            current,
            AnomalyType.DROP,
            f"Sudden drop in {current.resource_type} levels detected",
            expected=average,
            actual=current.level,
            deviation=deviation,
        )

    def _check_leak(
        self,
        resource_id: str,
        current: ResourceMetric,
        window: List[float],
        std_deviation: float,
    ) -> Optional[Anomaly]:
        """Strictly decreasing trailing window with a steep mean decrease."""
        strictly_decreasing = all(b < a for a, b in zip(window, window[1:]))
        if not strictly_decreasing:
            return None

        total_decrease = window[0] - window[-1]
        if total_decrease / self.leak_window <= std_deviation * self.leak_rate_factor:
            return None

        return self._build(
            resource_id,
            current,
            AnomalyType.LEAK_DETECTED,
            f"Potential leak detected in {current.resource_type} - consistent rapid "
            f"decrease over last {self.leak_window} measurements",
            expected=window[0],
            actual=current.level,
            deviation=_percent_of(total_decrease, window[0]),
        )

    def _check_pattern(
        self,
        resource_id: str,
        current: ResourceMetric,
        window: List[float],
        variance: float,
    ) -> Optional[Anomaly]:
        """Trailing-window variance well above the global variance."""
        local_variance = population_variance(window)
        if local_variance <= variance * self.pattern_variance_factor:
            return None

        return self._build(
            resource_id,
            current,
            AnomalyType.UNUSUAL_PATTERN,
            f"Unusual fluctuation pattern detected in {current.resource_type}",
            expected=variance,
            actual=round_half_away(local_variance, STATS_DECIMALS),
            deviation=_percent_of(local_variance - variance, variance),
        )

    def _build(
        self,
        resource_id: str,
        current: ResourceMetric,
        anomaly_type: AnomalyType,
        description: str,
        expected: float,
        actual: float,
        deviation: float,
    ) -> Anomaly:
        return Anomaly(
            id=self.id_factory(),
            resource_id=resource_id,
            resource_type=current.resource_type,
            timestamp=current.timestamp,
            type=anomaly_type,
            severity=calculate_severity(deviation),
            description=description,
            expected_value=round_half_away(expected, STATS_DECIMALS),
            actual_value=actual,
            deviation=round_half_away(deviation, STATS_DECIMALS),
        )
