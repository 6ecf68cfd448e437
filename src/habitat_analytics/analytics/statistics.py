"""
Statistics engine.

Pure functions over numeric samples: central tendency, spread and the
per-resource aggregated statistics built on top of them.
"""
import logging
import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

from ..constants import PEAK_USAGE_COUNT, STATS_DECIMALS
from ..exceptions import EmptySampleError
from ..models import AggregatedStats, PeakUsage, ResourceMetric, TimeRange
from ..utils import round_half_away

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleSummary:
    """Rounded summary of a numeric sample."""
    min: float
    max: float
    average: float
    median: float
    std_deviation: float


def _require_values(values: Sequence[float]) -> None:
    if len(values) == 0:
        raise EmptySampleError("Cannot compute statistics on an empty sample")


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. Raises EmptySampleError on empty input."""
    _require_values(values)
    return sum(values) / len(values)


def population_variance(values: Sequence[float]) -> float:
    """Variance dividing by N. Raises EmptySampleError on empty input."""
    _require_values(values)
    return statistics.pvariance(values)


def population_std_dev(values: Sequence[float]) -> float:
    """Standard deviation dividing by N. Raises EmptySampleError on empty input."""
    _require_values(values)
    return statistics.pstdev(values)


def summarize(values: Sequence[float]) -> SampleSummary:
    """
    Summarise a numeric sample.

    The median averages the two central values for even-length samples.
    Standard deviation is the population form. All figures are rounded to
    two decimals, ties away from zero.

    Args:
        values: Non-empty numeric sample

    Returns:
        SampleSummary

    Raises:
        EmptySampleError: If ``values`` is empty
    """
    _require_values(values)

    return SampleSummary(
        min=round_half_away(min(values), STATS_DECIMALS),
        max=round_half_away(max(values), STATS_DECIMALS),
        average=round_half_away(mean(values), STATS_DECIMALS),
        median=round_half_away(statistics.median(values), STATS_DECIMALS),
        std_deviation=round_half_away(population_std_dev(values), STATS_DECIMALS),
    )


def build_aggregated_stats(
    resource_id: str,
    metrics: Sequence[ResourceMetric],
    time_range: TimeRange,
) -> Optional[AggregatedStats]:
    """
    Build AggregatedStats for one resource's metrics.

    Returns None for an empty group instead of calling into ``summarize``.
    Peak usage times are the top five observations by consumption rate,
    highest first; ties keep chronological order.
    """
    if not metrics:
        logger.debug(f"No metrics for {resource_id}, skipping aggregated stats")
        return None

    ordered = sorted(metrics, key=lambda m: m.timestamp)
    summary = summarize([m.level for m in ordered])
    total_consumption = sum(m.consumption_rate for m in ordered)

    peaks = sorted(ordered, key=lambda m: m.consumption_rate, reverse=True)[:PEAK_USAGE_COUNT]

    return AggregatedStats(
        resource_id=resource_id,
        resource_type=ordered[0].resource_type,
        time_range=time_range,
        min=summary.min,
        max=summary.max,
        average=summary.average,
        median=summary.median,
        std_deviation=summary.std_deviation,
        total_consumption=round_half_away(total_consumption, STATS_DECIMALS),
        peak_usage_times=[PeakUsage(timestamp=m.timestamp, level=m.level) for m in peaks],
    )
