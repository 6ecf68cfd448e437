"""
Shared fixtures for analytics tests.
"""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

import pytest

from habitat_analytics.metrics import metrics
from habitat_analytics.models import ResourceMetric
from habitat_analytics.storage import InMemoryMetricStore

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)

MetricFactory = Callable[..., List[ResourceMetric]]


@pytest.fixture
def make_metrics() -> MetricFactory:
    """Build an hourly metric series from a list of levels."""
    counter = itertools.count()

    def factory(
        levels: Sequence[float],
        resource_id: str = "oxygen-1",
        resource_type: str = "oxygen",
        start: Optional[datetime] = None,
        step_hours: float = 1.0,
        consumption: Optional[Sequence[float]] = None,
    ) -> List[ResourceMetric]:
        start = start or BASE_TIME
        rates = consumption or [1.0] * len(levels)
        return [
            ResourceMetric(
                id=f"metric-{next(counter)}",
                resource_id=resource_id,
                resource_type=resource_type,
                timestamp=start + timedelta(hours=i * step_hours),
                level=level,
                consumption_rate=rate,
            )
            for i, (level, rate) in enumerate(zip(levels, rates))
        ]

    return factory


@pytest.fixture
def recent_start() -> Callable[[int], datetime]:
    """Start time such that ``n`` hourly points end one hour ago."""
    def start_for(n: int) -> datetime:
        now = datetime.now(timezone.utc).replace(microsecond=0)
        return now - timedelta(hours=n)
    return start_for


@pytest.fixture
def memory_store() -> InMemoryMetricStore:
    return InMemoryMetricStore()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Isolate the process-wide metrics collector between tests."""
    metrics.reset()
    yield
    metrics.reset()


