"""
Data models for Habitat Analytics using Pydantic for validation.

Python attributes are snake_case; ``to_dict()`` emits the camelCase field
names consumed by the dashboard's REST and push layers.
"""
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_TIME_RANGE, TIME_RANGE_HOURS
from .utils import ensure_utc


@lru_cache(maxsize=1024)
def _parse_timestamp_cached(timestamp_str: str) -> datetime:
    """Parse a timestamp string, caching repeated values."""
    return date_parser.parse(timestamp_str)


def coerce_timestamp(value: Any) -> Any:
    """
    Normalise timestamps to timezone-aware UTC datetimes.

    Accepts datetimes, ISO 8601 (or other dateutil-parsable) strings and
    epoch seconds. Naive values are taken to be UTC.

    Raises:
        ValueError: If a string cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return ensure_utc(_parse_timestamp_cached(value))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
    return value


class CamelModel(BaseModel):
    """Base model serialising to camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class TimeRange(str, Enum):
    """Named relative lookback windows."""
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"

    @property
    def hours(self) -> int:
        return TIME_RANGE_HOURS[self.value]


class AnomalyType(str, Enum):
    """Kinds of anomaly the detector reports."""
    SPIKE = "spike"
    DROP = "drop"
    LEAK_DETECTED = "leak_detected"
    UNUSUAL_PATTERN = "unusual_pattern"


class Severity(str, Enum):
    """Anomaly severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of change over a window."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class MetricMetadata(CamelModel):
    """Environmental readings captured alongside a metric."""
    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None


class ResourceMetric(CamelModel):
    """
    One timestamped observation of a resource.

    Attributes:
        id: Unique metric identifier
        resource_id: Resource the observation belongs to
        resource_type: Resource category (oxygen, water, ...)
        timestamp: Observation time (UTC)
        level: Resource level, never negative
        consumption_rate: Consumption rate, never negative
        metadata: Optional environmental readings
    """
    model_config = ConfigDict(frozen=True)

    id: str
    resource_id: str
    resource_type: str
    timestamp: datetime
    level: float = Field(ge=0)
    consumption_rate: float = Field(ge=0)
    metadata: Optional[MetricMetadata] = None

    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return coerce_timestamp(v)


class Anomaly(CamelModel):
    """A detected anomaly. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str
    resource_id: str
    resource_type: str
    timestamp: datetime
    type: AnomalyType
    severity: Severity
    description: str
    expected_value: float
    actual_value: float
    deviation: float

    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return coerce_timestamp(v)


class TrendPoint(CamelModel):
    """Historical point, optionally paired with a predicted level."""
    timestamp: datetime
    level: float
    predicted_level: Optional[float] = None


class TrendData(CamelModel):
    """Trend summary for one resource."""
    resource_id: str
    resource_type: str
    time_range: TimeRange
    data: List[TrendPoint] = Field(default_factory=list)
    trend: TrendDirection
    change_percentage: float
    average_consumption: float


class PeakUsage(CamelModel):
    """A high-consumption observation."""
    timestamp: datetime
    level: float


class AggregatedStats(CamelModel):
    """Aggregated statistics for one resource."""
    resource_id: str
    resource_type: str
    time_range: TimeRange
    min: float
    max: float
    average: float
    median: float
    std_deviation: float
    total_consumption: float
    peak_usage_times: List[PeakUsage] = Field(default_factory=list)


class ConfidenceInterval(CamelModel):
    """Lower and upper bound of a prediction band."""
    lower: float
    upper: float


class Prediction(CamelModel):
    """Forecast point with its 95% confidence band."""
    timestamp: datetime
    predicted_level: float
    confidence_interval: ConfidenceInterval


class LinearRegression(CamelModel):
    """Least-squares fit of level over elapsed hours plus its forecast."""
    slope: float = 0.0
    intercept: float = 0.0
    r_squared: float = 0.0
    predictions: List[Prediction] = Field(default_factory=list)


class AnalyticsQuery(CamelModel):
    """
    Scope of an analytics call.

    Explicit ``start_date``/``end_date`` bounds take precedence over the
    named ``time_range`` window.
    """
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None
    time_range: TimeRange = TimeRange(DEFAULT_TIME_RANGE)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    include_predictions: bool = True

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return coerce_timestamp(v)

    @model_validator(mode='after')
    def check_bounds(self) -> 'AnalyticsQuery':
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self
