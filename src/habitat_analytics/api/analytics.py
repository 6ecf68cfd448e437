"""
Analytics API endpoints.

Turns raw query parameters into analytics queries and shapes service
results into JSON-ready payloads. Routing and transport belong to the web
layer; these functions only return ``(status_code, payload)`` tuples.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..analytics.service import AnalyticsService
from ..exceptions import BadRequestError, HabitatAnalyticsError
from ..models import AnalyticsQuery, TimeRange
from ..constants import DEFAULT_TIME_RANGE

logger = logging.getLogger(__name__)

Response = Tuple[int, Any]

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise BadRequestError(f"{name} must be 'true' or 'false', got '{raw}'")


def parse_analytics_query(
    params: Mapping[str, str],
    default_time_range: str = DEFAULT_TIME_RANGE,
) -> AnalyticsQuery:
    """
    Build an AnalyticsQuery from request query parameters.

    Recognised parameters: resourceId, resourceType, timeRange (24h, 7d,
    30d, 90d; ``default_time_range`` when absent), startDate, endDate
    (ISO 8601) and includePredictions (default true).

    Raises:
        BadRequestError: On an unknown time range, unparsable date or
            inverted date bounds
    """
    raw_range = params.get("timeRange") or default_time_range
    try:
        time_range = TimeRange(raw_range)
    except ValueError:
        allowed = ", ".join(t.value for t in TimeRange)
        raise BadRequestError(f"timeRange must be one of {allowed}, got '{raw_range}'") from None

    include_predictions = _parse_bool(
        "includePredictions", params.get("includePredictions"), default=True
    )

    try:
        return AnalyticsQuery(
            resource_id=params.get("resourceId") or None,
            resource_type=params.get("resourceType") or None,
            time_range=time_range,
            start_date=params.get("startDate") or None,
            end_date=params.get("endDate") or None,
            include_predictions=include_predictions,
        )
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise BadRequestError(f"Invalid analytics query: {messages}") from e


def _handle(
    action: str,
    service: AnalyticsService,
    params: Mapping[str, str],
    call: Callable[[AnalyticsQuery], List[Any]],
) -> Response:
    try:
        query = parse_analytics_query(params, default_time_range=service.config.default_time_range)
    except BadRequestError as e:
        return 400, {"error": "Invalid request", "message": str(e)}

    try:
        results = call(query)
    except HabitatAnalyticsError as e:
        logger.error(f"Error {action}: {e}")
        return 500, {"error": f"Failed to {action}", "message": str(e)}
    except Exception as e:
        logger.exception(f"Unexpected error {action}")
        return 500, {"error": f"Failed to {action}", "message": str(e)}

    return 200, [item.to_dict() for item in results]


def handle_trends(service: AnalyticsService, params: Mapping[str, str]) -> Response:
    """GET /api/analytics/trends"""
    return _handle("get trend data", service, params, service.get_trend_data)


def handle_stats(service: AnalyticsService, params: Mapping[str, str]) -> Response:
    """GET /api/analytics/stats"""
    return _handle("get aggregated statistics", service, params, service.get_aggregated_stats)


def handle_detect_anomalies(service: AnalyticsService, params: Mapping[str, str]) -> Response:
    """GET /api/analytics/anomalies/detect"""
    return _handle("detect anomalies", service, params, service.detect_anomalies)


def handle_anomalies(service: AnalyticsService, params: Mapping[str, str]) -> Response:
    """GET /api/analytics/anomalies"""
    return _handle("get anomalies", service, params, service.get_anomalies)


ROUTES: Dict[str, Callable[[AnalyticsService, Mapping[str, str]], Response]] = {
    "/api/analytics/trends": handle_trends,
    "/api/analytics/stats": handle_stats,
    "/api/analytics/anomalies/detect": handle_detect_anomalies,
    "/api/analytics/anomalies": handle_anomalies,
}
