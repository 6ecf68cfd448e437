"""
Health check API endpoints.

Provides health and readiness checks for monitoring.
"""

import logging
import time
from typing import Dict

from ..exceptions import StorageError
from ..storage.base import MetricStore
from ..version import get_version_info

logger = logging.getLogger(__name__)

_start_time = time.time()

READINESS_CHECK_RESOURCE = "__readiness_check__"


def get_health_status() -> Dict:
    """
    Get health check status.

    Returns:
        Health status dictionary
    """
    return {
        "status": "healthy",
        "uptime_seconds": round(time.time() - _start_time, 2),
        "service": "habitat-analytics",
        "version": get_version_info()["version"],
    }


def get_readiness_status(store: MetricStore) -> Dict:
    """
    Get readiness check status.

    The metric store is considered ready when a lookup completes.
    """
    checks = {"metric_store": True}
    try:
        store.latest_metric(READINESS_CHECK_RESOURCE)
    except StorageError as e:
        logger.warning(f"Metric store not ready: {e}")
        checks["metric_store"] = False

    is_ready = all(checks.values())

    return {
        "status": "ready" if is_ready else "not_ready",
        "checks": checks,
    }


def get_version_payload() -> Dict:
    """Version information for the /version endpoint."""
    info = get_version_info()
    return {
        "version": info["version"],
        "api_version": info["api_version"],
        "platform": info["name"],
    }
