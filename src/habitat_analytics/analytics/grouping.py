"""
Group metrics by resource before analysis.
"""
from typing import Dict, Iterable, List

from ..models import ResourceMetric


def group_by_resource(metrics: Iterable[ResourceMetric]) -> Dict[str, List[ResourceMetric]]:
    """
    Group metrics by resource id.

    Groups appear in order of each resource's first occurrence in the input.
    Each group is sorted by ascending timestamp.
    """
    grouped: Dict[str, List[ResourceMetric]] = {}
    for metric in metrics:
        grouped.setdefault(metric.resource_id, []).append(metric)

    for resource_id in grouped:
        grouped[resource_id].sort(key=lambda m: m.timestamp)

    return grouped
