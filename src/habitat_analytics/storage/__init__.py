"""
Storage and persistence for Habitat Analytics.

Provides the metric store interface used by the analytics engine and its
in-memory and SQLite implementations.
"""

from .base import MetricFilter, MetricStore
from .memory_store import InMemoryMetricStore
from .sqlite_store import SQLiteMetricStore

__all__ = ["MetricFilter", "MetricStore", "InMemoryMetricStore", "SQLiteMetricStore"]
