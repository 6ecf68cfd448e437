"""
Custom exception types for Habitat Analytics.

Provides specific exception classes for better error handling and debugging.
"""


class HabitatAnalyticsError(Exception):
    """Base exception for all Habitat Analytics errors."""
    pass


# Analysis errors
class AnalysisError(HabitatAnalyticsError):
    """Base exception for analysis errors."""
    pass


class EmptySampleError(AnalysisError):
    """Statistics requested on an empty sample."""
    pass


class UndefinedRegressionError(AnalysisError):
    """Regression quantity is undefined for the given sample size."""
    pass


# Storage errors
class StorageError(HabitatAnalyticsError):
    """Metric store read or write failed."""
    pass


# Configuration errors
class ConfigurationError(HabitatAnalyticsError):
    """Base exception for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError, ValueError):
    """Invalid configuration."""
    pass


# API errors
class APIError(HabitatAnalyticsError):
    """Base exception for API errors."""
    pass


class BadRequestError(APIError):
    """Invalid API request."""
    pass


__all__ = [
    "HabitatAnalyticsError",
    "AnalysisError",
    "EmptySampleError",
    "UndefinedRegressionError",
    "StorageError",
    "ConfigurationError",
    "InvalidConfigError",
    "APIError",
    "BadRequestError",
]
