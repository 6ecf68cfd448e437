"""
Version information for Habitat Analytics.

This module provides a single source of truth for version information
across the entire codebase.
"""

__version__ = "1.0.0"

VERSION_INFO = {
    "version": __version__,
    "api_version": "v1",
    "platform": "habitat",
    "name": "habitat-analytics",
    "full_name": "Habitat Dashboard Analytics Engine",
}


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_version_info() -> dict:
    """Return detailed version information."""
    return VERSION_INFO.copy()
