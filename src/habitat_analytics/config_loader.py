"""
Configuration file loader for Habitat Analytics.

Supports loading configuration from YAML and TOML files with environment
variable overrides and a standard search path.
"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

CONFIG_BASENAME = "habitat-analytics"

# section -> {file key: AnalyticsConfig field}
SECTION_FIELDS: Dict[str, Dict[str, str]] = {
    "storage": {
        "db_path": "db_path",
        "retention_days": "retention_days",
        "metric_query_limit": "metric_query_limit",
        "anomaly_query_limit": "anomaly_query_limit",
    },
    "forecast": {
        "default_time_range": "default_time_range",
        "horizon": "forecast_horizon",
        "exposed_predictions": "exposed_predictions",
    },
    "anomaly": {
        "min_samples": "min_anomaly_samples",
        "z_score_threshold": "z_score_threshold",
        "leak_window": "leak_window",
        "leak_rate_factor": "leak_rate_factor",
        "pattern_window": "pattern_window",
        "pattern_variance_factor": "pattern_variance_factor",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
    },
}

# env var suffix -> (section, key, parser)
ENV_OVERRIDES = {
    "DB_PATH": ("storage", "db_path", str),
    "RETENTION_DAYS": ("storage", "retention_days", int),
    "METRIC_QUERY_LIMIT": ("storage", "metric_query_limit", int),
    "ANOMALY_QUERY_LIMIT": ("storage", "anomaly_query_limit", int),
    "DEFAULT_TIME_RANGE": ("forecast", "default_time_range", str),
    "FORECAST_HORIZON": ("forecast", "horizon", int),
    "EXPOSED_PREDICTIONS": ("forecast", "exposed_predictions", int),
    "MIN_ANOMALY_SAMPLES": ("anomaly", "min_samples", int),
    "Z_SCORE_THRESHOLD": ("anomaly", "z_score_threshold", float),
    "LEAK_WINDOW": ("anomaly", "leak_window", int),
    "LEAK_RATE_FACTOR": ("anomaly", "leak_rate_factor", float),
    "PATTERN_WINDOW": ("anomaly", "pattern_window", int),
    "PATTERN_VARIANCE_FACTOR": ("anomaly", "pattern_variance_factor", float),
    "LOG_LEVEL": ("logging", "level", str),
    "LOG_FILE": ("logging", "file", str),
}


def load_yaml_file(path: Path) -> dict:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If YAML parsing fails
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f)
            return config if config is not None else {}
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML config file {path}: {e}") from e


def load_toml_file(path: Path) -> dict:
    """
    Load configuration from a TOML file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If TOML parsing fails
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, 'rb') as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse TOML config file {path}: {e}") from e


def load_config_file(path: str) -> dict:
    """
    Load configuration from a YAML or TOML file.

    The file format is determined by the extension (.yaml, .yml, or .toml).

    Raises:
        ValueError: If file extension is not supported
        FileNotFoundError: If file doesn't exist
    """
    file_path = Path(path)
    suffix = file_path.suffix.lower()

    if suffix in ['.yaml', '.yml']:
        return load_yaml_file(file_path)
    elif suffix == '.toml':
        return load_toml_file(file_path)
    else:
        raise ValueError(
            f"Unsupported config file format: {suffix}. "
            "Supported formats: .yaml, .yml, .toml"
        )


def find_config_file() -> Optional[Path]:
    """
    Search for a configuration file in standard locations.

    Search order: current directory, home directory, /etc; YAML before TOML.

    Returns:
        Path to the first configuration file found, or None
    """
    search_paths = [
        Path.cwd() / f"{CONFIG_BASENAME}.yaml",
        Path.cwd() / f"{CONFIG_BASENAME}.toml",
        Path.home() / f".{CONFIG_BASENAME}.yaml",
        Path.home() / f".{CONFIG_BASENAME}.toml",
        Path(f"/etc/{CONFIG_BASENAME}.yaml"),
        Path(f"/etc/{CONFIG_BASENAME}.toml"),
    ]

    for path in search_paths:
        if path.exists() and path.is_file():
            logger.info(f"Found configuration file: {path}")
            return path

    logger.debug("No configuration file found in standard locations")
    return None


def get_env_config() -> dict:
    """
    Extract configuration from HABITAT_ANALYTICS_* environment variables.

    Returns a nested dictionary shaped like a config file. Unparsable
    numeric values are skipped with a warning.
    """
    config: Dict[str, Dict[str, Any]] = {}

    for suffix, (section, key, parser) in ENV_OVERRIDES.items():
        env_key = f"HABITAT_ANALYTICS_{suffix}"
        raw = os.getenv(env_key)
        if not raw:
            continue
        try:
            value = parser(raw)
        except ValueError:
            logger.warning(f"Invalid {env_key}, ignoring")
            continue
        config.setdefault(section, {})[key] = value

    return config


def deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries, with override values taking precedence.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def flatten_config(config: dict) -> dict:
    """
    Flatten nested configuration sections into AnalyticsConfig field names.

    Unknown sections and keys are ignored.
    """
    flat = {}

    for section, fields in SECTION_FIELDS.items():
        values = config.get(section) or {}
        for key, field_name in fields.items():
            if key in values:
                flat[field_name] = values[key]

    return flat


def merge_config(file_config: dict, env_config: dict) -> dict:
    """
    Merge file-based and environment-based configuration.

    Environment variables take precedence. Returns the flattened result.
    """
    merged = deep_merge(file_config, env_config)
    return flatten_config(merged)


def load_config_with_overrides(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional explicit path to config file.
                    If None, searches standard locations.

    Raises:
        FileNotFoundError: If explicit config_path doesn't exist
        ValueError: If config parsing fails
    """
    file_config = {}

    if config_path:
        file_config = load_config_file(config_path)
        logger.info(f"Loaded configuration from: {config_path}")
    else:
        found_path = find_config_file()
        if found_path:
            file_config = load_config_file(str(found_path))
            logger.info(f"Loaded configuration from: {found_path}")

    env_config = get_env_config()
    if env_config:
        logger.info("Applying environment variable overrides")

    return merge_config(file_config, env_config)
