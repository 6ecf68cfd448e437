"""
Process-wide logging setup for Habitat Analytics.

The engines log through plain module-level loggers. A filter on the root
handlers stamps every record with the current correlation context, so a
line from the regression engine or the SQLite store still shows which
analytics query produced it.

Example:
    >>> from habitat_analytics.logging_config import setup_logging
    >>> setup_logging(level='DEBUG', log_file='habitat-analytics.log')
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from .logging_context import CONTEXT_KEYS, JSONFormatter, get_context

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(query_id)s] %(message)s'

_LOGGING_CONFIGURED = False


class ContextFilter(logging.Filter):
    """Copy correlation context onto records; '-' when a key is unset."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        for key in CONTEXT_KEYS:
            if getattr(record, key, None) is None:
                setattr(record, key, ctx.get(key) or '-')
        return True


def _build_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str | Path] = None,
    use_json: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Installs a stdout handler and, with ``log_file``, a rotating file
    handler. Only the level changes on later calls.

    Args:
        level: Log level name
        log_file: Optional log file path, parent directories are created
        use_json: Emit JSON lines instead of the text format
        max_bytes: File size that triggers rotation
        backup_count: Rotated files kept
    """
    global _LOGGING_CONFIGURED

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    if _LOGGING_CONFIGURED:
        return

    formatter = JSONFormatter() if use_json else logging.Formatter(DEFAULT_FORMAT)

    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(logging.StreamHandler(sys.stdout), formatter))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_build_handler(
            logging.handlers.RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count),
            formatter,
        ))

    _LOGGING_CONFIGURED = True
    root_logger.info(f"Logging configured at {level.upper()}" + (f", file {log_file}" if log_file else ""))


def setup_logging_from_config(config) -> None:
    """Configure logging from an AnalyticsConfig's ``log_level`` and ``log_file``."""
    setup_logging(level=config.log_level, log_file=config.log_file)


def reset_logging_config() -> None:
    """Drop root handlers so the next setup_logging call starts fresh."""
    global _LOGGING_CONFIGURED

    logging.getLogger().handlers.clear()
    _LOGGING_CONFIGURED = False
