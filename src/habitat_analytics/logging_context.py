"""
Structured logging with correlation IDs.

Every analytics call runs under a query id so that log lines emitted by the
service, the engines and the metric store can be tied back to one request.
"""

import contextvars
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

CONTEXT_KEYS = ('query_id', 'resource_id', 'operation')

request_context: contextvars.ContextVar[dict] = contextvars.ContextVar(
    'request_context', default={}
)


class ContextualLogger(logging.LoggerAdapter):
    """
    Logger adapter that injects correlation fields into log records.

    Usage:
        logger = get_logger(__name__)
        with LoggingContext(query_id='abc-123', operation='trends'):
            logger.info("Computing trends")
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Inject context variables into log extra fields."""
        ctx = request_context.get({})
        extra = kwargs.get('extra', {})

        for key in CONTEXT_KEYS:
            if ctx.get(key) is not None:
                extra[key] = ctx[key]

        kwargs['extra'] = extra
        return msg, kwargs


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with consistent fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for key in CONTEXT_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def get_logger(name: str, use_json: bool = False) -> ContextualLogger:
    """
    Get a contextual logger instance.

    Args:
        name: Logger name (typically __name__)
        use_json: Whether to attach a JSON-formatting handler

    Returns:
        ContextualLogger instance
    """
    base_logger = logging.getLogger(name)

    if use_json and not base_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        base_logger.addHandler(handler)
        base_logger.setLevel(logging.INFO)

    return ContextualLogger(base_logger, {})


def set_context(**kwargs: Any) -> contextvars.Token:
    """
    Set correlation context.

    Returns:
        Token to reset context later with ``request_context.reset(token)``
    """
    current = request_context.get({}).copy()
    current.update(kwargs)
    return request_context.set(current)


def get_context() -> dict:
    """Get current correlation context."""
    return request_context.get({}).copy()


def clear_context() -> None:
    """Clear correlation context."""
    request_context.set({})


class LoggingContext:
    """
    Context manager for setting logging context.

    Usage:
        with LoggingContext(query_id='abc-123'):
            logger.info("Processing")  # Includes query_id
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.token: Optional[contextvars.Token] = None

    def __enter__(self):
        self.token = set_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token:
            request_context.reset(self.token)
        return False
