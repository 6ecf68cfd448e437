"""
Tests for logging configuration and correlation context.
"""
import json
import logging
import logging.handlers

import pytest

from habitat_analytics.config import AnalyticsConfig
from habitat_analytics.logging_config import (
    ContextFilter,
    reset_logging_config,
    setup_logging,
    setup_logging_from_config,
)
from habitat_analytics.logging_context import (
    JSONFormatter,
    LoggingContext,
    clear_context,
    get_context,
    get_logger,
    set_context,
)


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging_config()
    clear_context()
    yield
    reset_logging_config()
    clear_context()


def test_setup_logging_with_file(tmp_path):
    """Test a rotating file handler is attached."""
    log_file = tmp_path / "logs" / "habitat.log"

    setup_logging(level="DEBUG", log_file=log_file)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
    assert log_file.exists()


def test_setup_logging_twice_updates_level():
    """Test a second call only changes the level."""
    setup_logging(level="INFO")
    handlers = list(logging.getLogger().handlers)

    setup_logging(level="WARNING")

    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger().handlers == handlers


def test_setup_logging_from_config():
    """Test logging settings come from configuration."""
    setup_logging_from_config(AnalyticsConfig(log_level="ERROR"))

    assert logging.getLogger().level == logging.ERROR


def test_logging_context_scoping():
    """Test context is restored after the block."""
    set_context(query_id="outer")

    with LoggingContext(query_id="inner", resource_id="oxygen-1"):
        assert get_context() == {"query_id": "inner", "resource_id": "oxygen-1"}

    assert get_context() == {"query_id": "outer"}


def test_contextual_logger_injects_fields(caplog):
    """Test context fields reach log records."""
    logger = get_logger("habitat_analytics.tests")

    with caplog.at_level(logging.INFO, logger="habitat_analytics.tests"):
        with LoggingContext(query_id="q-1", operation="trends"):
            logger.info("Computing trends")

    record = caplog.records[-1]
    assert record.query_id == "q-1"
    assert record.operation == "trends"
    assert not hasattr(record, "resource_id")


def test_json_formatter():
    """Test JSON output carries context fields."""
    record = logging.LogRecord("habitat", logging.INFO, __file__, 1, "hello", None, None)
    record.query_id = "q-2"

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["query_id"] == "q-2"


def test_context_filter_stamps_plain_loggers(tmp_path):
    """Test module-level loggers carry the query id into log files."""
    log_file = tmp_path / "habitat.log"
    setup_logging(level="INFO", log_file=log_file)

    with LoggingContext(query_id="q-42", operation="stats"):
        logging.getLogger("habitat_analytics.analytics.statistics").info("Computing stats")
    logging.getLogger("habitat_analytics.analytics.statistics").info("Outside any query")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_file.read_text().splitlines()
    assert any("[q-42] Computing stats" in line for line in lines)
    assert any("[-] Outside any query" in line for line in lines)


def test_context_filter_keeps_explicit_values():
    """Test fields already on the record are left alone."""
    record = logging.LogRecord("habitat", logging.INFO, __file__, 1, "msg", None, None)
    record.query_id = "explicit"

    with LoggingContext(query_id="from-context", resource_id="water-1"):
        ContextFilter().filter(record)

    assert record.query_id == "explicit"
    assert record.resource_id == "water-1"
    assert record.operation == "-"


def test_setup_logging_json(tmp_path):
    """Test JSON lines output."""
    log_file = tmp_path / "habitat.jsonl"
    setup_logging(level="INFO", log_file=log_file, use_json=True)

    with LoggingContext(query_id="q-7"):
        logging.getLogger("habitat_analytics.tests").info("json line")
    for handler in logging.getLogger().handlers:
        handler.flush()

    entries = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert {"message": "json line", "query_id": "q-7"}.items() <= entries[-1].items()
