"""
Unit tests for structured logging.
"""

from __future__ import annotations

import io
import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from puppygraph_bridge.core.logging import (
    LOGGER_NAME,
    SERVICE_NAME,
    CorrelationIdFilter,
    JSONFormatter,
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    get_logger,
    parse_log_level,
    set_correlation_id,
    setup_structured_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    clear_correlation_id()
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(package_logger.handlers):
        handler.close()
    package_logger.handlers.clear()
    package_logger.propagate = True


def make_record(message: str = "hello %s", args: tuple = ("world",)) -> logging.LogRecord:
    return logging.LogRecord(
        name="puppygraph_bridge.graph.neo4j_client",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=args,
        exc_info=None,
    )


# =============================================================================
# Test: JSONFormatter
# =============================================================================


class TestJSONFormatter:
    """Tests for the JSON log line format."""

    def test_standard_fields(self) -> None:
        record = make_record()
        CorrelationIdFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["service"] == SERVICE_NAME
        assert payload["message"] == "hello world"
        assert payload["correlation_id"] == "-"
        assert "timestamp" in payload
        assert payload["logger"] == "puppygraph_bridge.graph.neo4j_client"
        assert "language" not in payload

    def test_query_fields_from_extra(self) -> None:
        record = make_record()
        record.language = "Cypher"  # type: ignore[attr-defined]
        record.row_count = 3  # type: ignore[attr-defined]
        record.execution_time_ms = 12  # type: ignore[attr-defined]

        payload = json.loads(JSONFormatter().format(record))

        assert payload["language"] == "Cypher"
        assert payload["row_count"] == 3
        assert payload["execution_time_ms"] == 12

    def test_non_json_arguments_are_stringified(self) -> None:
        record = make_record("params %s", ())
        record.backend = object()  # type: ignore[attr-defined]

        payload = json.loads(JSONFormatter().format(record))

        assert payload["backend"].startswith("<object")

    def test_includes_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record("failed", ())
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in payload["exception"]


# =============================================================================
# Test: Correlation IDs
# =============================================================================


class TestCorrelationId:
    """Tests for the correlation id context."""

    def test_set_get_clear(self) -> None:
        set_correlation_id("abc123")
        assert get_correlation_id() == "abc123"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_filter_stamps_record(self) -> None:
        set_correlation_id("abc123")
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "abc123"  # type: ignore[attr-defined]

    def test_correlation_scope_restores_previous_value(self) -> None:
        set_correlation_id("outer")

        with correlation_scope("inner") as value:
            assert value == "inner"
            assert get_correlation_id() == "inner"

        assert get_correlation_id() == "outer"

    def test_correlation_scope_generates_id(self) -> None:
        with correlation_scope() as value:
            assert len(value) == 32
            assert get_correlation_id() == value


# =============================================================================
# Test: Setup
# =============================================================================


class TestSetup:
    """Tests for setup_structured_logging() and helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("debug", logging.DEBUG),
            ("WARNING", logging.WARNING),
            (None, logging.INFO),
            ("", logging.INFO),
            ("verbose", logging.INFO),
        ],
    )
    def test_parse_log_level(self, value: str | None, expected: int) -> None:
        assert parse_log_level(value) == expected

    def test_log_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PUPPYGRAPH_LOG_LEVEL", "warning")

        logger = setup_structured_logging()

        assert logger.level == logging.WARNING

    def test_custom_stream(self) -> None:
        stream = io.StringIO()
        setup_structured_logging(log_level=logging.INFO, stream=stream)

        get_logger("puppygraph_bridge.services.puppygraph").info("to stream")

        assert json.loads(stream.getvalue())["message"] == "to stream"

    def test_console_handler_writes_to_stderr(self) -> None:
        logger = setup_structured_logging(log_level=logging.DEBUG)

        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stderr  # type: ignore[attr-defined]

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_structured_logging(log_level=logging.INFO)
        logger = setup_structured_logging(log_level=logging.INFO)

        assert len(logger.handlers) == 1

    def test_file_handler_writes_json(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "bridge.log"
        setup_structured_logging(log_file_path=str(log_file), log_level=logging.INFO)

        get_logger("puppygraph_bridge.services").info("file message")
        for handler in logging.getLogger(LOGGER_NAME).handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "file message"

    def test_get_logger_defaults_to_package_logger(self) -> None:
        assert get_logger().name == LOGGER_NAME
