"""Structured logging for puppygraph-bridge.

Every log line is one JSON object on stderr (stdout carries command
output). Lines carry the correlation id of the command that produced
them, and query logs add the language, row count and execution time
passed through ``extra=``:

    logger.info("Query executed", extra={"language": "Cypher", "row_count": 3})
"""

import json
import logging
import os
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO, Any

SERVICE_NAME = "puppygraph-bridge"
LOGGER_NAME = "puppygraph_bridge"
LOG_LEVEL_ENV = "PUPPYGRAPH_LOG_LEVEL"

# Attributes copied from LogRecord into the JSON line when a caller sets them
QUERY_FIELDS = ("backend", "language", "row_count", "execution_time_ms")

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation id for the duration of one command.

    A fresh hex id is generated when none is given; the previous value is
    restored on exit.
    """
    value = correlation_id or uuid.uuid4().hex
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def __init__(self, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }
        for field in QUERY_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Query parameters may hold driver types; fall back to their str()
        return json.dumps(log_data, ensure_ascii=False, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation id ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def parse_log_level(level_str: str | None, default: int = logging.INFO) -> int:
    """Translate a level name such as "debug" into a logging constant."""
    if not level_str:
        return default
    level = getattr(logging, level_str.strip().upper(), None)
    return level if isinstance(level, int) else default


def _structured(handler: logging.Handler, service_name: str) -> logging.Handler:
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.addFilter(CorrelationIdFilter())
    return handler


def create_file_handler(
    log_file_path: str,
    service_name: str = SERVICE_NAME,
    max_bytes: int = 10_485_760,
    backup_count: int = 5,
) -> RotatingFileHandler:
    """Create a rotating JSON file handler, creating the directory if needed."""
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    _structured(handler, service_name)
    return handler


def setup_structured_logging(
    service_name: str = SERVICE_NAME,
    log_file_path: str | None = None,
    log_level: int | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure the ``puppygraph_bridge`` logger.

    Module loggers (``puppygraph_bridge.graph.neo4j_client`` etc.) propagate
    into it. Calling this again replaces the previous handlers.

    Args:
        service_name: Value of the ``service`` field
        log_file_path: Optional rotating log file
        log_level: Level constant; read from PUPPYGRAPH_LOG_LEVEL when None
        stream: Console stream, stderr by default
    """
    if log_level is None:
        log_level = parse_log_level(os.environ.get(LOG_LEVEL_ENV))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    logger.addHandler(
        _structured(logging.StreamHandler(stream or sys.stderr), service_name)
    )

    if log_file_path:
        try:
            file_handler = create_file_handler(log_file_path, service_name)
        except OSError as e:
            logger.warning("File logging disabled, cannot write to %s: %s", log_file_path, e)
        else:
            file_handler.setLevel(log_level)
            logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger inside the package hierarchy."""
    return logging.getLogger(name or LOGGER_NAME)
