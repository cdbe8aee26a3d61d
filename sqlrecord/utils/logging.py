"""Logging for SQLRecord.

Every logger lives under the ``sqlrecord`` namespace. Transaction and retry
events attach their attempt number, isolation level and error kind to the log
record through ``extra``; :class:`RecordLogFormatter` renders those attributes
as JSON keys next to the message, so a stream of retries can be filtered by
attempt or by the level that conflicted.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from enum import Enum
from typing import TYPE_CHECKING, Any, TextIO

from sqlrecord._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

    from sqlrecord.core import IsolationLevel
    from sqlrecord.exceptions import Failure

__all__ = (
    "EVENT_FIELDS",
    "CorrelationIDFilter",
    "RecordLogFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "retry_fields",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "sqlrecord"

EVENT_FIELDS = ("stage", "attempt", "isolation_level", "error_kind", "error_code", "table")
"""Record attributes copied into structured output when a log call sets them."""

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Tag every record logged from the current context, or clear the tag with ``None``."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def retry_fields(
    stage: str,
    attempt: int,
    isolation_level: IsolationLevel | None,
    failure: Failure | None = None,
    error_code: str | None = None,
) -> dict[str, Any]:
    """Build the ``extra`` mapping for a transaction event.

    Args:
        stage: Where the event happened: ``begin``, ``work`` or ``commit``.
        attempt: One-based attempt number of the unit of work.
        isolation_level: Level the attempt ran at, when known.
        failure: The failure that ended the attempt, if any.
        error_code: Backend code of that failure (SQLSTATE, SQLite result code, errno).

    Returns:
        Attributes to pass as ``extra`` to a logging call.
    """
    fields: dict[str, Any] = {"stage": stage, "attempt": attempt, "isolation_level": isolation_level}
    if failure is not None:
        fields["error_kind"] = failure.kind
    if error_code is not None:
        fields["error_code"] = error_code
    return fields


class RecordLogFormatter(logging.Formatter):
    """One JSON object per record, including any transaction event fields."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        for name in EVENT_FIELDS:
            value = getattr(record, name, None)
            if value is None:
                continue
            # Enums go out by their display spelling, not their raw value.
            entry[name] = str(value) if isinstance(value, Enum) else value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return encode_json(entry)


class CorrelationIDFilter(logging.Filter):
    """Copies the context's correlation ID onto each record it sees."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``sqlrecord`` namespace.

    Args:
        name: Dotted suffix such as ``"driver.transaction"``. Names already
            under the namespace are used as given.

    Returns:
        The logger, carrying a single :class:`CorrelationIDFilter`.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())

    return logger


def configure_logging(
    level: str = "INFO",
    *,
    structured: bool = True,
    stream: TextIO | None = None,
    log_to_file: str | None = None,
) -> logging.Logger:
    """Attach handlers to the ``sqlrecord`` logger.

    Handlers installed by an earlier call are replaced, and records stop
    propagating to the root logger.

    Args:
        level: Level name such as ``"DEBUG"`` or ``"WARNING"``.
        structured: JSON lines via :class:`RecordLogFormatter` when true,
            plain text otherwise. Files are always written as JSON.
        stream: Console stream. Defaults to standard error.
        log_to_file: Optional path to append JSON records to.

    Returns:
        The configured ``sqlrecord`` logger.
    """
    library_logger = logging.getLogger(ROOT_LOGGER_NAME)
    library_logger.setLevel(level.upper())
    for handler in library_logger.handlers:
        handler.close()
    library_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    if structured:
        console_handler.setFormatter(RecordLogFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    library_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(RecordLogFormatter())
        library_logger.addHandler(file_handler)

    library_logger.propagate = False
    library_logger.debug("Logging configured at %s with %d handler(s)", level.upper(), len(library_logger.handlers))
    return library_logger
