"""
Structured logging infrastructure for pgsample.

Everything is logged to stderr because stdout carries the SQL script when
no output file is given.

Design principles:
- Keyword context on every record (table names, row counts, timing)
- Human-readable output by default, JSON lines with --log-json
- --verbose enables DEBUG, --quiet leaves only warnings and errors
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from typing import Any

from pgsample.constants import MAX_QUERY_PREVIEW

_loggers: dict[str, logging.Logger] = {}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line with the fields:
    - timestamp: formatted timestamp
    - level: Log level name
    - logger: Logger name (module path)
    - message: Human-readable message
    - context: Additional structured data
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "context") and record.context:
            log_data["context"] = record.context

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formats records as ``[TIMESTAMP] LEVEL: message (key=value, ...)``."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        message = record.getMessage()

        context_str = ""
        if hasattr(record, "context") and record.context:
            context_parts = [f"{k}={v}" for k, v in record.context.items()]
            context_str = f" ({', '.join(context_parts)})"

        exc_str = ""
        if record.exc_info:
            exc_str = "\n" + self.formatException(record.exc_info)

        return f"[{timestamp}] {record.levelname}: {message}{context_str}{exc_str}"


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    structured: bool = False,
) -> None:
    """
    Configure the ``pgsample`` logger tree.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Only show warnings and errors
        structured: Use JSON lines instead of the human-readable format

    ``verbose`` wins over ``quiet`` when both are set.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    formatter: logging.Formatter
    if structured:
        formatter = StructuredFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    else:
        formatter = HumanReadableFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    handler.setFormatter(formatter)

    root_logger = logging.getLogger("pgsample")
    root_logger.setLevel(logging.DEBUG)  # handler filters
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


def get_logger(name: str) -> "ContextLogger":
    """
    Get or create a logger for a module.

    Args:
        name: Logger name, usually ``__name__`` of the calling module

    Returns:
        ContextLogger wrapping ``logging.getLogger(name)``
    """
    if not name.startswith("pgsample"):
        name = f"pgsample.{name}"
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return ContextLogger(_loggers[name])


class ContextLogger:
    """Logger wrapper that attaches keyword arguments as structured context."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger
        self._context: dict[str, Any] = {}

    def _log(
        self, level: int, msg: str, context: dict[str, Any] | None = None, exc_info: Any = None
    ):
        merged_context = {**self._context}
        if context:
            merged_context.update(context)

        extra = {"context": merged_context} if merged_context else {}
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **context):
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context):
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context):
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, exc_info: Any = None, **context):
        self._log(logging.ERROR, msg, context, exc_info=exc_info)

    def critical(self, msg: str, exc_info: Any = None, **context):
        self._log(logging.CRITICAL, msg, context, exc_info=exc_info)

    def with_context(self, **context) -> "ContextLogger":
        """
        Create a new logger with additional persistent context.

        Example:
            table_logger = logger.with_context(table="users")
            table_logger.info("Streaming rows")  # includes table=users
        """
        new_logger = ContextLogger(self._logger)
        new_logger._context = {**self._context, **context}
        return new_logger

    @contextmanager
    def timed_operation(self, operation: str, **context):
        """
        Log the start and end of an operation with its duration.

        Example:
            with logger.timed_operation("copy", table="users"):
                adapter.copy_out("users", sink)
        """
        start_time = time.time()
        self.debug(f"Starting {operation}", **context)

        try:
            yield
            elapsed = time.time() - start_time
            self.debug(f"Completed {operation}", duration_ms=int(elapsed * 1000), **context)
        except Exception as e:
            elapsed = time.time() - start_time
            self.error(
                f"Failed {operation}",
                duration_ms=int(elapsed * 1000),
                error=str(e),
                **context,
            )
            raise


def log_dump_start(logger: ContextLogger, database: str, table_count: int, output: str):
    """Log the start of a dump."""
    logger.info(
        "Starting dump",
        database=database,
        manifest_tables=table_count,
        output=output,
    )


def log_dump_complete(logger: ContextLogger, total_rows: int, table_count: int, duration_ms: int):
    """Log dump completion with statistics."""
    logger.info(
        "Dump complete",
        total_rows=total_rows,
        table_count=table_count,
        duration_ms=duration_ms,
    )


def log_query_execution(logger: ContextLogger, query: str, table: str | None = None):
    """Log a SQL statement about to run, truncated for readability."""
    if len(query) > MAX_QUERY_PREVIEW:
        query = query[:MAX_QUERY_PREVIEW] + "..."

    context: dict[str, Any] = {"query_preview": query}
    if table is not None:
        context["table"] = table

    logger.debug("Executing query", **context)


def log_table_emitted(
    logger: ContextLogger,
    table: str,
    row_count: int,
    current: int,
    synthesized: bool = False,
):
    """Log a finished COPY block."""
    context: dict[str, Any] = {
        "table": table,
        "row_count": row_count,
        "position": current,
    }
    if synthesized:
        context["synthesized"] = True

    logger.info(f"Dumped {table}", **context)
