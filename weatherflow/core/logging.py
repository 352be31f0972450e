"""Logging configuration for the workflow engine.

Run- and request-scoped fields (``run_id``, ``workflow_id``, ``request_id``)
are bound with ``logging_context`` and attached to every record emitted
inside the block, in plain and JSON output alike. The binding lives in a
context variable, so concurrent requests served from the threadpool never
see each other's fields.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_bound_fields: ContextVar[Dict[str, Any]] = ContextVar("weatherflow_log_fields", default={})


@contextmanager
def logging_context(**fields) -> Iterator[None]:
    """Bind fields to every log record emitted inside the block.

    Nested blocks add to the enclosing fields; leaving a block restores them.
    """
    token = _bound_fields.set({**_bound_fields.get(), **fields})
    try:
        yield
    finally:
        _bound_fields.reset(token)


def bound_fields() -> Dict[str, Any]:
    """Fields bound by the innermost active ``logging_context``."""
    return dict(_bound_fields.get())


class ContextFieldsFilter(logging.Filter):
    """Merge bound fields with per-call fields into ``record.context_fields``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context_fields = {**_bound_fields.get(), **getattr(record, "context_fields", {})}
        return True


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends context fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "context_fields", None)
        if fields:
            line += " [" + " ".join(f"{key}={value}" for key, value in fields.items()) + "]"
        return line


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "context_fields", {}))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False
) -> logging.Logger:
    """
    Configure root logging for the service.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file
        log_format: Format string for plain-text output
        structured: Emit JSON lines instead of plain text

    Returns:
        Root logger instance
    """
    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = ContextFormatter(fmt=log_format or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS))

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    context_filter = ContextFieldsFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    # Third-party chatter stays at warning unless explicitly debugging.
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **fields):
    """Log a message carrying extra fields for this record only."""
    logger.log(level, message, extra={"context_fields": fields})
