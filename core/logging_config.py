"""Logging configuration for the web application and Celery tasks."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional


_STREAM_HANDLER_ATTR = "_is_structured_stream_handler"

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "stacklevel",
    "asctime",
    "taskName",
}

# Loggers whose records are emitted with their structured ``extra`` fields.
SSHCA_LOGGERS = ("sshca", "celery.task.sshca")


def _extract_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Return custom attributes attached to *record* through ``extra``."""

    extras: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        extras[key] = value
    return extras


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON object including its ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extract_extras(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def ensure_structured_logging(logger: logging.Logger, level: int = logging.INFO) -> None:
    """Attach the structured stream handler to *logger* if missing."""

    for handler in logger.handlers:
        if getattr(handler, _STREAM_HANDLER_ATTR, False):
            break
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
        setattr(handler, _STREAM_HANDLER_ATTR, True)
        logger.addHandler(handler)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure the SSH CA loggers once per process."""

    for name in SSHCA_LOGGERS:
        ensure_structured_logging(logging.getLogger(name), level)


def setup_task_logging(logger_name: Optional[str] = None) -> logging.Logger:
    """Return the logger for a Celery task with structured output attached."""

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    ensure_structured_logging(logger)
    return logger


def log_task_error(logger: logging.Logger, message: str, event: str, exc_info: bool = True, **extra_attrs):
    """Log task error with its event identifier.

    Args:
        logger: Logger instance to use.
        message: Error message.
        event: Event identifier for categorization.
        exc_info: Whether to include exception information.
        **extra_attrs: Additional attributes to include in log record.
    """
    extra = {
        'event': event,
        **extra_attrs
    }

    logger.error(message, exc_info=exc_info, extra=extra)


def log_task_info(logger: logging.Logger, message: str, event: str, **extra_attrs):
    """Log task info with its event identifier.

    Args:
        logger: Logger instance to use.
        message: Info message.
        event: Event identifier for categorization.
        **extra_attrs: Additional attributes to include in log record.
    """
    extra = {
        'event': event,
        **extra_attrs
    }

    logger.info(message, extra=extra)
