"""Structured logging for backend observability.

Provides context-aware logging with automatic backend/operation tagging.
"""

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Any

# Context variables for automatic tagging
_backend: ContextVar[str | None] = ContextVar("backend", default=None)
_operation: ContextVar[str | None] = ContextVar("operation", default=None)


@contextmanager
def log_context(
    backend: str | None = None,
    operation: str | None = None,
) -> Iterator[None]:
    """Tag records logged inside the block; restores the outer context on exit."""
    backend_token = _backend.set(backend) if backend is not None else None
    operation_token = _operation.set(operation) if operation is not None else None
    try:
        yield
    finally:
        if operation_token is not None:
            _operation.reset(operation_token)
        if backend_token is not None:
            _backend.reset(backend_token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add context from contextvars
        if backend := _backend.get():
            log_data["backend"] = backend
        if operation := _operation.get():
            log_data["operation"] = operation

        # Add extra fields
        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        # Add exception info
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Logger with structured output and context awareness."""

    def __init__(self, name: str, level: int | None = None):
        """Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level (default: LOG_LEVEL env or INFO)
        """
        self._logger = logging.getLogger(name)
        if level is None:
            level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
        self._logger.setLevel(level)

        # Add handler if not already configured
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter())
            self._logger.addHandler(handler)

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        extra_data: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log with optional extra data."""
        extra = kwargs.pop("extra", {})
        if extra_data:
            extra["extra_data"] = extra_data
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)

    def operation_failed(
        self,
        operation: str,
        path: str,
        error: str,
        kind: str,
        **extra: Any,
    ) -> None:
        """Log a failed backend operation."""
        self.warning(
            f"{operation} failed for {path}: {error}",
            extra_data={
                "operation": operation,
                "path": path,
                "error": error,
                "kind": kind,
                **extra,
            },
        )

    def remote_call(
        self,
        method: str,
        key: str,
        duration_ms: int | None = None,
        **extra: Any,
    ) -> None:
        """Log a completed object-store call."""
        data = {"method": method, "key": key, **extra}
        if duration_ms is not None:
            data["duration_ms"] = duration_ms
        self.debug(f"COS {method} {key}", extra_data=data)


# Global logger cache
_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name)
    return _loggers[name]
