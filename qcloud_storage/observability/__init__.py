"""Observability module for backend monitoring.

This module provides:
- Structured logging with backend/operation context
"""

from .logger import StructuredLogger, get_logger, log_context

__all__ = [
    "StructuredLogger",
    "get_logger",
    "log_context",
]
