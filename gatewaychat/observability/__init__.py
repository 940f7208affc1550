"""
gatewaychat - Observability Module

Structured JSON logging with per-call context.
"""

from .logging import (
    JSONFormatter,
    LogContext,
    StructuredLogger,
    get_logger,
    log_context,
    setup_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "log_context",
    "setup_logging",
]
