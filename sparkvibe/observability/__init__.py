"""Observability module with structured logging and metrics."""

from sparkvibe.observability.metrics import (
    ClientMetrics,
    MetricsRegistry,
)
from sparkvibe.observability.logging import (
    setup_structured_logging,
    get_logger,
    request_context,
    LogLevel,
)

__all__ = [
    "ClientMetrics",
    "MetricsRegistry",
    "setup_structured_logging",
    "get_logger",
    "request_context",
    "LogLevel",
]
