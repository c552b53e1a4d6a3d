"""Resilience module for caching, pacing and fault tolerance."""

from sparkvibe.resilience.cache import (
    RequestCache,
    CacheEntry,
)
from sparkvibe.resilience.queue import (
    RateLimitedQueue,
    QueueClosed,
)
from sparkvibe.resilience.health import (
    ConnectionHealth,
    ConnectionHealthState,
    ConnectionStatus,
)
from sparkvibe.resilience.retry import (
    retry_async,
    RetryConfig,
    ExponentialBackoff,
)
from sparkvibe.resilience.fallback import (
    FallbackRegistry,
)

__all__ = [
    "RequestCache",
    "CacheEntry",
    "RateLimitedQueue",
    "QueueClosed",
    "ConnectionHealth",
    "ConnectionHealthState",
    "ConnectionStatus",
    "retry_async",
    "RetryConfig",
    "ExponentialBackoff",
    "FallbackRegistry",
]
