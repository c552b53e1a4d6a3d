"""Fallback handler registry for graceful degradation."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar('K', bound=Hashable)


@dataclass
class FallbackStats:
    """Per-handler call counts."""

    primary_calls: int = 0
    fallback_calls: int = 0

    @property
    def fallback_rate(self) -> float:
        total = self.primary_calls + self.fallback_calls
        return self.fallback_calls / total if total > 0 else 0.0


class FallbackRegistry(Generic[K]):
    """
    Registry for managing fallback functions.

    Provides a central place to register and retrieve fallback handlers and
    to count how often the real call or the fallback served a request.
    """

    def __init__(self):
        self._fallbacks: Dict[K, Callable[..., Any]] = {}
        self._stats: Dict[K, FallbackStats] = {}

    def register(self, name: K, fallback: Callable[..., Any]):
        """Register a fallback function."""
        self._fallbacks[name] = fallback
        self._stats.setdefault(name, FallbackStats())

    def get(self, name: K) -> Optional[Callable[..., Any]]:
        """Get a registered fallback."""
        return self._fallbacks.get(name)

    def __contains__(self, name: K) -> bool:
        return name in self._fallbacks

    def record_primary(self, name: K):
        """Record successful primary call."""
        self._stats.setdefault(name, FallbackStats()).primary_calls += 1

    def record_fallback(self, name: K):
        """Record fallback call."""
        self._stats.setdefault(name, FallbackStats()).fallback_calls += 1

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get fallback statistics keyed by handler name."""
        result = {}
        for name, stats in self._stats.items():
            label = getattr(name, "value", name)
            result[str(label)] = {
                "primary_calls": stats.primary_calls,
                "fallback_calls": stats.fallback_calls,
                "fallback_rate": stats.fallback_rate,
            }
        return result
