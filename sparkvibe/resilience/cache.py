"""In-memory request cache with TTL and in-flight request coalescing."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached response that is only served while ``now < expiry``."""

    key: str
    data: Any
    expiry: float


@dataclass
class CacheStats:
    """Counters for cache lookups."""

    hits: int = 0
    misses: int = 0
    joins: int = 0


class RequestCache:
    """
    Deduplicates concurrent fetches and serves fresh results from memory.

    For any key at most one fetch is in flight: callers arriving while it is
    pending join it and receive the same value or the same error. Failures
    are never cached.

    Usage:
        cache = RequestCache()
        data = await cache.get("GET /leaderboard", fetch_leaderboard, ttl=15)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._stats = CacheStats()

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Get the live entry for a key without fetching."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() >= entry.expiry:
            del self._entries[key]
            return None

        return entry

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    async def get(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> Any:
        """
        Get a cached value, join an in-flight fetch, or start a new one.

        Args:
            key: Logical request key
            fetcher: Zero-argument coroutine function producing the value
            ttl: Seconds the fetched value stays fresh

        Returns:
            The cached or freshly fetched value

        Raises:
            Whatever ``fetcher`` raised; nothing is cached in that case
        """
        entry = self.peek(key)
        if entry is not None:
            self._stats.hits += 1
            return entry.data

        pending = self._pending.get(key)
        if pending is not None:
            self._stats.joins += 1
            logger.debug(f"Joining in-flight request for {key}")
            return await asyncio.shield(pending)

        self._stats.misses += 1
        task = asyncio.ensure_future(fetcher())
        self._pending[key] = task
        task.add_done_callback(lambda t: self._settle(key, t, ttl))

        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Future, ttl: float):
        """Record the outcome of a fetch once it completes."""
        # A delete/clear while pending drops the marker; the result is stale then
        registered = self._pending.get(key) is task
        if registered:
            del self._pending[key]

        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.debug(f"Fetch for {key} failed, not caching: {error}")
            return

        if registered:
            self._entries[key] = CacheEntry(
                key=key,
                data=task.result(),
                expiry=self._clock() + max(ttl, 0.0),
            )

    def delete(self, key: str) -> bool:
        """Invalidate one key. Returns True if anything was dropped."""
        had_entry = self._entries.pop(key, None) is not None
        had_pending = self._pending.pop(key, None) is not None
        return had_entry or had_pending

    def delete_prefix(self, prefix: str) -> int:
        """Invalidate every key starting with ``prefix``."""
        keys = [k for k in list(self._entries) + list(self._pending) if k.startswith(prefix)]
        return sum(1 for k in set(keys) if self.delete(k))

    def clear(self):
        """Drop all entries and pending markers.

        In-flight fetches keep running for the callers already awaiting them.
        """
        self._entries.clear()
        self._pending.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "joins": self._stats.joins,
            "entries": len(self._entries),
            "pending": len(self._pending),
        }

    def __len__(self) -> int:
        return len(self._entries)
