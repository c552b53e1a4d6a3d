"""Connection health tracking for the API client."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional


class ConnectionStatus(Enum):
    """Connection states shown to the user."""

    ONLINE = "online"        # Backend reachable, all features available
    UNSTABLE = "unstable"    # Recent failures, some features may be limited
    OFFLINE = "offline"      # Backend unavailable, running on synthesized data


STATUS_MESSAGES = {
    ConnectionStatus.ONLINE: ("Connected", "All features available"),
    ConnectionStatus.UNSTABLE: ("Unstable Connection", "Some features may be limited"),
    ConnectionStatus.OFFLINE: ("Demo Mode", "Backend unavailable - using offline features"),
}


@dataclass
class ConnectionHealthState:
    """Mutable health snapshot, updated after every network attempt."""

    is_healthy: bool = True
    consecutive_failures: int = 0
    last_success_time: Optional[float] = None
    backoff_multiplier: float = 1.0
    is_online: bool = True


class ConnectionHealth:
    """
    Tracks backend reachability and scales request timeouts.

    Failures double the backoff multiplier up to a cap; any success resets it.
    Health only stretches timeouts, it never blocks calls. The one exception
    is an explicit ``set_online(False)``, which makes the client skip the
    network entirely.

    Usage:
        health = ConnectionHealth()
        timeout = health.scaled_timeout(10.0, ceiling=30.0)
        ...
        health.record_failure()
    """

    def __init__(
        self,
        max_backoff_multiplier: float = 3.0,
        unhealthy_failure_threshold: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self.max_backoff_multiplier = max_backoff_multiplier
        self.unhealthy_failure_threshold = unhealthy_failure_threshold
        self._clock = clock
        self._state = ConnectionHealthState()
        self.total_successes = 0
        self.total_failures = 0

    @property
    def state(self) -> ConnectionHealthState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def is_healthy(self) -> bool:
        return self._state.is_healthy

    def record_success(self):
        """Record a completed round-trip."""
        self.total_successes += 1
        self._state.consecutive_failures = 0
        self._state.backoff_multiplier = 1.0
        self._state.last_success_time = self._clock()
        self._state.is_healthy = True

    def record_failure(self):
        """Record a transport failure or server error."""
        self.total_failures += 1
        self._state.consecutive_failures += 1
        self._state.backoff_multiplier = min(
            self._state.backoff_multiplier * 2,
            self.max_backoff_multiplier,
        )
        if self._state.consecutive_failures >= self.unhealthy_failure_threshold:
            self._state.is_healthy = False

    def set_online(self, online: bool):
        """Record network availability reported by the host environment."""
        self._state.is_online = online

    def scaled_timeout(self, base: float, ceiling: Optional[float] = None) -> float:
        """Timeout stretched by the current backoff multiplier."""
        timeout = base * self._state.backoff_multiplier
        if ceiling is not None:
            timeout = min(timeout, ceiling)
        return timeout

    def status(self) -> ConnectionStatus:
        if not self._state.is_online or not self._state.is_healthy:
            return ConnectionStatus.OFFLINE
        if self._state.consecutive_failures > 0:
            return ConnectionStatus.UNSTABLE
        return ConnectionStatus.ONLINE

    def reset(self):
        """Reset to a healthy state, keeping the online flag."""
        online = self._state.is_online
        self._state = ConnectionHealthState(is_online=online)

    def snapshot(self) -> Dict:
        """Get connection status for display."""
        status = self.status()
        message, description = STATUS_MESSAGES[status]
        return {
            "status": status.value,
            "message": message,
            "description": description,
            "isHealthy": self._state.is_healthy,
            "isOnline": self._state.is_online,
            "consecutiveFailures": self._state.consecutive_failures,
            "lastSuccessTime": self._state.last_success_time,
            "backoffMultiplier": self._state.backoff_multiplier,
            "stats": {
                "total_successes": self.total_successes,
                "total_failures": self.total_failures,
            },
        }
