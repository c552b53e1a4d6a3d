"""The closed set of backend operations the client knows how to stand in for."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit


class NoFallbackAvailable(Exception):
    """Exception raised when a request cannot be synthesized."""

    def __init__(self, endpoint: str, method: Optional[str] = None, reason: Optional[str] = None):
        self.endpoint = endpoint
        self.method = method
        self.reason = reason or "no fallback registered for this endpoint"
        target = f"{method} {endpoint}" if method else endpoint
        super().__init__(f"No fallback available for {target}: {self.reason}")


@dataclass(frozen=True)
class OperationInfo:
    """Route and handling policy for one backend operation."""

    method: str
    path: str
    is_write: bool = False
    surfaces_client_errors: bool = False  # 4xx reaches the caller, never faked
    establishes_session: bool = False
    queue_offline: bool = False  # Replayed from the outbox once back online
    requires_demo_mode: bool = False


class Operation(Enum):
    """Known backend operations."""

    HEALTH = "health"
    LEADERBOARD = "leaderboard"
    TRENDING_ADVENTURES = "trending_adventures"
    USER_PROFILE = "user_profile"
    NOTIFICATIONS = "notifications"
    FRIENDS = "friends"
    CHALLENGES = "challenges"
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"
    ANALYZE_MOOD = "analyze_mood"
    GENERATE_CAPSULE = "generate_capsule"
    GENERATE_VIBE_CARD = "generate_vibe_card"
    UPDATE_POINTS = "update_points"
    SYNC_STATS = "sync_stats"
    TRACK_EVENT = "track_event"
    MARK_NOTIFICATIONS_READ = "mark_notifications_read"

    @property
    def info(self) -> OperationInfo:
        return OPERATIONS[self]


OPERATIONS: Dict[Operation, OperationInfo] = {
    Operation.HEALTH: OperationInfo("GET", "/health"),
    Operation.LEADERBOARD: OperationInfo("GET", "/leaderboard"),
    Operation.TRENDING_ADVENTURES: OperationInfo("GET", "/trending-adventures"),
    Operation.USER_PROFILE: OperationInfo("GET", "/user/profile"),
    Operation.NOTIFICATIONS: OperationInfo("GET", "/notifications"),
    Operation.FRIENDS: OperationInfo("GET", "/friends"),
    Operation.CHALLENGES: OperationInfo("GET", "/challenges"),
    Operation.SIGN_IN: OperationInfo(
        "POST", "/auth/signin",
        is_write=True,
        surfaces_client_errors=True,
        establishes_session=True,
        requires_demo_mode=True,
    ),
    Operation.SIGN_UP: OperationInfo(
        "POST", "/auth/signup",
        is_write=True,
        surfaces_client_errors=True,
        establishes_session=True,
        requires_demo_mode=True,
    ),
    Operation.ANALYZE_MOOD: OperationInfo("POST", "/analyze-mood", is_write=True),
    Operation.GENERATE_CAPSULE: OperationInfo("POST", "/generate-capsule", is_write=True),
    Operation.GENERATE_VIBE_CARD: OperationInfo("POST", "/generate-vibe-card", is_write=True),
    Operation.UPDATE_POINTS: OperationInfo("POST", "/update-points", is_write=True, queue_offline=True),
    Operation.SYNC_STATS: OperationInfo("POST", "/user/sync-stats", is_write=True, queue_offline=True),
    Operation.TRACK_EVENT: OperationInfo("POST", "/track-event", is_write=True, queue_offline=True),
    Operation.MARK_NOTIFICATIONS_READ: OperationInfo(
        "POST", "/notifications/read", is_write=True, queue_offline=True
    ),
}

ROUTES: Dict[Tuple[str, str], Operation] = {
    (info.method, info.path): operation for operation, info in OPERATIONS.items()
}


def normalize_path(endpoint: str) -> str:
    """
    Reduce an endpoint or URL to the route path used for dispatch.

    Scheme, host, query string, trailing slash and an ``/api`` prefix are
    dropped: ``https://host/api/leaderboard/?page=2`` becomes ``/leaderboard``.
    """
    path = urlsplit(endpoint).path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if path == "/api" or path.startswith("/api/"):
        path = path[len("/api"):] or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def resolve_operation(method: str, endpoint: str) -> Operation:
    """
    Map a request to a known operation.

    Raises:
        NoFallbackAvailable: If the method/path pair is not a known operation
    """
    method = method.upper()
    operation = ROUTES.get((method, normalize_path(endpoint)))
    if operation is None:
        raise NoFallbackAvailable(endpoint, method)
    return operation


def find_operation(method: str, endpoint: str) -> Optional[Operation]:
    """Like ``resolve_operation`` but returns None for unknown requests."""
    return ROUTES.get((method.upper(), normalize_path(endpoint)))
