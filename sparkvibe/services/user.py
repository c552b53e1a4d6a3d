"""User state, dashboard data and health checks built on the API client."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sparkvibe.api.client import ApiClient
from sparkvibe.api.errors import ApiError
from sparkvibe.fallback.operations import NoFallbackAvailable
from sparkvibe.fallback.synthesizer import merge_current_user, user_stat

logger = logging.getLogger(__name__)

OFFLINE_HEALTH = "Offline - Running in Demo Mode"

COUNTED_STATS = ("totalPoints", "streak", "cardsGenerated", "cardsShared")


def is_local_only(user: Optional[Dict[str, Any]]) -> bool:
    """Guests and demo users have no backend record to sync with."""
    if not user:
        return True
    return bool(user.get("isGuest")) or "demo" in str(user.get("provider") or "")


def normalize_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a user so counters live both at the top level and under ``stats``.

    Values are taken from the top level first, then ``stats``, then defaults.
    """
    stats = dict(user.get("stats") or {})
    normalized = dict(user)

    for name in COUNTED_STATS:
        normalized[name] = user_stat(user, name)
    normalized["level"] = user_stat(user, "level", 1)

    normalized["stats"] = {
        **stats,
        **{name: normalized[name] for name in COUNTED_STATS},
        "level": normalized["level"],
        "lastActiveDate": stats.get("lastActiveDate") or datetime.now(timezone.utc).isoformat(),
        "bestStreak": stats.get("bestStreak") or 0,
        "adventuresCompleted": stats.get("adventuresCompleted") or 0,
        "moodHistory": stats.get("moodHistory") or [],
        "choices": stats.get("choices") or [],
    }
    return normalized


class UserService:
    """Keep the stored user in sync with the backend."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.storage = api.storage

    def current_user(self) -> Optional[Dict[str, Any]]:
        user = self.storage.get_user()
        return normalize_user(user) if user else None

    async def update_user_data(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a changed user locally, then push its stats to the backend.

        Guests and demo users are only stored locally. A failed sync is
        logged; the local copy stays authoritative.
        """
        user = normalize_user(user)
        self.storage.set_user(user)

        if is_local_only(user):
            return user

        try:
            result = await self.api.post("/user/sync-stats", {
                "userId": user.get("id"),
                "stats": user["stats"],
                "totalPoints": user["totalPoints"],
                "level": user["level"],
                "streak": user["streak"],
                "cardsGenerated": user["cardsGenerated"],
                "cardsShared": user["cardsShared"],
            })
        except (ApiError, NoFallbackAvailable) as e:
            logger.warning(f"Failed to sync stats with backend: {e}")
            return user

        if isinstance(result, dict) and result.get("success") and not result.get("fallback"):
            logger.debug("Stats synced with backend")
        return user

    async def fetch_dashboard(self) -> Dict[str, Any]:
        """Fetch notifications, friends and challenges concurrently."""
        dashboard: Dict[str, Any] = {
            "notifications": [],
            "unreadCount": 0,
            "friends": [],
            "challenges": [],
        }

        user = self.storage.get_user()
        if not self.storage.get_token() or is_local_only(user):
            return dashboard

        notifications, friends, challenges = await asyncio.gather(
            self._fetch_list("/notifications"),
            self._fetch_list("/friends"),
            self._fetch_list("/challenges"),
        )

        if notifications is not None:
            dashboard["notifications"] = notifications.get("data") or []
            dashboard["unreadCount"] = int(notifications.get("unreadCount") or 0)
        if friends is not None:
            dashboard["friends"] = friends.get("data") or []
        if challenges is not None:
            dashboard["challenges"] = challenges.get("data") or []

        return dashboard

    async def _fetch_list(self, endpoint: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self.api.get(endpoint)
        except (ApiError, NoFallbackAvailable) as e:
            logger.warning(f"Failed to fetch {endpoint}: {e}")
            return None

        if isinstance(response, dict) and response.get("success", True):
            return response
        return None

    async def mark_notifications_read(self, notification_ids: Optional[List[str]] = None) -> bool:
        """Mark notifications read and drop the cached notification list."""
        user = self.storage.get_user()
        if is_local_only(user):
            return False

        try:
            await self.api.post("/notifications/read", {"notificationIds": notification_ids})
        except (ApiError, NoFallbackAvailable) as e:
            logger.warning(f"Failed to mark notifications as read: {e}")
            return False
        finally:
            self.api.delete_cache_key("/notifications")

        return True

    async def get_leaderboard(self) -> List[Dict[str, Any]]:
        """Leaderboard entries with the signed-in user merged in and ranked."""
        response = await self.api.get("/leaderboard")

        if isinstance(response, dict):
            entries = response.get("data") or []
        elif isinstance(response, list):
            entries = response
        else:
            entries = []

        return merge_current_user(
            [entry for entry in entries if isinstance(entry, dict)],
            self.storage.get_user(),
        )

    async def check_health(self) -> str:
        """Backend status for display."""
        try:
            response = await self.api.get("/health")
        except (ApiError, NoFallbackAvailable) as e:
            logger.warning(f"Server health check failed: {e}")
            return OFFLINE_HEALTH

        if not isinstance(response, dict) or response.get("fallback"):
            return OFFLINE_HEALTH
        return str(response.get("status") or "Online")
