"""Fallback synthesis: plausible stand-in responses for failed backend calls.

Every synthesized response has the shape the real route returns plus a
``fallback: True`` marker. Reads are served from canned data merged with the
locally known user; writes derive a best-effort result from their payload and
persist any resulting session or user state to local storage.
"""

import copy
import hashlib
import logging
import random
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from sparkvibe.fallback import content
from sparkvibe.fallback.models import (
    AckResponse,
    Adventure,
    AuthResponse,
    BrainBite,
    Capsule,
    CapsuleRequest,
    CardAchievement,
    CardAdventure,
    CardContent,
    CardDesign,
    CardSharing,
    CardUser,
    EmptyRequest,
    HealthResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    ListResponse,
    MoodAnalysis,
    MoodAnalysisRequest,
    NotificationsResponse,
    PointsResponse,
    ProfileResponse,
    RequestModel,
    SignInRequest,
    SignUpRequest,
    SyncRequest,
    TrendingAdventure,
    TrendingResponse,
    UpdatePointsRequest,
    User,
    UserStats,
    VibeCard,
    VibeCardRequest,
    VibeCardResponse,
)
from sparkvibe.fallback.operations import NoFallbackAvailable, Operation, resolve_operation
from sparkvibe.resilience.fallback import FallbackRegistry
from sparkvibe.services.storage import USER_KEY, LocalStorage

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 1000

GUEST_USER = {
    "id": "guest",
    "name": "Guest User",
    "isGuest": True,
    "stats": {
        "totalPoints": 0,
        "streak": 0,
        "level": 1,
        "cardsGenerated": 0,
        "cardsShared": 0,
    },
}

REQUEST_MODELS: Dict[Operation, Type[RequestModel]] = {
    Operation.SIGN_IN: SignInRequest,
    Operation.SIGN_UP: SignUpRequest,
    Operation.ANALYZE_MOOD: MoodAnalysisRequest,
    Operation.GENERATE_CAPSULE: CapsuleRequest,
    Operation.GENERATE_VIBE_CARD: VibeCardRequest,
    Operation.UPDATE_POINTS: UpdatePointsRequest,
    Operation.SYNC_STATS: SyncRequest,
    Operation.TRACK_EVENT: SyncRequest,
    Operation.MARK_NOTIFICATIONS_READ: SyncRequest,
}

_WORD_RE = re.compile(r"[a-z']+")


def user_stat(user: Optional[Dict[str, Any]], name: str, default: int = 0) -> int:
    """Read a stat from the top level of a user dict, then from ``stats``."""
    if not user:
        return default
    value = user.get(name) or (user.get("stats") or {}).get(name)
    try:
        return int(value) if value else default
    except (TypeError, ValueError):
        return default


def level_for_points(points: int) -> int:
    return 1 + max(points, 0) // POINTS_PER_LEVEL


def classify_mood(text: str) -> Tuple[str, int]:
    """
    Pick a mood by counting sentiment keywords in free text.

    Returns:
        Tuple of (mood, matched keyword count); ``curious`` when nothing matches
    """
    words = _WORD_RE.findall((text or "").lower())
    best_mood, best_hits = content.DEFAULT_MOOD, 0

    for mood, keywords in content.MOOD_KEYWORDS.items():
        hits = sum(1 for word in words if word in keywords)
        if hits > best_hits:
            best_mood, best_hits = mood, hits

    return best_mood, best_hits


def _is_same_player(entry: Dict[str, Any], user: Dict[str, Any]) -> bool:
    # Display names are not unique; only used when the user has no id or email
    if user.get("id") or user.get("email"):
        return bool(
            (user.get("id") and entry.get("id") == user.get("id"))
            or (user.get("email") and entry.get("email") == user.get("email"))
        )
    return bool(user.get("name")) and entry.get("username") == user.get("name")


def merge_current_user(
    entries: List[Dict[str, Any]],
    user: Optional[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Make sure the signed-in user sees themselves on a leaderboard.

    A matching entry gets the higher of the two scores and is flagged as the
    current user; a missing user with points is appended. Entries are then
    sorted by score and re-ranked from 1.
    """
    entries = [dict(entry) for entry in entries]

    if user and not user.get("isGuest"):
        points = user_stat(user, "totalPoints")
        match = next((entry for entry in entries if _is_same_player(entry, user)), None)

        if match is not None:
            match["score"] = max(int(match.get("score") or 0), points)
            match["totalPoints"] = match["score"]
            match["isCurrentUser"] = True
        elif points > 0:
            entries.append({
                "id": str(user.get("id") or "me"),
                "username": user.get("name") or "You",
                "avatar": user.get("avatar") or "🌟",
                "score": points,
                "totalPoints": points,
                "streak": user_stat(user, "streak"),
                "cardsGenerated": user_stat(user, "cardsGenerated"),
                "cardsShared": user_stat(user, "cardsShared"),
                "level": user_stat(user, "level", 1),
                "isCurrentUser": True,
            })

    entries.sort(key=lambda e: int(e.get("score") or e.get("totalPoints") or 0), reverse=True)
    for index, entry in enumerate(entries):
        entry["rank"] = index + 1
        entry.setdefault("totalPoints", entry.get("score", 0))

    return entries


class FallbackSynthesizer:
    """
    Produces stand-in responses for the known backend operations.

    Synthesis is keyed by ``Operation``; anything else raises
    ``NoFallbackAvailable`` instead of guessing. Sign-in and sign-up are
    only synthesized when demo mode is explicitly enabled.

    Usage:
        synthesizer = FallbackSynthesizer(storage, demo_mode_enabled=True)
        data = synthesizer.synthesize("/analyze-mood", {"textInput": "great day"}, method="POST")
    """

    def __init__(
        self,
        storage: LocalStorage,
        demo_mode_enabled: bool = False,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.demo_mode_enabled = demo_mode_enabled
        self._rng = rng or random.Random()
        self._clock = clock
        self.registry: FallbackRegistry[Operation] = FallbackRegistry()

        handlers = {
            Operation.HEALTH: self._health,
            Operation.LEADERBOARD: self._leaderboard,
            Operation.TRENDING_ADVENTURES: self._trending,
            Operation.USER_PROFILE: self._profile,
            Operation.NOTIFICATIONS: lambda request: NotificationsResponse(),
            Operation.FRIENDS: lambda request: ListResponse(),
            Operation.CHALLENGES: lambda request: ListResponse(),
            Operation.SIGN_IN: self._sign_in,
            Operation.SIGN_UP: self._sign_up,
            Operation.ANALYZE_MOOD: self._analyze_mood,
            Operation.GENERATE_CAPSULE: self._capsule,
            Operation.GENERATE_VIBE_CARD: self._vibe_card,
            Operation.UPDATE_POINTS: self._update_points,
            Operation.SYNC_STATS: lambda request: AckResponse(),
            Operation.TRACK_EVENT: lambda request: AckResponse(),
            Operation.MARK_NOTIFICATIONS_READ: lambda request: AckResponse(),
        }
        for operation, handler in handlers.items():
            self.registry.register(operation, handler)

    def can_synthesize(self, operation: Operation) -> bool:
        if operation not in self.registry:
            return False
        return self.demo_mode_enabled or not operation.info.requires_demo_mode

    def synthesize(
        self,
        endpoint: Union[Operation, str],
        payload: Any = None,
        method: str = "GET",
    ) -> Dict[str, Any]:
        """
        Build a stand-in response for a request.

        Args:
            endpoint: An Operation, or the endpoint path/URL of the request
            payload: Request body (or query params for reads)
            method: HTTP method, used when ``endpoint`` is a path

        Returns:
            Response dict shaped like the real route's, with ``fallback: True``

        Raises:
            NoFallbackAvailable: Unknown endpoint, unusable payload, or an
                auth operation while demo mode is off
        """
        if isinstance(endpoint, Operation):
            operation = endpoint
        else:
            operation = resolve_operation(method, endpoint)

        info = operation.info
        handler = self.registry.get(operation)
        if handler is None:
            raise NoFallbackAvailable(info.path, info.method)

        if info.requires_demo_mode and not self.demo_mode_enabled:
            raise NoFallbackAvailable(
                info.path, info.method, reason="offline sign-in requires demo mode"
            )

        model = REQUEST_MODELS.get(operation, EmptyRequest)
        try:
            request = model.model_validate(payload or {})
        except ValidationError as e:
            raise NoFallbackAvailable(
                info.path, info.method, reason=f"unusable payload ({e.error_count()} errors)"
            ) from e

        response: BaseModel = handler(request)

        if info.queue_offline:
            self.storage.queue_pending(info.method, info.path, payload or {})

        self.registry.record_fallback(operation)
        logger.info(f"Synthesized fallback response for {info.method} {info.path}")

        return response.model_dump()

    def record_primary(self, operation: Operation):
        self.registry.record_primary(operation)

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        return self.registry.get_stats()

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()

    # Reads

    def _health(self, request: EmptyRequest) -> HealthResponse:
        return HealthResponse(
            status="offline",
            message="Backend unavailable - running in demo mode",
            timestamp=self._now_iso(),
        )

    def _leaderboard(self, request: EmptyRequest) -> LeaderboardResponse:
        entries = [
            {**entry, "totalPoints": entry["score"]}
            for entry in content.DEMO_LEADERBOARD
        ]
        merged = merge_current_user(entries, self.storage.get_user())
        return LeaderboardResponse(data=[LeaderboardEntry(**entry) for entry in merged])

    def _trending(self, request: EmptyRequest) -> TrendingResponse:
        return TrendingResponse(
            trending=[TrendingAdventure(**item) for item in content.TRENDING_ADVENTURES],
            viralAdventure=TrendingAdventure(**content.VIRAL_ADVENTURE),
        )

    def _profile(self, request: EmptyRequest) -> ProfileResponse:
        return ProfileResponse(user=self.storage.get_user() or copy.deepcopy(GUEST_USER))

    # Sessions

    def _demo_session(self, email: str, name: Optional[str]) -> Tuple[str, User]:
        """Derive a demo user and token from an email, keeping known stats."""
        email = email.strip().lower()
        digest = hashlib.sha256(email.encode("utf-8")).hexdigest()
        token = "demo-token-" + hashlib.sha256(f"{email}:session".encode("utf-8")).hexdigest()[:32]

        known = self.storage.get_json(USER_KEY)
        if not isinstance(known, dict) or (known.get("email") or "").lower() != email:
            known = None

        display_name = name or (known or {}).get("name") or email.split("@")[0].replace(".", " ").title()
        points = user_stat(known, "totalPoints")
        streak = user_stat(known, "streak")
        cards = user_stat(known, "cardsGenerated")
        shared = user_stat(known, "cardsShared")

        user = User(
            id=f"demo_{digest[:12]}",
            name=display_name,
            email=email,
            provider="demo",
            emailVerified=True,
            totalPoints=points,
            level=level_for_points(points),
            streak=streak,
            cardsGenerated=cards,
            cardsShared=shared,
            stats=UserStats(
                totalPoints=points,
                level=level_for_points(points),
                streak=streak,
                bestStreak=max(streak, user_stat(known, "bestStreak")),
                cardsGenerated=cards,
                cardsShared=shared,
                lastActiveDate=((known or {}).get("stats") or {}).get("lastActiveDate"),
            ),
        )
        return token, user

    def _sign_in(self, request: SignInRequest) -> AuthResponse:
        token, user = self._demo_session(request.email, None)
        self.storage.set_session(token, user.model_dump())
        return AuthResponse(token=token, user=user, message="Signed in offline (demo mode)")

    def _sign_up(self, request: SignUpRequest) -> AuthResponse:
        token, user = self._demo_session(request.email, request.name)
        self.storage.set_session(token, user.model_dump())
        return AuthResponse(token=token, user=user, message="Account created offline (demo mode)")

    # Writes

    def _analyze_mood(self, request: MoodAnalysisRequest) -> MoodAnalysis:
        mood, hits = classify_mood(request.textInput)
        confidence = 0.6 if hits == 0 else min(0.5 + 0.1 * hits, 0.9)
        return MoodAnalysis(mood=mood, confidence=round(confidence, 2), **content.MOOD_PROFILES[mood])

    def _capsule(self, request: CapsuleRequest) -> Capsule:
        mood = request.mood or (request.moodData or {}).get("mood") or "happy"
        key = content.CAPSULE_ALIASES.get(mood, mood)
        if key not in content.CAPSULE_CONTENT:
            key = "happy"
        selected = content.CAPSULE_CONTENT[key]

        return Capsule(
            mood=mood,
            adventure=Adventure(
                title=selected["title"],
                prompt=selected["prompt"],
                options=list(selected["options"]),
            ),
            moodBoost=selected["moodBoost"],
            brainBite=BrainBite(**self._rng.choice(content.BRAIN_BITES)),
            habitNudge=selected["habitNudge"],
        )

    def _vibe_card(self, request: VibeCardRequest) -> VibeCardResponse:
        capsule = request.capsuleData or {}
        stats = request.completionStats or {}
        stored = self.storage.get_user()
        user = request.user or stored or {}

        streak = user_stat(user, "streak") or self._rng.randint(1, 10)
        card = VibeCard(
            content=CardContent(
                adventure=CardAdventure(
                    title=(capsule.get("adventure") or {}).get("title") or "Your Adventure Awaits",
                    outcome=content.CARD_OUTCOME,
                ),
                achievement=CardAchievement(
                    points=int(stats.get("vibePointsEarned") or 50),
                    streak=streak,
                    badge=content.CARD_BADGE,
                ),
            ),
            design=CardDesign(template=self._rng.choice(content.CARD_TEMPLATES)),
            user=CardUser(name=user.get("name") or "Explorer", totalPoints=user_stat(user, "totalPoints")),
            sharing=CardSharing(
                captions=list(content.SHARE_CAPTIONS),
                hashtags=list(content.SHARE_HASHTAGS),
                qrCode=content.SHARE_URL,
            ),
        )

        if stored is not None:
            cards = user_stat(stored, "cardsGenerated") + 1
            stored["cardsGenerated"] = cards
            stored.setdefault("stats", {})["cardsGenerated"] = cards
            self.storage.set_user(stored)

        return VibeCardResponse(card=card)

    def _update_points(self, request: UpdatePointsRequest) -> PointsResponse:
        stored = self.storage.get_user()
        total = user_stat(stored, "totalPoints") + request.points
        streak = user_stat(stored, "streak") + 1
        level = level_for_points(total)

        if stored is not None:
            stats = stored.setdefault("stats", {})
            for target in (stored, stats):
                target["totalPoints"] = total
                target["streak"] = streak
                target["level"] = level
            stats["bestStreak"] = max(streak, user_stat(stats, "bestStreak"))
            stats["lastActiveDate"] = self._now_iso()
            self.storage.set_user(stored)

        return PointsResponse(vibePoints=request.points, streak=streak, totalPoints=total, level=level)
