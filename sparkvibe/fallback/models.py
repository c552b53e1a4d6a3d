"""Request and response shapes for the backend operations."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    """Base for request payloads; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")


class EmptyRequest(RequestModel):
    """Payload for reads."""


class SignInRequest(RequestModel):
    email: str
    password: str = ""


class SignUpRequest(RequestModel):
    email: str
    password: str = ""
    name: Optional[str] = None


class MoodAnalysisRequest(RequestModel):
    textInput: str = ""
    timeOfDay: Optional[str] = None
    recentActivities: List[str] = Field(default_factory=list)
    timestamp: Optional[str] = None


class CapsuleRequest(RequestModel):
    mood: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    moodData: Optional[Dict[str, Any]] = None


class VibeCardRequest(RequestModel):
    capsuleData: Optional[Dict[str, Any]] = None
    userChoices: Optional[Dict[str, Any]] = None
    completionStats: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None


class UpdatePointsRequest(RequestModel):
    points: int = 10
    activity: Optional[str] = None


class SyncRequest(RequestModel):
    """Stats sync, event tracking and read receipts."""


# Responses

class FallbackResponse(BaseModel):
    """Base for synthesized responses."""

    fallback: bool = True


class UserStats(BaseModel):
    totalPoints: int = 0
    level: int = 1
    streak: int = 0
    bestStreak: int = 0
    cardsGenerated: int = 0
    cardsShared: int = 0
    adventuresCompleted: int = 0
    lastActiveDate: Optional[str] = None


class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    avatar: str = "🌟"
    provider: str = "demo"
    emailVerified: bool = True
    isGuest: bool = False
    totalPoints: int = 0
    level: int = 1
    streak: int = 0
    cardsGenerated: int = 0
    cardsShared: int = 0
    stats: UserStats = Field(default_factory=UserStats)


class HealthResponse(FallbackResponse):
    status: str
    message: str
    redis: str = "disconnected"
    timestamp: str


class AuthResponse(FallbackResponse):
    success: bool = True
    token: str
    user: User
    message: str


class ProfileResponse(FallbackResponse):
    success: bool = True
    user: Dict[str, Any]


class LeaderboardEntry(BaseModel):
    id: str
    username: str
    avatar: str = "🌟"
    score: int = 0
    totalPoints: int = 0
    rank: int = 0
    streak: int = 0
    cardsGenerated: int = 0
    cardsShared: int = 0
    level: int = 1
    isCurrentUser: bool = False


class LeaderboardResponse(FallbackResponse):
    success: bool = True
    data: List[LeaderboardEntry]


class TrendingAdventure(BaseModel):
    title: str
    description: str
    completions: int
    shares: int
    viralScore: float
    category: str
    template: str


class TrendingResponse(FallbackResponse):
    trending: List[TrendingAdventure]
    viralAdventure: TrendingAdventure


class ListResponse(FallbackResponse):
    success: bool = True
    data: List[Dict[str, Any]] = Field(default_factory=list)


class NotificationsResponse(ListResponse):
    unreadCount: int = 0


class MoodAnalysis(FallbackResponse):
    mood: str
    confidence: float
    emotions: List[str]
    recommendations: List[str]
    suggestedTemplate: str
    energyLevel: str
    socialMood: str


class Adventure(BaseModel):
    title: str
    prompt: str
    options: List[str]


class BrainBite(BaseModel):
    question: str
    answer: str


class Capsule(FallbackResponse):
    mood: str
    adventure: Adventure
    moodBoost: str
    brainBite: BrainBite
    habitNudge: str


class CardAdventure(BaseModel):
    title: str
    outcome: str


class CardAchievement(BaseModel):
    points: int
    streak: int
    badge: str


class CardContent(BaseModel):
    adventure: CardAdventure
    achievement: CardAchievement


class CardDesign(BaseModel):
    template: str


class CardUser(BaseModel):
    name: str
    totalPoints: int


class CardSharing(BaseModel):
    captions: List[str]
    hashtags: List[str]
    qrCode: str


class VibeCard(BaseModel):
    content: CardContent
    design: CardDesign
    user: CardUser
    sharing: CardSharing
    isDemo: bool = True


class VibeCardResponse(FallbackResponse):
    success: bool = True
    card: VibeCard


class PointsResponse(FallbackResponse):
    success: bool = True
    vibePoints: int
    streak: int
    totalPoints: int
    level: int


class AckResponse(FallbackResponse):
    success: bool = True
    queued: bool = True
    message: str = "Saved offline, will sync when the connection returns"
