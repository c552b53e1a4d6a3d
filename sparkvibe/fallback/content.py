"""Canned content used when the backend cannot be reached."""

# Scanned in order; ties go to the earlier mood
MOOD_KEYWORDS = {
    "happy": [
        "happy", "great", "excited", "amazing", "awesome", "good", "joy",
        "joyful", "wonderful", "fantastic", "glad", "love", "grateful", "cheerful",
    ],
    "sad": [
        "sad", "down", "depressed", "lonely", "upset", "unhappy", "blue",
        "heartbroken", "miserable", "cry", "crying", "disappointed",
    ],
    "energetic": [
        "energetic", "pumped", "motivated", "active", "hyped", "unstoppable",
        "productive", "restless", "charged",
    ],
    "calm": [
        "calm", "relaxed", "peaceful", "chill", "serene", "content", "rested",
        "mellow", "tranquil",
    ],
    "anxious": [
        "anxious", "nervous", "worried", "stressed", "scared", "overwhelmed",
        "tense", "afraid", "panicking", "uneasy",
    ],
}

DEFAULT_MOOD = "curious"

MOOD_PROFILES = {
    "happy": {
        "emotions": ["joyful", "optimistic"],
        "recommendations": ["Share your good vibes with a friend", "Capture this moment in a vibe card"],
        "suggestedTemplate": "sunset",
        "energyLevel": "high",
        "socialMood": "outgoing",
    },
    "sad": {
        "emotions": ["reflective", "tender"],
        "recommendations": ["Be gentle with yourself today", "Reach out to someone you trust"],
        "suggestedTemplate": "minimal",
        "energyLevel": "low",
        "socialMood": "introspective",
    },
    "energetic": {
        "emotions": ["driven", "enthusiastic"],
        "recommendations": ["Channel that energy into a quick workout", "Tackle the task you have been putting off"],
        "suggestedTemplate": "retro",
        "energyLevel": "high",
        "socialMood": "outgoing",
    },
    "calm": {
        "emotions": ["peaceful", "grounded"],
        "recommendations": ["Enjoy a mindful walk", "Savor a slow cup of tea"],
        "suggestedTemplate": "nature",
        "energyLevel": "medium-low",
        "socialMood": "balanced",
    },
    "anxious": {
        "emotions": ["uneasy", "alert"],
        "recommendations": ["Try a 4-7-8 breathing exercise", "Write down what is on your mind"],
        "suggestedTemplate": "nature",
        "energyLevel": "medium-high",
        "socialMood": "reserved",
    },
    "curious": {
        "emotions": ["curious", "hopeful"],
        "recommendations": ["Try something new today", "Embrace your curiosity"],
        "suggestedTemplate": "cosmic",
        "energyLevel": "medium",
        "socialMood": "balanced",
    },
}

CAPSULE_CONTENT = {
    "happy": {
        "title": "✨ Sunshine Adventure",
        "prompt": "Your positive energy is contagious! Choose how to spread the joy today:",
        "options": ["Send a cheerful message to a friend", "Do a happy dance and share it"],
        "moodBoost": "Your happiness is lighting up the world! Keep shining! 🌟",
        "habitNudge": "Smile at 3 people today and watch the magic happen!",
    },
    "chill": {
        "title": "🌊 Zen Moment",
        "prompt": "Time to embrace the calm vibes. What sounds most relaxing?",
        "options": ["Take 5 deep breaths and meditate", "Listen to your favorite chill music"],
        "moodBoost": "Your chill energy brings peace to those around you 🧘",
        "habitNudge": "Stretch for 2 minutes and feel the tension melt away",
    },
    "curious": {
        "title": "🔍 Discovery Quest",
        "prompt": "Your curiosity is your superpower! What sparks your interest?",
        "options": ["Learn one fascinating fact today", "Ask someone an interesting question"],
        "moodBoost": "Your curious mind makes the world more interesting! 🚀",
        "habitNudge": "Read about something completely new for 5 minutes",
    },
    "sad": {
        "title": "🌧️ Gentle Comfort",
        "prompt": "It is okay to slow down. What would feel kind right now?",
        "options": ["Write three things you are grateful for", "Call someone who makes you smile"],
        "moodBoost": "Every storm passes. You are stronger than you feel 💙",
        "habitNudge": "Step outside for 5 minutes of fresh air",
    },
    "energetic": {
        "title": "⚡ Power Surge",
        "prompt": "You are fully charged! Where will you point that energy?",
        "options": ["Do a 10-minute burst workout", "Knock out one task you have been avoiding"],
        "moodBoost": "Your momentum is unstoppable today! 🔥",
        "habitNudge": "Drink a glass of water before your next challenge",
    },
    "anxious": {
        "title": "🍃 Steady Ground",
        "prompt": "Let us find your footing. Which reset sounds best?",
        "options": ["Try box breathing for one minute", "Name five things you can see around you"],
        "moodBoost": "You have handled hard days before, and you will handle this one 🌿",
        "habitNudge": "Put your phone down for 10 quiet minutes",
    },
}

# Capsule content keys for moods that share a capsule
CAPSULE_ALIASES = {"calm": "chill", "relaxed": "chill"}

BRAIN_BITES = [
    {"question": "What percentage of your body is water?", "answer": "About 60%! Stay hydrated! 💧"},
    {"question": "How long does it take light from the Sun to reach Earth?", "answer": "About 8 minutes and 20 seconds ☀️"},
    {"question": "Which animal has three hearts?", "answer": "The octopus! 🐙"},
    {"question": "How many times does your heart beat in a day?", "answer": "Roughly 100,000 times ❤️"},
]

DEMO_LEADERBOARD = [
    {
        "id": "demo-1", "username": "Vibe Master", "avatar": "🚀", "score": 2450,
        "streak": 25, "cardsGenerated": 15, "cardsShared": 9, "level": 5,
    },
    {
        "id": "demo-2", "username": "Adventure Seeker", "avatar": "🌟", "score": 1890,
        "streak": 12, "cardsGenerated": 12, "cardsShared": 6, "level": 3,
    },
    {
        "id": "demo-3", "username": "Mindful Explorer", "avatar": "🧘", "score": 1320,
        "streak": 8, "cardsGenerated": 7, "cardsShared": 3, "level": 2,
    },
]

TRENDING_ADVENTURES = [
    {
        "title": "Morning Gratitude Walk",
        "description": "Start your day with mindful appreciation",
        "completions": 1847, "shares": 923, "viralScore": 0.82,
        "category": "morning", "template": "nature",
    },
    {
        "title": "Five-Minute Forest Break",
        "description": "Find the nearest patch of green and just listen",
        "completions": 1203, "shares": 488, "viralScore": 0.71,
        "category": "outdoor", "template": "nature",
    },
    {
        "title": "Desk Stretch Reset",
        "description": "Loosen up between meetings",
        "completions": 964, "shares": 301, "viralScore": 0.64,
        "category": "wellness", "template": "minimal",
    },
]

VIRAL_ADVENTURE = {
    "title": "Random Act of Kindness",
    "description": "Brighten someone's day unexpectedly",
    "completions": 3421, "shares": 2156, "viralScore": 0.91,
    "category": "social", "template": "cosmic",
}

CARD_TEMPLATES = ["cosmic", "nature", "retro", "minimal"]

CARD_OUTCOME = "You embraced creativity and discovered new possibilities!"
CARD_BADGE = "Creative Explorer"

SHARE_CAPTIONS = [
    "Just completed an amazing SparkVibe adventure!",
    "Level up your mindset with SparkVibe!",
    "Daily dose of inspiration unlocked!",
]

SHARE_HASHTAGS = ["#SparkVibe", "#Adventure", "#Growth", "#Inspiration"]

SHARE_URL = "https://sparkvibe.app"
