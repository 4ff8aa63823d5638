"""
Keyword sentiment heuristics for journal and mood text.

Pure functions (str → score/category) so they can be replaced by a real
NLP model without touching handlers.
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel


POSITIVE_WORDS = [
    "happy", "great", "awesome", "amazing", "wonderful", "fantastic", "excited",
    "grateful", "blessed", "proud", "accomplished", "successful", "joy", "love",
    "peaceful", "calm", "relaxed",
]
NEGATIVE_WORDS = [
    "sad", "angry", "frustrated", "worried", "anxious", "stressed", "terrible",
    "awful", "depressed", "upset", "disappointed", "tired", "exhausted",
    "overwhelmed", "lonely",
]

CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "work": ["work", "job", "meeting", "project", "deadline", "boss", "colleague",
             "office", "business", "client", "presentation"],
    "health": ["exercise", "workout", "gym", "run", "walk", "diet", "health",
               "doctor", "medicine", "sleep", "tired"],
    "relationships": ["family", "friend", "partner", "date", "spouse", "child",
                      "parent", "relationship", "love", "conversation"],
    "personal": ["learning", "reading", "hobby", "creative", "art", "music",
                 "movie", "book", "game", "meditation"],
    "travel": ["trip", "vacation", "travel", "flight", "hotel", "explore",
               "adventure", "journey", "destination"],
    "spiritual": ["prayer", "meditation", "gratitude", "blessing", "faith",
                  "church", "spiritual", "mindfulness", "reflection"],
}

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "morning": ["morning", "breakfast", "wake up", "start day"],
    "evening": ["evening", "dinner", "end day", "night"],
    "weekend": ["weekend", "saturday", "sunday"],
    "achievement": ["accomplished", "finished", "completed", "success", "proud"],
    "reflection": ["thinking", "reflecting", "contemplating", "wondering", "realizing"],
}

# Ordered strongest-first; the first hit wins.
EMOTION_MOOD_MAP: Dict[str, int] = {
    "amazing": 9, "fantastic": 9, "incredible": 9, "excellent": 9, "wonderful": 9,
    "great": 8, "awesome": 8, "brilliant": 8, "outstanding": 8,
    "happy": 7, "good": 7, "positive": 7, "cheerful": 7, "pleased": 7,
    "content": 6, "satisfied": 6, "fine": 6, "okay": 6,
    "neutral": 5, "average": 5, "normal": 5, "meh": 5,
    "sad": 3, "down": 3, "low": 3, "disappointed": 3, "upset": 3,
    "worried": 3, "anxious": 3, "stressed": 3, "tired": 3,
    "terrible": 1, "awful": 1, "horrible": 2, "depressed": 2, "devastated": 2,
}

ENERGY_WORD_MAP: Dict[str, int] = {
    "energetic": 9, "hyper": 9, "pumped": 8, "excited": 8, "motivated": 8,
    "alert": 7, "active": 7, "refreshed": 7,
    "normal": 5, "average": 5, "steady": 5,
    "tired": 2, "exhausted": 1, "drained": 1, "sleepy": 2, "lethargic": 2,
    "sluggish": 3, "low": 3,
}

TREND_KEYWORDS = [
    "trend", "trends", "pattern", "patterns", "history", "over time",
    "analytics", "analysis", "how has my mood", "mood been", "tracking",
    "progress", "improvement", "declining", "getting better", "getting worse",
]

MAX_TAGS = 5


class JournalAnalysis(BaseModel):
    suggested_mood: int
    suggested_tags: List[str] = []
    category: Optional[str] = None
    mood: str = "neutral"                 # "positive" | "challenging" | "neutral"
    sentiment: str = "neutral"            # "positive" | "negative" | "neutral"


class MoodAnalysis(BaseModel):
    suggested_mood: Optional[int] = None
    suggested_energy: Optional[int] = None
    detected_emotion: Optional[str] = None
    extracted_notes: Optional[str] = None
    suggested_tags: List[str] = []


def _contains_word(text: str, word: str) -> bool:
    return re.search(r"\b" + re.escape(word) + r"\b", text) is not None


def _unique(items: List[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def sentiment_scores(text: str) -> Dict[str, int]:
    normalized = text.lower()
    return {
        "positive": sum(1 for w in POSITIVE_WORDS if _contains_word(normalized, w)),
        "negative": sum(1 for w in NEGATIVE_WORDS if _contains_word(normalized, w)),
    }


def infer_category(text: str) -> Optional[str]:
    """Category with the most keyword hits; ties keep the first declared."""
    normalized = text.lower()
    best, best_hits = None, 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = sum(1 for k in keywords if _contains_word(normalized, k))
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def analyze_journal_content(content: str) -> JournalAnalysis:
    """Infer mood rating, category and tags from journal text."""
    scores = sentiment_scores(content)
    positive, negative = scores["positive"], scores["negative"]

    if positive > negative:
        sentiment, mood, suggested = "positive", "positive", min(10, 6 + positive)
    elif negative > positive:
        sentiment, mood, suggested = "negative", "challenging", max(1, 5 - negative)
    else:
        sentiment, mood, suggested = "neutral", "neutral", 5

    category = infer_category(content)
    tags: List[str] = []
    if category:
        tags.append(category)
    if mood != "neutral":
        tags.append(mood)
    tags.extend(tag.lower() for tag in re.findall(r"#(\w+)", content))

    normalized = content.lower()
    for topic, keywords in TOPIC_KEYWORDS.items():
        if any(k in normalized for k in keywords):
            tags.append(topic)

    return JournalAnalysis(
        suggested_mood=suggested,
        suggested_tags=_unique(tags)[:MAX_TAGS],
        category=category,
        mood=mood,
        sentiment=sentiment,
    )


def analyze_mood_from_message(message: str) -> MoodAnalysis:
    """Map emotion/energy words to 1-10 ratings and pull out notes and tags."""
    normalized = message.lower()

    suggested_mood, detected_emotion = None, None
    for emotion, value in EMOTION_MOOD_MAP.items():
        if _contains_word(normalized, emotion):
            suggested_mood, detected_emotion = value, emotion
            break

    suggested_energy = None
    for word, value in ENERGY_WORD_MAP.items():
        if _contains_word(normalized, word):
            suggested_energy = value
            break

    notes = re.sub(
        r"(?:mood|feeling|energy)\s+(?:of\s+|is\s+)?\d+(?:/10|\s+out\s+of\s+10)?",
        "", message, flags=re.IGNORECASE,
    )
    notes = re.sub(r"\d+/10", "", notes)
    notes = re.sub(r"(?:i\s+am\s+feeling|i'm\s+feeling|feeling|mood:|energy:)", "", notes,
                   flags=re.IGNORECASE)
    notes = " ".join(notes.split())
    extracted_notes = notes if len(notes) >= 3 else None

    tags: List[str] = []
    if "work" in normalized:
        tags.append("work")
    if "exercise" in normalized or "workout" in normalized:
        tags.append("exercise")
    if "social" in normalized or "friends" in normalized:
        tags.append("social")
    if "family" in normalized:
        tags.append("family")
    if "health" in normalized or "sick" in normalized:
        tags.append("health")
    if "sleep" in normalized or "rest" in normalized:
        tags.append("sleep")
    if suggested_mood is not None and suggested_mood >= 7:
        tags.append("positive")
    if suggested_mood is not None and suggested_mood <= 3:
        tags.append("challenging")
    if "stress" in normalized:
        tags.append("stress")
    if "calm" in normalized or "peaceful" in normalized:
        tags.append("calm")

    return MoodAnalysis(
        suggested_mood=suggested_mood,
        suggested_energy=suggested_energy,
        detected_emotion=detected_emotion,
        extracted_notes=extracted_notes,
        suggested_tags=_unique(tags)[:MAX_TAGS],
    )


def is_mood_trend_query(message: str) -> bool:
    normalized = message.lower()
    return any(k in normalized for k in TREND_KEYWORDS)


def trend_direction(values: List[float], threshold: float = 0.5) -> str:
    """Compare the mean of the later half with the earlier half."""
    if len(values) < 2:
        return "stable"
    middle = len(values) // 2
    earlier = values[:middle]
    later = values[middle:]
    delta = sum(later) / len(later) - sum(earlier) / len(earlier)
    if delta > threshold:
        return "improving"
    if delta < -threshold:
        return "declining"
    return "stable"
