"""
Template and pattern extraction from free text: titles, routine shapes,
belief statements, synchronicity details and mood context.
"""

import re
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel


DEFAULT_JOURNAL_TITLE = "Journal Entry"
MAX_TITLE_LENGTH = 50


def generate_title_from_content(content: str) -> str:
    """Title from the first sentence, minus filler openings, max 50 chars."""
    first_sentence = re.split(r"[.!?]+", content or "")[0].strip()
    if not first_sentence:
        return DEFAULT_JOURNAL_TITLE

    title = re.sub(r"^(journal|note|today|yesterday|i)\b[:,]?", "", first_sentence,
                   flags=re.IGNORECASE).strip()
    title = re.sub(r"^(had a|went to|did|was|am|felt|think|thought|just|really)\b", "", title,
                   flags=re.IGNORECASE).strip()
    if not title:
        return DEFAULT_JOURNAL_TITLE

    title = title[0].upper() + title[1:]
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


# --- Mood context ---

WEATHER_KEYWORDS = ["sunny", "rainy", "cloudy", "cold", "hot", "nice weather", "bad weather"]


def extract_mood_context(message: str) -> Dict[str, Any]:
    """Sleep hours, exercise, activities and weather mentioned in a mood message."""
    normalized = message.lower()
    context: Dict[str, Any] = {}

    sleep = re.search(r"(\d+)\s*hours?\s*(?:of\s+)?sleep", normalized)
    if sleep:
        context["sleep_hours"] = int(sleep.group(1))

    if any(w in normalized for w in ("exercise", "workout", "gym")) or re.search(r"\brun\b", normalized):
        context["exercise"] = True

    activity_words = [
        ("work", "work"),
        ("meeting", "meeting"),
        ("presentation", "presentation"),
        ("social", "socializing"),
        ("travel", "travel"),
    ]
    activities = [label for word, label in activity_words if word in normalized]
    if activities:
        context["activities"] = activities

    for weather in WEATHER_KEYWORDS:
        if weather in normalized:
            context["weather"] = weather
            break

    return context


# --- Routines ---

ROUTINE_CATEGORIES: Dict[str, List[str]] = {
    "Morning": ["morning", "wake up", "start", "begin"],
    "Evening": ["evening", "night", "sleep", "bed", "end"],
    "Exercise": ["workout", "exercise", "fitness", "gym", "run"],
    "Meditation": ["meditation", "mindfulness", "breathe", "calm"],
    "Work": ["work", "productivity", "focus", "study"],
    "Health": ["health", "wellness", "nutrition", "eating"],
}

_ROUTINE_NAME_PATTERNS = [
    re.compile(r"(?:create|add|new)\s+(?:a\s+)?(?:routine\s+)?(?:called|named)\s+[\"']?([^\"']+?)[\"']?$", re.I),
    re.compile(r"(?:create|add|new)\s+(?:a\s+|my\s+)?(.+?)\s+routine", re.I),
    re.compile(r"routine\s+for\s+(.+)", re.I),
    re.compile(r"(.+?)\s+routine", re.I),
]


def extract_routine_name(message: str) -> Optional[str]:
    for pattern in _ROUTINE_NAME_PATTERNS:
        match = pattern.search(message)
        if match and len(match.group(1).strip()) > 2:
            return match.group(1).strip()
    return None


def infer_routine_category(message: str) -> str:
    normalized = message.lower()
    for category, keywords in ROUTINE_CATEGORIES.items():
        if any(k in normalized for k in keywords):
            return category
    return "General"


def generate_basic_steps(message: str) -> List[Dict[str, Any]]:
    """Three starter steps shaped by the routine's time of day."""
    normalized = message.lower()
    if "morning" in normalized:
        steps = [("Wake up", 60), ("Stretch or light exercise", 300), ("Prepare for the day", 600)]
    elif "evening" in normalized:
        steps = [("Reflect on the day", 300), ("Prepare for tomorrow", 300), ("Wind down", 600)]
    else:
        steps = [("Begin routine", 60), ("Main activity", 480), ("Complete routine", 60)]
    return [
        {"id": f"step_{uuid4().hex[:8]}", "name": name, "duration_seconds": duration, "order": i}
        for i, (name, duration) in enumerate(steps, start=1)
    ]


# --- Beliefs ---

_BELIEF_PATTERNS = [
    re.compile(r"(?:add|create|new)\s+belief\s*:\s*(.+)", re.I),
    re.compile(r"belief\s+that\s+(.+)", re.I),
    re.compile(r"believe\s+that\s+(.+)", re.I),
    re.compile(r"\b(i\s+am\s+.+)", re.I),
]


def normalize_belief_statement(statement: str) -> str:
    """Strip trailing punctuation and make it a first-person statement."""
    statement = re.sub(r"[.!?]+$", "", statement.strip())
    if not statement.lower().startswith("i "):
        statement = f"I am {statement}"
    return statement[0].upper() + statement[1:]


def extract_belief_statement(message: str) -> Optional[str]:
    for pattern in _BELIEF_PATTERNS:
        match = pattern.search(message)
        if match and len(match.group(1).strip()) > 3:
            return normalize_belief_statement(match.group(1))
    return None


def generate_affirmations(statement: str) -> List[str]:
    lowered = statement[0].lower() + statement[1:] if statement else statement
    return [statement, f"I believe {lowered}", f"Every day, {lowered}"]


def generate_visualization_script(statement: str) -> Dict[str, Any]:
    return {
        "title": f"Visualizing: {statement}",
        "duration_minutes": 5,
        "script": (
            "Close your eyes and take three deep breaths. Imagine yourself fully "
            f"embodying the belief: \"{statement}\". See yourself acting with complete "
            "confidence in this truth. Feel the positive emotions this brings. Hold this "
            "vision for a moment, knowing that this belief is becoming stronger within "
            "you each day."
        ),
    }


# --- Synchronicities ---

DEFAULT_SIGNIFICANCE = 7
DEFAULT_EMOTIONS = ["wonder", "curious"]

_SYNCH_TITLE_PATTERNS = [
    re.compile(r"(?:log|record|saw)\s+(?:synch|synchronicity)\s*:\s*(.+)", re.I),
    re.compile(r"(?:synch|synchronicity)\s+about\s+(.+)", re.I),
    re.compile(r"(?:noticed|saw|experienced)\s+(.+?)\s+(?:synchronicity|synch)", re.I),
]


class SynchronicityDetails(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    significance: Optional[int] = None
    emotions: Optional[List[str]] = None


def extract_synchronicity_details(message: str) -> SynchronicityDetails:
    normalized = message.lower()

    title = None
    for pattern in _SYNCH_TITLE_PATTERNS:
        match = pattern.search(message)
        if match and len(match.group(1).strip()) > 3:
            title = match.group(1).strip()
            break

    significance = None
    sig = re.search(r"\b(\d+)\s*/\s*10\b", message)
    if sig and 1 <= int(sig.group(1)) <= 10:
        significance = int(sig.group(1))

    tags = []
    if "11:11" in normalized or "number" in normalized:
        tags.append("numbers")
    if "dream" in normalized or "vision" in normalized:
        tags.append("dreams")
    if "animal" in normalized or "bird" in normalized:
        tags.append("animals")
    if "person" in normalized or "meeting" in normalized:
        tags.append("people")
    if "timing" in normalized or "perfect" in normalized:
        tags.append("timing")

    emotions = None
    if "amazed" in normalized or "wow" in normalized:
        emotions = ["amazed", "wonder"]
    elif "weird" in normalized or "strange" in normalized:
        emotions = ["curious", "puzzled"]

    return SynchronicityDetails(
        title=title,
        description=message if title else None,
        tags=tags,
        significance=significance,
        emotions=emotions,
    )
