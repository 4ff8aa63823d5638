"""
Message Parser: turns a chat message into a ParsedEntityOperation.

The engine depends only on the OperationParser protocol, so the rule-based
parser here can be replaced by a model-backed one. It aims at ordinary
commands ("add habit drink water daily", "delete habit called Exercise",
"complete reading", "journal: ...") and returns None when it finds neither
an entity nor an action it recognizes.
"""

import re
from typing import Any, Dict, List, Optional, Protocol, Tuple

from entity_kernel.enrichment.extraction import (
    extract_belief_statement,
    extract_routine_name,
    extract_synchronicity_details,
)
from entity_kernel.enrichment.sentiment import analyze_mood_from_message
from entity_kernel.models.operation import EntityType, Intent, ParsedEntityOperation


class OperationParser(Protocol):
    def parse(self, message: str) -> Optional[ParsedEntityOperation]: ...


# Checked in order; the first entity whose keywords appear wins
ENTITY_PATTERNS: List[Tuple[EntityType, re.Pattern]] = [
    (EntityType.SYNCHRONICITY, re.compile(r"\b(synch(?:ronicity|ronicities|s)?|coincidences?)\b", re.I)),
    (EntityType.BELIEF, re.compile(r"\b(beliefs?|affirmations?)\b", re.I)),
    (EntityType.ROUTINE, re.compile(r"\b(routines?)\b", re.I)),
    (EntityType.JOURNAL, re.compile(r"\b(journal(?:\s+entry|\s+entries)?|diary)\b", re.I)),
    (EntityType.GOAL, re.compile(r"\b(goals?)\b", re.I)),
    (EntityType.HABIT, re.compile(r"\b(habits?)\b", re.I)),
    (EntityType.MOOD, re.compile(r"\b(moods?(?:\s+entry)?|feeling|felt|energy)\b", re.I)),
]

# The earliest match in the message decides the intent
INTENT_PATTERNS: List[Tuple[Intent, re.Pattern]] = [
    (Intent.DELETE, re.compile(r"\b(delete|remove|erase|archive|get rid of)\b", re.I)),
    (Intent.TOGGLE, re.compile(r"\b(toggle|unmark|uncheck)\b", re.I)),
    (Intent.UPDATE, re.compile(r"\b(update|change|edit|rename|modify)\b", re.I)),
    (Intent.COMPLETE, re.compile(r"\b(complete|completed|finish|finished|done with|did|mark)\b", re.I)),
    (Intent.VIEW, re.compile(r"\b(show|view|list|see|display|what|how|review|trends?)\b", re.I)),
    (Intent.CREATE, re.compile(r"\b(add|create|new|start|log|record|track|write|set|begin)\b", re.I)),
]

QUOTED = re.compile(r"[\"“]([^\"”]+)[\"”]|'([^']+)'")
CALLED = re.compile(r"\b(?:called|named)\s+(.+)$", re.I)
RENAME = re.compile(r"\brename\s+(?:(?:habit|goal|routine)\s+)?(.+?)\s+to\s+(.+)$", re.I)
PERCENT = re.compile(r"(\d+(?:\.\d+)?)\s*%")
PROGRESS_TAIL = re.compile(r"\s*(?:progress\s*)?(?:to|at|by)?\s*\d+(?:\.\d+)?\s*%.*$", re.I)
FREQUENCY = re.compile(r"\b(daily|weekly|monthly|every\s+day|every\s+week)\b", re.I)
MOOD_RATING = re.compile(r"\b(?:mood|feeling)\s*(?:of|is|at|:)?\s*(\d+)(?:\s*/\s*10)?", re.I)
BARE_RATING = re.compile(r"\b(\d+)\s*/\s*10\b")
ENERGY_LEVEL = re.compile(r"\benergy\s*(?:level)?\s*(?:of|is|at|:)?\s*(\d+)", re.I)
DAYS = re.compile(r"\b(\d+)\s*days?\b", re.I)
LEADING_FILLER = re.compile(r"^(?:to|for|the|my|a|an|that|about|of|in|as|:|-)\s+|^[:\-]\s*", re.I)
TRAILING_FILLER = re.compile(r"\s+(?:today|now|please|habit|as done|as complete)$", re.I)

DATE_REFERENCES = ("yesterday", "today", "latest", "last", "recent")
TIMEFRAMES = (("this week", "week"), ("this month", "month"), ("today", "today"),
              ("week", "week"), ("month", "month"))


def _clean(text: str) -> str:
    text = text.strip().strip(".!?,;")
    previous = None
    while previous != text:
        previous = text
        text = LEADING_FILLER.sub("", text).strip()
        text = TRAILING_FILLER.sub("", text).strip()
    return text.strip(".!?,;\"' ")


def _first_match(patterns, text: str):
    best = None
    for key, pattern in patterns:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[1].start()):
            best = (key, match)
    return best


class RuleBasedOperationParser:
    """Keyword and regex parser for everyday commands."""

    def parse(self, message: str) -> Optional[ParsedEntityOperation]:
        text = (message or "").strip()
        if not text:
            return None

        entity_hit = next(
            ((etype, m) for etype, pattern in ENTITY_PATTERNS for m in [pattern.search(text)] if m),
            None,
        )
        intent_hit = _first_match(INTENT_PATTERNS, text)
        entity_type = entity_hit[0] if entity_hit else None
        entity_match = entity_hit[1] if entity_hit else None
        intent = intent_hit[0] if intent_hit else None
        intent_match = intent_hit[1] if intent_hit else None

        if entity_type is None:
            if intent in (Intent.COMPLETE, Intent.TOGGLE):
                entity_type = EntityType.HABIT
            elif self._looks_like_mood(text):
                entity_type = EntityType.MOOD
            else:
                return None

        if entity_match and self._is_colon_entry(entity_type, text, entity_match):
            intent = Intent.CREATE
        elif intent is None:
            intent = self._default_intent(entity_type, text)

        parameters = self._parameters(entity_type, intent, text, entity_match, intent_match)
        confidence = 0.9 if entity_hit and intent_hit else 0.7
        return ParsedEntityOperation(
            entity_type=entity_type,
            intent=intent,
            parameters=parameters,
            original_message=message,
            confidence=confidence,
        )

    def _looks_like_mood(self, text: str) -> bool:
        if MOOD_RATING.search(text) or ENERGY_LEVEL.search(text):
            return True
        return analyze_mood_from_message(text).suggested_mood is not None and bool(
            re.search(r"\b(i'?m|i am|feel|feeling)\b", text, re.I)
        )

    def _is_colon_entry(self, entity_type: EntityType, text: str, entity_match: re.Match) -> bool:
        """ "journal: ...", "log synch: ...", "add belief: ..." always create."""
        if entity_type not in (EntityType.JOURNAL, EntityType.SYNCHRONICITY, EntityType.BELIEF):
            return False
        return text[entity_match.end():].lstrip().startswith(":")

    def _default_intent(self, entity_type: EntityType, text: str) -> Intent:
        if entity_type == EntityType.MOOD:
            return Intent.CREATE
        if ":" in text and entity_type in (EntityType.JOURNAL, EntityType.SYNCHRONICITY, EntityType.BELIEF):
            return Intent.CREATE
        return Intent.VIEW

    # --- Parameters ---

    def _parameters(
        self,
        entity_type: EntityType,
        intent: Intent,
        text: str,
        entity_match: Optional[re.Match],
        intent_match: Optional[re.Match],
    ) -> Dict[str, Any]:
        builder = {
            EntityType.HABIT: self._habit,
            EntityType.GOAL: self._goal,
            EntityType.JOURNAL: self._journal,
            EntityType.MOOD: self._mood,
            EntityType.ROUTINE: self._routine,
            EntityType.BELIEF: self._belief,
            EntityType.SYNCHRONICITY: self._synchronicity,
        }[entity_type]
        return builder(intent, text, entity_match, intent_match)

    def _reference(
        self,
        text: str,
        entity_match: Optional[re.Match],
        intent_match: Optional[re.Match],
    ) -> Optional[str]:
        """The name the user gave: quoted, "called X", after or before the entity word."""
        quoted = QUOTED.search(text)
        if quoted:
            return (quoted.group(1) or quoted.group(2)).strip()
        called = CALLED.search(text)
        if called:
            return _clean(called.group(1)) or None

        candidates = []
        if entity_match:
            candidates.append(text[entity_match.end():])
            if intent_match and intent_match.end() <= entity_match.start():
                candidates.append(text[intent_match.end():entity_match.start()])
        elif intent_match:
            candidates.append(text[intent_match.end():])

        for candidate in candidates:
            candidate = PROGRESS_TAIL.sub("", candidate)
            candidate = FREQUENCY.sub("", candidate)
            name = _clean(candidate)
            if name:
                return name
        return None

    def _rename(self, text: str) -> Optional[Tuple[str, str]]:
        match = RENAME.search(text)
        if match:
            return _clean(match.group(1)), _clean(match.group(2))
        return None

    def _habit(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            if re.search(r"\bstreaks?\b", text, re.I):
                params["show_streaks"] = True
            return params

        renamed = self._rename(text) if intent == Intent.UPDATE else None
        if renamed:
            params["name"], params["new_name"] = renamed
        else:
            name = self._reference(text, entity_match, intent_match)
            if name:
                params["name"] = name

        frequency = FREQUENCY.search(text)
        if frequency and intent in (Intent.CREATE, Intent.UPDATE):
            word = frequency.group(1).lower()
            params["frequency"] = {"every day": "daily", "every week": "weekly"}.get(word, word)
        return params

    def _goal(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            status = re.search(r"\b(active|completed|paused|abandoned)\b", text, re.I)
            if status:
                params["status"] = status.group(1).lower()
            return params

        renamed = self._rename(text) if intent == Intent.UPDATE else None
        if renamed:
            params["title"], params["new_title"] = renamed
        else:
            title = self._reference(text, entity_match, intent_match)
            if title:
                params["title"] = title

        percent = PERCENT.search(text)
        if percent and intent == Intent.UPDATE:
            params["progress_percentage"] = float(percent.group(1))
        priority = re.search(r"\b(high|medium|low)\s+priority\b", text, re.I)
        if priority:
            params["priority"] = priority.group(1).lower()
        return params

    def _journal(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        lowered = text.lower()
        if intent == Intent.CREATE:
            if ":" in text:
                content = text.split(":", 1)[1].strip()
            elif entity_match:
                content = _clean(text[entity_match.end():])
            else:
                content = text
            if content:
                params["content"] = content
            return params

        about = re.search(r"\babout\s+(.+)$", text, re.I)
        if about:
            params["search"] = _clean(about.group(1))
        if intent == Intent.VIEW:
            for phrase, timeframe in TIMEFRAMES:
                if phrase in lowered:
                    params["timeframe"] = timeframe
                    break
        else:
            for reference in DATE_REFERENCES:
                if re.search(rf"\b{reference}\b", lowered):
                    params["date_reference"] = reference
                    break
        if intent == Intent.UPDATE and ":" in text:
            params["content"] = text.split(":", 1)[1].strip()
        return params

    def _mood(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            days = DAYS.search(text)
            if days:
                params["days"] = int(days.group(1))
            elif "week" in text.lower():
                params["days"] = 7
            return params

        rating = MOOD_RATING.search(text) or BARE_RATING.search(text)
        if rating:
            params["mood_rating"] = int(rating.group(1))
        energy = ENERGY_LEVEL.search(text)
        if energy:
            params["energy_level"] = int(energy.group(1))
        if intent != Intent.CREATE and re.search(r"\btoday\b", text, re.I):
            params["date_reference"] = "today"
        return params

    def _routine(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            return params
        renamed = self._rename(text) if intent == Intent.UPDATE else None
        if renamed:
            params["name"], params["new_name"] = renamed
            return params
        name = None
        if intent == Intent.CREATE:
            name = extract_routine_name(text)
        name = name or self._reference(text, entity_match, intent_match)
        if name:
            params["name"] = name
        return params

    def _belief(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            return params
        statement = extract_belief_statement(text) if intent == Intent.CREATE else None
        statement = statement or self._reference(text, entity_match, intent_match)
        if statement:
            params["statement"] = statement
        return params

    def _synchronicity(self, intent, text, entity_match, intent_match) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if intent == Intent.VIEW:
            return params
        if intent == Intent.CREATE:
            details = extract_synchronicity_details(text)
            description = text.split(":", 1)[1].strip() if ":" in text else text
            params["description"] = description
            if details.title:
                params["title"] = details.title
            if details.significance:
                params["significance"] = details.significance
            return params
        title = self._reference(text, entity_match, intent_match)
        if title:
            params["title"] = title
        return params
