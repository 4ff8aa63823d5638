"""
Error Classifier & Recovery Advisor.

Every failure in the operation pipeline ends up here instead of reaching the
user raw.

Behavioral Contract:
- Entry points mirror the pipeline: parsing, validation, target
  resolution (not found, missing reference), service
- Severity escalates with the user's recent error count: at least
  `escalation_threshold` errors inside the cooldown window force >= high
- Service error type is inferred from exception message keywords
- Suggestions come from the shape of the original message
- Recovery actions are ranked by priority and tagged automatic /
  user_input / fallback
- Purely advisory: never retries anything itself
- Critical errors are logged for operators
"""

import asyncio
import logging
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from entity_kernel.models.config import EngineConfig
from entity_kernel.models.errors import (
    ChatEntityError,
    ErrorContext,
    ErrorSeverity,
    ErrorStage,
    ErrorSuggestion,
    ErrorType,
    RecoveryAction,
    RecoveryMode,
    SuggestionType,
)
from entity_kernel.models.operation import EntityCandidate, EntityType, ParsedEntityOperation
from entity_kernel.errors.history import ErrorHistoryStore, InMemoryErrorHistory
from entity_kernel.resolution.resolver import levenshtein_distance, similarity

logger = logging.getLogger(__name__)


ACTION_WORDS = [
    "add", "create", "new", "make", "log", "record", "update", "edit", "change",
    "delete", "remove", "show", "view", "list", "complete", "done", "finished",
    "toggle", "mark",
]
ENTITY_WORDS = [
    "habit", "goal", "journal", "entry", "mood", "routine", "belief",
    "synchronicity", "synch",
]
KNOWN_TERMS = sorted(set(ACTION_WORDS + ENTITY_WORDS + ["habits", "goals", "routines", "beliefs"]))

MAX_SUGGESTIONS = 4

COMMAND_EXAMPLES = [
    "Create habit to drink water daily",
    "Add goal to lose 10 pounds by March",
    "Show my journal entries from this week",
]

NAME_EXAMPLES: Dict[EntityType, List[str]] = {
    EntityType.HABIT: ["Drink 8 glasses of water", "Exercise for 30 minutes", "Read before bed"],
    EntityType.GOAL: ["Lose 10 pounds", "Learn Spanish", "Save $5000", "Run a marathon"],
    EntityType.JOURNAL: ["Today's thoughts", "Weekend reflection", "Work progress"],
    EntityType.MOOD: ["Morning mood check", "Post-workout feeling"],
    EntityType.ROUTINE: ["Morning routine", "Evening wind-down", "Workout routine"],
    EntityType.BELIEF: ["I am capable", "Growth mindset", "Abundance thinking"],
    EntityType.SYNCHRONICITY: ["Meeting an old friend", "Perfect timing", "Meaningful coincidence"],
}

FIELD_PHRASES = {
    "name": "I need a name for it",
    "title": "I need a title for it",
    "content": "I need some content for the entry",
    "statement": "I need the belief statement itself",
    "description": "I need a short description",
    "mood_rating": "the mood rating must be a whole number from 1 to 10",
    "energy_level": "the energy level must be a whole number from 1 to 10",
    "significance": "the significance must be a number from 1 to 10",
    "frequency": "the frequency must be daily, weekly or monthly",
    "priority": "the priority must be low, medium or high",
}

_AUTH_KEYWORDS = ("unauthorized", "forbidden", "authentication", "permission denied", "401", "403")
_RATE_KEYWORDS = ("rate limit", "too many requests", "429")
_NETWORK_KEYWORDS = ("network", "timeout", "timed out", "connection", "unreachable")


# --- Pure helpers ---

def _words(message: str) -> List[str]:
    return re.findall(r"[a-z0-9']+", message.lower())


def has_action_word(message: str) -> bool:
    return any(w in ACTION_WORDS for w in _words(message))


def has_entity_word(message: str) -> bool:
    return any(w.rstrip("s") in ENTITY_WORDS or w in ENTITY_WORDS for w in _words(message))


def detect_entity_word(message: str) -> Optional[str]:
    for w in _words(message):
        for candidate in (w, w.rstrip("s")):
            if candidate in ENTITY_WORDS:
                return "synchronicity" if candidate == "synch" else candidate
    return None


def detect_typos(message: str) -> List[Dict[str, str]]:
    """Words within two edits of a known term (and not one themselves)."""
    corrections = []
    for word in set(_words(message)):
        if len(word) < 4 or word in KNOWN_TERMS:
            continue
        best, best_distance = None, 3
        for term in KNOWN_TERMS:
            distance = levenshtein_distance(word, term)
            if distance < best_distance and similarity(word, term) >= 0.6:
                best, best_distance = term, distance
        if best:
            corrected = re.sub(rf"\b{re.escape(word)}\b", best, message, flags=re.IGNORECASE)
            corrections.append({"word": word, "suggestion": best, "corrected_message": corrected})
    return sorted(corrections, key=lambda c: c["word"])


def infer_error_type(error: Union[BaseException, str]) -> ErrorType:
    """Best-effort keyword classification of a service failure."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorType.NETWORK
    if isinstance(error, PermissionError):
        return ErrorType.AUTHENTICATION

    text = str(error).lower()
    if any(k in text for k in _AUTH_KEYWORDS):
        return ErrorType.AUTHENTICATION
    if any(k in text for k in _RATE_KEYWORDS):
        return ErrorType.RATE_LIMIT
    if any(k in text for k in _NETWORK_KEYWORDS):
        return ErrorType.NETWORK
    return ErrorType.SERVICE


def error_code(error_type: ErrorType, message: str = "") -> str:
    text = message.lower()
    if error_type == ErrorType.PARSING:
        return "PARSE_001"
    if error_type == ErrorType.VALIDATION:
        return "VALID_001"
    if error_type == ErrorType.NETWORK:
        return "NET_002" if ("timeout" in text or "timed out" in text) else "NET_001"
    if error_type == ErrorType.AUTHENTICATION:
        return "AUTH_002" if ("forbidden" in text or "403" in text or "permission" in text) else "AUTH_001"
    if error_type == ErrorType.RATE_LIMIT:
        return "RATE_001"
    if error_type == ErrorType.SERVICE:
        return "SVC_001"
    return "UNK_001"


def _field_of(error: str) -> str:
    return error.split(":", 1)[0].split(" or ")[0].split(".")[0].strip()


class ErrorClassifier:
    """Classifies pipeline failures and advises on recovery."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        history: Optional[ErrorHistoryStore] = None,
    ):
        self.config = config or EngineConfig()
        self.history = history if history is not None else InMemoryErrorHistory()
        self._error_counts: Counter = Counter()

    def classify(
        self,
        stage: ErrorStage,
        *,
        message: str = "",
        operation: Optional[ParsedEntityOperation] = None,
        errors: Optional[List[str]] = None,
        exception: Optional[BaseException] = None,
        service_name: Optional[str] = None,
        user_id: Optional[str] = None,
        parsing_attempt: Optional[Dict[str, Any]] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        """Single entry point; dispatches on the pipeline stage."""
        if stage == ErrorStage.PARSING:
            return self.classify_parsing_error(
                message, user_id=user_id, parsing_attempt=parsing_attempt, current_time=current_time
            )
        if operation is None:
            raise ValueError(f"{stage.value} errors need the operation that failed")
        if stage == ErrorStage.VALIDATION:
            return self.classify_validation_error(
                operation, errors or [], user_id=user_id, current_time=current_time
            )
        return self.classify_service_error(
            operation,
            exception or RuntimeError(message or "service call failed"),
            service_name or operation.entity_type.value,
            user_id=user_id,
            current_time=current_time,
        )

    # --- Parsing ---

    def classify_parsing_error(
        self,
        message: str,
        user_id: Optional[str] = None,
        parsing_attempt: Optional[Dict[str, Any]] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        now = current_time or datetime.utcnow()
        stripped = (message or "").strip()
        suggestions = self._parsing_suggestions(stripped, parsing_attempt)

        if len(stripped) < 3:
            base = ErrorSeverity.HIGH
        elif len(stripped) < 10:
            base = ErrorSeverity.MEDIUM
        else:
            base = ErrorSeverity.LOW

        if stripped:
            friendly = f'I couldn\'t understand "{stripped}". '
        else:
            friendly = "I didn't catch that. "
        friendly += suggestions[0].description if suggestions else "Could you please rephrase your request?"

        error = ChatEntityError(
            type=ErrorType.PARSING,
            severity=self._escalate(base, user_id, now),
            message=f"Failed to parse message: {stripped!r}",
            user_friendly_message=friendly,
            code=error_code(ErrorType.PARSING),
            context=ErrorContext(original_message=message or "", timestamp=now, user_id=user_id),
            suggestions=suggestions,
            recovery_actions=self._parsing_recovery_actions(stripped),
        )
        self._record(user_id, error, now)
        return error

    def _parsing_suggestions(
        self, message: str, parsing_attempt: Optional[Dict[str, Any]]
    ) -> List[ErrorSuggestion]:
        suggestions = []
        words = message.split()
        has_action = has_action_word(message)
        has_entity = has_entity_word(message)

        if len(message) < 10 or len(words) < 3 or not has_action:
            suggestions.append(ErrorSuggestion(
                id="be_more_specific",
                title="Be more specific",
                description='Try saying what you want to do and what it is, like "create habit drink water".',
                action_type=SuggestionType.MODIFY,
                confidence=0.9,
                parameters={"examples": COMMAND_EXAMPLES},
            ))

        if has_action and not has_entity:
            suggestions.append(ErrorSuggestion(
                id="specify_entity",
                title="Specify what type of item",
                description="Mention what you're working with: habit, goal, journal entry, mood, routine, belief or synchronicity.",
                action_type=SuggestionType.MODIFY,
                confidence=0.8,
                parameters={"entities": [t.value for t in EntityType]},
            ))

        entity = (parsing_attempt or {}).get("entity_type") or detect_entity_word(message)
        if has_entity and not has_action and entity:
            suggestions.append(ErrorSuggestion(
                id="suggest_actions",
                title=f"What do you want to do with your {entity}?",
                description=f"I can create, update, view, complete or delete a {entity}.",
                action_type=SuggestionType.ALTERNATIVE,
                confidence=0.7,
                parameters={"entity_type": entity, "actions": ["create", "update", "view", "delete"]},
            ))

        typos = detect_typos(message)
        if typos:
            suggestions.append(ErrorSuggestion(
                id="typo_correction",
                title="Check for typos",
                description="Did you mean: " + ", ".join(t["suggestion"] for t in typos) + "?",
                action_type=SuggestionType.MODIFY,
                confidence=0.6,
                parameters={"corrections": typos},
            ))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        return suggestions[:MAX_SUGGESTIONS]

    def _parsing_recovery_actions(self, message: str) -> List[RecoveryAction]:
        actions = [
            RecoveryAction(
                id="guided_input",
                label="Get help with input",
                description="I'll ask you step-by-step questions to understand what you want",
                action_type=RecoveryMode.USER_INPUT,
                handler="startGuidedInput",
                priority=1,
            ),
            RecoveryAction(
                id="show_examples",
                label="Show examples",
                description="See examples of commands I understand",
                action_type=RecoveryMode.USER_INPUT,
                handler="showExamples",
                priority=2,
            ),
            self._manual_entry(priority=3),
        ]
        if has_action_word(message) or has_entity_word(message) or detect_typos(message):
            actions.append(RecoveryAction(
                id="retry_modified",
                label="Try again with changes",
                description="Rephrase using one of the suggestions above",
                action_type=RecoveryMode.USER_INPUT,
                handler="retryWithCorrections",
                priority=0,
            ))
        return sorted(actions, key=lambda a: a.priority)

    # --- Validation ---

    def classify_validation_error(
        self,
        operation: ParsedEntityOperation,
        errors: List[str],
        user_id: Optional[str] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        now = current_time or datetime.utcnow()
        fields = [_field_of(e) for e in errors]
        missing = [f for f, e in zip(fields, errors) if e.endswith("Field required")]

        error = ChatEntityError(
            type=ErrorType.VALIDATION,
            severity=self._escalate(ErrorSeverity.MEDIUM, user_id, now),
            message="Invalid parameters: " + "; ".join(errors),
            user_friendly_message=self._validation_message(operation, fields),
            code=error_code(ErrorType.VALIDATION),
            context=self._context(operation, now, user_id),
            suggestions=self._validation_suggestions(operation, fields),
            recovery_actions=self._validation_recovery_actions(has_missing=bool(missing)),
        )
        self._record(user_id, error, now)
        return error

    def _validation_message(self, operation: ParsedEntityOperation, fields: List[str]) -> str:
        entity = operation.entity_type.value
        opening = f"I understand you want to {operation.intent.value} a {entity}, but "
        phrases = []
        for f in fields:
            phrase = FIELD_PHRASES.get(f, f"the {f.replace('_', ' ')} value isn't valid")
            if phrase not in phrases:
                phrases.append(phrase)
        if not phrases:
            return opening + "something about the details isn't quite right."
        if len(phrases) == 1:
            return opening + phrases[0] + "."
        return opening + "a few details need fixing: " + "; ".join(phrases) + "."

    def _validation_suggestions(
        self, operation: ParsedEntityOperation, fields: List[str]
    ) -> List[ErrorSuggestion]:
        entity = operation.entity_type
        suggestions: Dict[str, ErrorSuggestion] = {}
        for f in fields:
            if f in ("name", "title", "statement") and "provide_name" not in suggestions:
                suggestions["provide_name"] = ErrorSuggestion(
                    id="provide_name",
                    title=f"Name your {entity.value}",
                    description=f"Please provide a name for your {entity.value}",
                    action_type=SuggestionType.MODIFY,
                    confidence=0.9,
                    parameters={"examples": NAME_EXAMPLES.get(entity, [])},
                )
            elif f in ("content", "description") and "add_content" not in suggestions:
                suggestions["add_content"] = ErrorSuggestion(
                    id="add_content",
                    title="Add some content",
                    description=f"Tell me what you'd like to write in your {entity.value}",
                    action_type=SuggestionType.MODIFY,
                    confidence=0.9,
                )
            elif f in ("mood_rating", "energy_level") and "add_mood_rating" not in suggestions:
                suggestions["add_mood_rating"] = ErrorSuggestion(
                    id="add_mood_rating",
                    title="Use a 1-10 rating",
                    description='Rate from 1 (very low) to 10 (excellent), e.g. "mood 7/10"',
                    action_type=SuggestionType.MODIFY,
                    confidence=0.8,
                    parameters={"min": 1, "max": 10},
                )
            elif f"fix_{f}" not in suggestions and f not in ("name", "title", "statement",
                                                             "content", "description",
                                                             "mood_rating", "energy_level"):
                suggestions[f"fix_{f}"] = ErrorSuggestion(
                    id=f"fix_{f}",
                    title=f"Check the {f.replace('_', ' ')}",
                    description=FIELD_PHRASES.get(f, f"The {f.replace('_', ' ')} value isn't valid"),
                    action_type=SuggestionType.MODIFY,
                    confidence=0.7,
                    parameters={"field": f},
                )
        ordered = sorted(suggestions.values(), key=lambda s: s.confidence, reverse=True)
        return ordered[:MAX_SUGGESTIONS]

    def _validation_recovery_actions(self, has_missing: bool) -> List[RecoveryAction]:
        actions = [
            RecoveryAction(
                id="fix_validation",
                label="Fix the details",
                description="I'll ask for the missing or invalid details",
                action_type=RecoveryMode.USER_INPUT,
                handler="promptForCorrections",
                priority=1,
            ),
            self._manual_entry(priority=3),
        ]
        if not has_missing:
            actions.append(RecoveryAction(
                id="use_defaults",
                label="Use default values",
                description="Replace the invalid values with sensible defaults",
                action_type=RecoveryMode.AUTOMATIC,
                handler="applyDefaults",
                priority=2,
            ))
        return sorted(actions, key=lambda a: a.priority)

    # --- Target resolution ---

    def classify_not_found(
        self,
        operation: ParsedEntityOperation,
        query: Optional[str],
        alternatives: Optional[List[EntityCandidate]] = None,
        user_id: Optional[str] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        """No stored entity matched the name the user gave."""
        entity = operation.entity_type.value
        verb = operation.intent.value
        alternatives = alternatives or []
        suggestions = [
            ErrorSuggestion(
                id=f"alternative_{alt.id}",
                title=f'{verb.capitalize()} "{alt.name}" instead?',
                description=f'Did you mean "{alt.name}"?',
                action_type=SuggestionType.ALTERNATIVE,
                confidence=round(similarity((query or "").lower(), alt.name.lower()), 2),
                parameters={"entity_id": alt.id, "name": alt.name},
            )
            for alt in alternatives
        ]
        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        if not suggestions:
            suggestions.append(ErrorSuggestion(
                id="view_entities",
                title=f"View your {entity} list",
                description=f"See the exact names of your {entity} items",
                action_type=SuggestionType.HELP,
                confidence=0.7,
                parameters={"entity_type": entity},
            ))
        message = (f'No {entity} matched "{query}"' if query
                   else f"No {entity} exists to {verb}")
        return self._resolution_error(
            operation, message, suggestions[:MAX_SUGGESTIONS], user_id, current_time
        )

    def classify_missing_reference(
        self,
        operation: ParsedEntityOperation,
        user_id: Optional[str] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        """The operation needs an existing entity but named none."""
        entity = operation.entity_type.value
        suggestion = ErrorSuggestion(
            id="provide_name",
            title=f"Name the {entity}",
            description=f'Say which {entity} you mean, like "{operation.intent.value} {entity} called [name]"',
            action_type=SuggestionType.MODIFY,
            confidence=0.9,
            parameters={"examples": NAME_EXAMPLES.get(operation.entity_type, [])},
        )
        return self._resolution_error(
            operation,
            f"{operation.intent.value} {entity} without a target reference",
            [suggestion],
            user_id,
            current_time,
        )

    def _resolution_error(
        self,
        operation: ParsedEntityOperation,
        message: str,
        suggestions: List[ErrorSuggestion],
        user_id: Optional[str],
        current_time: Optional[datetime],
    ) -> ChatEntityError:
        now = current_time or datetime.utcnow()
        error = ChatEntityError(
            type=ErrorType.VALIDATION,
            severity=self._escalate(ErrorSeverity.LOW, user_id, now),
            message=message,
            user_friendly_message=f"I couldn't tell which {operation.entity_type.value} you meant.",
            code=error_code(ErrorType.VALIDATION),
            context=self._context(operation, now, user_id),
            suggestions=suggestions,
            recovery_actions=self._validation_recovery_actions(has_missing=True),
        )
        self._record(user_id, error, now)
        return error

    # --- Service ---

    def classify_service_error(
        self,
        operation: ParsedEntityOperation,
        exception: BaseException,
        service_name: str,
        user_id: Optional[str] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        now = current_time or datetime.utcnow()
        error_type = infer_error_type(exception)
        raw = str(exception) or type(exception).__name__
        is_critical = (
            service_name in self.config.critical_services
            or "critical" in raw.lower()
        )

        if is_critical:
            base = ErrorSeverity.CRITICAL
        elif error_type == ErrorType.AUTHENTICATION:
            base = ErrorSeverity.HIGH
        elif error_type in (ErrorType.NETWORK, ErrorType.RATE_LIMIT):
            base = ErrorSeverity.MEDIUM
        else:
            base = ErrorSeverity.LOW

        context = self._context(operation, now, user_id)
        context.service_name = service_name
        error = ChatEntityError(
            type=error_type,
            severity=self._escalate(base, user_id, now),
            message=f"{service_name} service error: {raw}",
            user_friendly_message=self._service_message(operation, error_type, is_critical),
            code=error_code(error_type, raw),
            context=context,
            suggestions=self._service_suggestions(error_type),
            recovery_actions=self._service_recovery_actions(error_type),
        )
        if error.severity == ErrorSeverity.CRITICAL:
            logger.error(
                "Critical %s error %s for user %s on %s: %s",
                error.type.value, error.code, user_id, service_name, raw,
            )
        self._record(user_id, error, now)
        return error

    def classify_unexpected_error(
        self,
        operation: ParsedEntityOperation,
        exception: BaseException,
        user_id: Optional[str] = None,
        current_time: Optional[datetime] = None,
    ) -> ChatEntityError:
        """A failure outside any service call (a defect, not a dependency)."""
        now = current_time or datetime.utcnow()
        error = ChatEntityError(
            type=ErrorType.UNKNOWN,
            severity=self._escalate(ErrorSeverity.HIGH, user_id, now),
            message=f"Unexpected {type(exception).__name__}: {exception}",
            user_friendly_message="Something unexpected happened while processing your request. Please try again.",
            code=error_code(ErrorType.UNKNOWN),
            context=self._context(operation, now, user_id),
            suggestions=self._service_suggestions(ErrorType.UNKNOWN),
            recovery_actions=[self._manual_entry(priority=1)],
        )
        logger.error("Unexpected error handling %s/%s for user %s: %r",
                     operation.entity_type.value, operation.intent.value, user_id, exception)
        self._record(user_id, error, now)
        return error

    def _service_message(
        self, operation: ParsedEntityOperation, error_type: ErrorType, is_critical: bool
    ) -> str:
        entity = operation.entity_type.value
        if is_critical:
            return (f"I couldn't reach the storage for your {entity} right now. "
                    "Nothing was changed; please try again shortly or save it for later.")
        if error_type == ErrorType.NETWORK:
            return "I'm having trouble connecting to the service right now. Please try again in a moment."
        if error_type == ErrorType.RATE_LIMIT:
            return "You've been making requests very quickly. Please wait a moment before trying again."
        if error_type == ErrorType.AUTHENTICATION:
            return "I couldn't verify your access for that. Please sign in again and retry."
        return (f"Something went wrong while trying to {operation.intent.value} your {entity}. "
                "I'll try to help you resolve this.")

    def _service_suggestions(self, error_type: ErrorType) -> List[ErrorSuggestion]:
        suggestions = []
        if error_type == ErrorType.RATE_LIMIT:
            suggestions.append(ErrorSuggestion(
                id="wait_and_retry",
                title="Wait a moment",
                description="Give it a few seconds, then try again",
                action_type=SuggestionType.RETRY,
                confidence=0.9,
            ))
        elif error_type == ErrorType.AUTHENTICATION:
            suggestions.append(ErrorSuggestion(
                id="reauthenticate",
                title="Sign in again",
                description="Your session may have expired",
                action_type=SuggestionType.HELP,
                confidence=0.9,
            ))
        else:
            suggestions.append(ErrorSuggestion(
                id="retry_operation",
                title="Try again",
                description="The problem may be temporary",
                action_type=SuggestionType.RETRY,
                confidence=0.8,
            ))
        suggestions.append(ErrorSuggestion(
            id="use_fallback",
            title="Use the form instead",
            description="Make the change from the regular screen",
            action_type=SuggestionType.ALTERNATIVE,
            confidence=0.6,
        ))
        return suggestions

    def _service_recovery_actions(self, error_type: ErrorType) -> List[RecoveryAction]:
        actions = []
        if error_type == ErrorType.NETWORK:
            actions.append(RecoveryAction(
                id="auto_retry",
                label="Retry automatically",
                description="I'll try the operation again in a few seconds",
                action_type=RecoveryMode.AUTOMATIC,
                handler="autoRetry",
                priority=1,
            ))
        elif error_type == ErrorType.RATE_LIMIT:
            actions.append(RecoveryAction(
                id="wait_and_retry",
                label="Retry after a pause",
                description="I'll wait briefly and then try again",
                action_type=RecoveryMode.AUTOMATIC,
                handler="retryWithBackoff",
                priority=1,
            ))
        elif error_type == ErrorType.AUTHENTICATION:
            actions.append(RecoveryAction(
                id="reauthenticate",
                label="Sign in again",
                description="Refresh your session and retry",
                action_type=RecoveryMode.USER_INPUT,
                handler="promptReauthentication",
                priority=1,
            ))
        actions.append(RecoveryAction(
            id="fallback_storage",
            label="Save for later",
            description="Save your request and try it again when the service is available",
            action_type=RecoveryMode.FALLBACK,
            handler="savePendingOperation",
            priority=2,
        ))
        actions.append(self._manual_entry(priority=3))
        return sorted(actions, key=lambda a: a.priority)

    # --- Shared ---

    def _manual_entry(self, priority: int) -> RecoveryAction:
        return RecoveryAction(
            id="manual_entry",
            label="Use form instead",
            description="Switch to a form-based interface",
            action_type=RecoveryMode.FALLBACK,
            handler="switchToForm",
            priority=priority,
        )

    def _context(
        self, operation: ParsedEntityOperation, now: datetime, user_id: Optional[str]
    ) -> ErrorContext:
        return ErrorContext(
            original_message=operation.original_message,
            operation=operation.model_dump(mode="json"),
            entity_type=operation.entity_type.value,
            intent=operation.intent.value,
            timestamp=now,
            user_id=user_id,
        )

    def _escalate(
        self, base: ErrorSeverity, user_id: Optional[str], now: datetime
    ) -> ErrorSeverity:
        if not user_id:
            return base
        recent = self.history.since(
            user_id, now - timedelta(seconds=self.config.error_cooldown_seconds)
        )
        if len(recent) >= self.config.escalation_threshold:
            return base.at_least(ErrorSeverity.HIGH)
        daily = self.history.since(
            user_id, now - timedelta(hours=self.config.error_history_hours)
        )
        if len(daily) >= self.config.history_escalation_threshold:
            return base.at_least(ErrorSeverity.MEDIUM)
        return base

    def _record(self, user_id: Optional[str], error: ChatEntityError, now: datetime) -> None:
        self._error_counts[(error.type.value, error.code)] += 1
        if not user_id:
            return
        self.history.record(user_id, error)
        self.history.prune(now - timedelta(hours=self.config.error_history_hours))

    # --- Analytics ---

    def get_error_analytics(self) -> dict:
        """Totals by type and code, plus the users with most recent errors."""
        by_type = {t.value: 0 for t in ErrorType}
        by_code: Counter = Counter()
        for (error_type, code), count in self._error_counts.items():
            by_type[error_type] += count
            by_code[code] += count

        users = sorted(self.history.user_counts().items(), key=lambda kv: kv[1], reverse=True)
        return {
            "total_errors": sum(self._error_counts.values()),
            "errors_by_type": by_type,
            "top_error_codes": [{"code": c, "count": n} for c, n in by_code.most_common(10)],
            "user_error_patterns": [{"user_id": u, "error_count": n} for u, n in users[:10]],
        }

    def get_user_error_summary(
        self, user_id: str, current_time: Optional[datetime] = None
    ) -> dict:
        now = current_time or datetime.utcnow()
        daily = self.history.since(user_id, now - timedelta(hours=self.config.error_history_hours))
        recent = [
            r for r in daily
            if r.occurred_at > now - timedelta(seconds=self.config.error_cooldown_seconds)
        ]
        return {
            "user_id": user_id,
            "errors_last_24h": len(daily),
            "errors_in_cooldown": len(recent),
            "struggling": len(recent) >= self.config.escalation_threshold,
            "last_error_at": daily[-1].occurred_at.isoformat() if daily else None,
            "by_type": dict(Counter(r.error_type for r in daily)),
        }
