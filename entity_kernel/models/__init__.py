"""Entity Kernel data models."""

from entity_kernel.models.config import EngineConfig
from entity_kernel.models.entities import (
    BeliefCycle,
    Goal,
    GoalStats,
    Habit,
    HabitCompletion,
    HabitStreak,
    JournalEntry,
    JournalStats,
    MoodEntry,
    MoodPatterns,
    MoodStats,
    PatternInsight,
    Routine,
    RoutineStep,
    SynchronicityEntry,
)
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
from entity_kernel.models.operation import (
    TARGETED_INTENTS,
    EntityCandidate,
    EntityType,
    GateState,
    Intent,
    OperationResult,
    ParsedEntityOperation,
    PendingOperation,
)
from entity_kernel.models.pipeline import (
    MatchTier,
    ResolutionResult,
    TargetResolution,
    TargetStatus,
    ValidationResult,
)
from entity_kernel.models.session import ConversationSession, EngineTurn

__all__ = [
    "BeliefCycle",
    "ChatEntityError",
    "ConversationSession",
    "EngineConfig",
    "EngineTurn",
    "EntityCandidate",
    "EntityType",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorStage",
    "ErrorSuggestion",
    "ErrorType",
    "GateState",
    "Goal",
    "GoalStats",
    "Habit",
    "HabitCompletion",
    "HabitStreak",
    "Intent",
    "JournalEntry",
    "JournalStats",
    "MatchTier",
    "MoodEntry",
    "MoodPatterns",
    "MoodStats",
    "OperationResult",
    "ParsedEntityOperation",
    "PatternInsight",
    "PendingOperation",
    "RecoveryAction",
    "RecoveryMode",
    "ResolutionResult",
    "Routine",
    "RoutineStep",
    "SuggestionType",
    "SynchronicityEntry",
    "TARGETED_INTENTS",
    "TargetResolution",
    "TargetStatus",
    "ValidationResult",
]
