"""Classified errors, suggestions and recovery actions."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ErrorType(str, Enum):
    PARSING = "parsing_error"
    VALIDATION = "validation_error"
    SERVICE = "service_error"
    NETWORK = "network_error"
    AUTHENTICATION = "authentication_error"
    RATE_LIMIT = "rate_limit_error"
    UNKNOWN = "unknown_error"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def at_least(self, floor: "ErrorSeverity") -> "ErrorSeverity":
        return self if self.rank >= floor.rank else floor


_SEVERITY_ORDER = [
    ErrorSeverity.LOW,
    ErrorSeverity.MEDIUM,
    ErrorSeverity.HIGH,
    ErrorSeverity.CRITICAL,
]


class ErrorStage(str, Enum):
    """Pipeline stage a failure was caught at."""
    PARSING = "parsing"
    VALIDATION = "validation"
    SERVICE = "service"


class SuggestionType(str, Enum):
    RETRY = "retry"
    MODIFY = "modify"
    ALTERNATIVE = "alternative"
    HELP = "help"


class RecoveryMode(str, Enum):
    AUTOMATIC = "automatic"      # engine retries transparently
    USER_INPUT = "user_input"    # clarifying question or guided flow
    FALLBACK = "fallback"        # non-conversational form path


class ErrorSuggestion(BaseModel):
    id: str
    title: str
    description: str
    action_type: SuggestionType
    confidence: float = Field(ge=0.0, le=1.0)
    parameters: Dict[str, Any] = {}


class RecoveryAction(BaseModel):
    id: str
    label: str
    description: str
    action_type: RecoveryMode
    handler: str                 # named recovery routine
    priority: int = 0


class ErrorContext(BaseModel):
    original_message: str = ""
    operation: Optional[Dict[str, Any]] = None
    entity_type: Optional[str] = None
    intent: Optional[str] = None
    timestamp: datetime
    user_id: Optional[str] = None
    service_name: Optional[str] = None


class ChatEntityError(BaseModel):
    """
    A failure from any pipeline stage, classified for the user.

    `message` is internal; only `user_friendly_message` is ever rendered.
    """
    type: ErrorType
    severity: ErrorSeverity
    message: str
    user_friendly_message: str
    code: str
    context: ErrorContext
    suggestions: List[ErrorSuggestion] = []
    recovery_actions: List[RecoveryAction] = []

    @field_validator("user_friendly_message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("user_friendly_message must not be empty")
        return value

    @property
    def is_retryable(self) -> bool:
        return any(a.action_type == RecoveryMode.AUTOMATIC for a in self.recovery_actions)
