"""Parsed operations, results and the pending-operation slot."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from entity_kernel.models.errors import ChatEntityError


class EntityType(str, Enum):
    HABIT = "habit"
    GOAL = "goal"
    JOURNAL = "journal"
    MOOD = "mood"
    ROUTINE = "routine"
    BELIEF = "belief"
    SYNCHRONICITY = "synchronicity"


class Intent(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    COMPLETE = "complete"
    TOGGLE = "toggle"
    VIEW = "view"


# Intents that act on one existing entity
TARGETED_INTENTS = frozenset({Intent.UPDATE, Intent.DELETE, Intent.COMPLETE, Intent.TOGGLE})


class GateState(str, Enum):
    """States an operation moves through during a single user turn."""
    PARSED = "parsed"
    VALIDATED = "validated"
    REJECTED = "rejected"                       # terminal
    NEEDS_DISAMBIGUATION = "needs_disambiguation"
    NEEDS_CONFIRMATION = "needs_confirmation"
    READY = "ready"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"                     # terminal
    FAILED = "failed"                           # terminal
    CANCELLED = "cancelled"                     # terminal


class ParsedEntityOperation(BaseModel):
    """
    The upstream parser's output. Never mutated once produced: the engine
    derives new operations with `with_parameters` / `targeting`.
    """
    model_config = ConfigDict(frozen=True)

    entity_type: EntityType
    intent: Intent
    parameters: Dict[str, Any] = {}
    entity_id: Optional[str] = None
    original_message: str = ""
    confidence: float = Field(ge=0.0, le=1.0, default=1.0)

    @property
    def is_confirmed(self) -> bool:
        return self.parameters.get("confirmed") is True

    def with_parameters(self, **updates: Any) -> "ParsedEntityOperation":
        """Derive a new operation with merged parameters."""
        merged = dict(self.parameters)
        merged.update(updates)
        return self.model_copy(update={"parameters": merged})

    def targeting(self, entity_id: str) -> "ParsedEntityOperation":
        """Derive a new operation bound to an explicit entity id."""
        return self.model_copy(update={"entity_id": entity_id})


class OperationResult(BaseModel):
    """Uniform return contract of every handler."""

    success: bool
    message: str
    data: Optional[Any] = None
    needs_confirmation: bool = False
    confirmation_prompt: Optional[str] = None
    suggested_actions: List[str] = []
    error: Optional[ChatEntityError] = None
    state: Optional[GateState] = None

    @model_validator(mode="after")
    def _prompt_required_for_confirmation(self) -> "OperationResult":
        if self.needs_confirmation and not (self.confirmation_prompt or "").strip():
            raise ValueError("needs_confirmation requires a non-empty confirmation_prompt")
        return self


class EntityCandidate(BaseModel):
    """A user entity reduced to what name resolution needs."""
    id: str
    name: str
    entity_type: EntityType


class PendingOperation(BaseModel):
    """The single operation a conversation is waiting on the user for."""

    id: str
    message: str                                # the triggering user text
    operation: OperationResult                  # the result that asked for confirmation
    timestamp: datetime
    parsed_operation: ParsedEntityOperation     # what to resume once resolved
    state: GateState = GateState.NEEDS_CONFIRMATION
    options: List[EntityCandidate] = []
