"""
Parameter Validator: checks a parsed operation before anything touches storage.

Behavioral Contract:
- Validates parameters against a per-entity type/range schema and a
  per-(entity, intent) required-field table
- Reports every violated rule at once (never fail-fast)
- Error strings always name the offending field ("<field>: <reason>")
- No side effects
"""

from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from entity_kernel.models.operation import (
    TARGETED_INTENTS,
    EntityType,
    Intent,
    ParsedEntityOperation,
)
from entity_kernel.models.pipeline import ValidationResult


# --- Per-entity parameter schemas ---

class _Parameters(BaseModel):
    model_config = ConfigDict(extra="allow")

    confirmed: Optional[StrictBool] = None


class HabitParameters(_Parameters):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    frequency: Optional[Literal["daily", "weekly", "monthly"]] = None
    target_count: Optional[int] = Field(default=None, ge=1)
    color: Optional[str] = None
    category: Optional[str] = None
    reminder_time: Optional[str] = None


class GoalParameters(_Parameters):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    status: Optional[Literal["active", "completed", "paused", "abandoned"]] = None
    target_date: Optional[str] = None
    progress_percentage: Optional[float] = None
    progress_value: Optional[float] = None
    target_value: Optional[float] = Field(default=None, gt=0)


class JournalParameters(_Parameters):
    content: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = None
    mood_rating: Optional[int] = Field(default=None, ge=1, le=10)
    tags: Optional[List[str]] = None
    is_favorite: Optional[bool] = None
    date_reference: Optional[str] = None
    search: Optional[str] = None
    timeframe: Optional[str] = None


class MoodParameters(_Parameters):
    mood_rating: Optional[int] = Field(default=None, ge=1, le=10)
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    date_reference: Optional[str] = None
    timeframe: Optional[str] = None
    days: Optional[int] = Field(default=None, ge=1, le=365)


class RoutineParameters(_Parameters):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    preferred_time: Optional[str] = None
    is_active: Optional[bool] = None


class BeliefParameters(_Parameters):
    statement: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[str] = None
    days_completed: Optional[int] = Field(default=None, ge=0, le=21)


class SynchronicityParameters(_Parameters):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    significance: Optional[int] = Field(default=None, ge=1, le=10)
    tags: Optional[List[str]] = None
    emotions: Optional[List[str]] = None
    context: Optional[str] = None


PARAMETER_SCHEMAS: Dict[EntityType, Type[_Parameters]] = {
    EntityType.HABIT: HabitParameters,
    EntityType.GOAL: GoalParameters,
    EntityType.JOURNAL: JournalParameters,
    EntityType.MOOD: MoodParameters,
    EntityType.ROUTINE: RoutineParameters,
    EntityType.BELIEF: BeliefParameters,
    EntityType.SYNCHRONICITY: SynchronicityParameters,
}


# --- Required fields ---
# Each rule is a group of field names; at least one of the group must be present.

CREATE_REQUIREMENTS: Dict[EntityType, List[Tuple[str, ...]]] = {
    EntityType.HABIT: [("name",)],
    EntityType.GOAL: [("title",)],
    EntityType.JOURNAL: [("content",)],
    EntityType.MOOD: [],
    EntityType.ROUTINE: [("name",)],
    EntityType.BELIEF: [("statement",)],
    EntityType.SYNCHRONICITY: [("title", "description")],
}

# Field used to find the target by name when no entity id is given.
# Journal, mood and synchronicity fall back to the most recent entry.
REFERENCE_FIELDS: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.HABIT: ("name",),
    EntityType.GOAL: ("title", "name"),
    EntityType.ROUTINE: ("name",),
    EntityType.BELIEF: ("statement", "name"),
}


def required_fields(
    entity_type: EntityType,
    intent: Intent,
    has_entity_id: bool = False,
) -> List[Tuple[str, ...]]:
    """Required-field groups for an (entity, intent) pair."""
    if intent == Intent.CREATE:
        return CREATE_REQUIREMENTS.get(entity_type, [])
    if intent in TARGETED_INTENTS and not has_entity_id:
        reference = REFERENCE_FIELDS.get(entity_type)
        return [reference] if reference else []
    return []


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _format_loc(loc: Sequence[Any]) -> str:
    return ".".join(str(part) for part in loc) or "parameters"


class ParameterValidator:
    """Validates operation parameters per entity type and intent."""

    def __init__(self, schemas: Optional[Dict[EntityType, Type[_Parameters]]] = None):
        self.schemas = dict(schemas or PARAMETER_SCHEMAS)

    def validate(
        self,
        entity_type: EntityType,
        parameters: Dict[str, Any],
        intent: Intent = Intent.CREATE,
        has_entity_id: bool = False,
    ) -> ValidationResult:
        """Check parameters; returns every violated rule."""
        errors: List[str] = []
        fields: List[str] = []

        for group in required_fields(entity_type, intent, has_entity_id):
            if not any(_is_present(parameters.get(f)) for f in group):
                field_name = " or ".join(group)
                errors.append(f"{field_name}: Field required")
                fields.append(group[0])

        schema = self.schemas.get(entity_type)
        if schema is not None:
            try:
                schema.model_validate(parameters)
            except ValidationError as exc:
                for issue in exc.errors():
                    field_name = _format_loc(issue.get("loc", ()))
                    # Blank required fields were already reported above
                    if field_name in fields and issue.get("type") == "string_too_short":
                        continue
                    errors.append(f"{field_name}: {issue.get('msg', 'Invalid value')}")
                    fields.append(str(issue["loc"][0]) if issue.get("loc") else field_name)

        return ValidationResult(is_valid=not errors, errors=errors, fields=fields)

    def validate_operation(self, operation: ParsedEntityOperation) -> ValidationResult:
        return self.validate(
            operation.entity_type,
            operation.parameters,
            intent=operation.intent,
            has_entity_id=operation.entity_id is not None,
        )
