"""Engine configuration."""

from typing import List

from croniter import croniter
from pydantic import BaseModel, Field, field_validator


class EngineConfig(BaseModel):
    """Configuration for the entity operation engine."""

    service_timeout_seconds: float = Field(gt=0.0, default=5.0)
    max_retries: int = Field(ge=0, default=3)
    retry_delay_seconds: float = Field(ge=0.0, default=1.0)
    error_cooldown_seconds: int = 60
    error_history_hours: int = 24
    escalation_threshold: int = 3
    history_escalation_threshold: int = 10
    similarity_threshold: float = Field(ge=0.0, le=1.0, default=0.3)
    max_alternatives: int = 3
    critical_services: List[str] = ["database", "persistence"]
    pattern_discovery_schedule: str = "0 */6 * * *"
    background_analytics_enabled: bool = True

    @field_validator("pattern_discovery_schedule")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"invalid cron expression: {value!r}")
        return value
