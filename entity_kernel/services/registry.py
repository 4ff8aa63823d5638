"""Bundle of per-entity domain services handed to the handlers."""

from typing import Any, Dict, Optional

from entity_kernel.models.operation import EntityType
from entity_kernel.services.memory import (
    InMemoryBeliefService,
    InMemoryGoalService,
    InMemoryHabitService,
    InMemoryJournalService,
    InMemoryMoodService,
    InMemoryRoutineService,
    InMemorySynchronicityService,
)


class ServiceRegistry:
    """Maps each entity type to the service that persists it."""

    def __init__(self, services: Dict[EntityType, Any]):
        missing = [t.value for t in EntityType if t not in services]
        if missing:
            raise ValueError(f"No service registered for: {', '.join(missing)}")
        self._services = dict(services)

    @classmethod
    def in_memory(cls) -> "ServiceRegistry":
        return cls({
            EntityType.HABIT: InMemoryHabitService(),
            EntityType.GOAL: InMemoryGoalService(),
            EntityType.JOURNAL: InMemoryJournalService(),
            EntityType.MOOD: InMemoryMoodService(),
            EntityType.ROUTINE: InMemoryRoutineService(),
            EntityType.BELIEF: InMemoryBeliefService(),
            EntityType.SYNCHRONICITY: InMemorySynchronicityService(),
        })

    def for_type(self, entity_type: EntityType) -> Any:
        return self._services[entity_type]

    def replace(self, entity_type: EntityType, service: Any) -> Optional[Any]:
        """Swap in a different service (returns the previous one)."""
        previous = self._services.get(entity_type)
        self._services[entity_type] = service
        return previous

    @property
    def habits(self) -> Any:
        return self._services[EntityType.HABIT]

    @property
    def goals(self) -> Any:
        return self._services[EntityType.GOAL]

    @property
    def journal(self) -> Any:
        return self._services[EntityType.JOURNAL]

    @property
    def moods(self) -> Any:
        return self._services[EntityType.MOOD]

    @property
    def routines(self) -> Any:
        return self._services[EntityType.ROUTINE]

    @property
    def beliefs(self) -> Any:
        return self._services[EntityType.BELIEF]

    @property
    def synchronicities(self) -> Any:
        return self._services[EntityType.SYNCHRONICITY]
