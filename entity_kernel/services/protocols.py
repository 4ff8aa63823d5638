"""
Domain service interfaces: the engine's system boundary.

The engine depends only on these signatures. Implementations raise on
failure; they never report partial success silently.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from entity_kernel.models.entities import (
    GoalStats,
    HabitCompletion,
    HabitStreak,
    JournalStats,
    MoodPatterns,
    MoodStats,
    PatternInsight,
)


class EntityNotFoundError(LookupError):
    """Raised when a service is asked for an id it does not hold."""
    pass


class EntityService(Protocol):
    """CRUD surface every per-entity service exposes."""

    async def create(self, user_id: str, data: Dict[str, Any]) -> Any: ...

    async def list(self, user_id: str, filters: Optional[Dict[str, Any]] = None) -> List[Any]: ...

    async def get(self, user_id: str, entity_id: str) -> Any: ...

    async def update(self, user_id: str, entity_id: str, patch: Dict[str, Any]) -> Any: ...

    async def delete(self, user_id: str, entity_id: str) -> bool: ...


class HabitService(EntityService, Protocol):
    async def complete(self, user_id: str, habit_id: str, on: Optional[date] = None) -> HabitCompletion: ...

    async def toggle_completion(self, user_id: str, habit_id: str, on: Optional[date] = None) -> bool: ...

    async def today_completions(self, user_id: str) -> List[HabitCompletion]: ...

    async def calculate_streak(self, user_id: str, habit_id: str) -> HabitStreak: ...


class GoalService(EntityService, Protocol):
    async def get_stats(self, user_id: str) -> GoalStats: ...


class JournalService(EntityService, Protocol):
    async def get_stats(self, user_id: str) -> JournalStats: ...


class MoodService(EntityService, Protocol):
    async def get_stats(self, user_id: str, days: int = 30) -> MoodStats: ...

    async def get_patterns(self, user_id: str, days: int = 30) -> MoodPatterns: ...


class SynchronicityService(EntityService, Protocol):
    async def discover_patterns(self, user_id: str) -> List[PatternInsight]: ...
