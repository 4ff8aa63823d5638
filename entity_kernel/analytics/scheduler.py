"""
Background analytics: pattern re-discovery after creates.

Behavioral Contract:
- Runs after the user's result is produced; never delays or changes it
- Task references are held until completion so tasks are not collected mid-flight
- Failures are logged and never surfaced to the user
- Re-discovery per user is throttled by a cron schedule
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from croniter import croniter

from entity_kernel.models.config import EngineConfig
from entity_kernel.models.entities import MoodPatterns, PatternInsight
from entity_kernel.models.operation import EntityType, Intent, ParsedEntityOperation
from entity_kernel.services.registry import ServiceRegistry

logger = logging.getLogger(__name__)


class AnalyticsScheduler:
    """Decides whether a user's patterns are due for re-discovery."""

    def __init__(self, schedule: str = "0 */6 * * *"):
        if not croniter.is_valid(schedule):
            raise ValueError(f"Invalid cron schedule: {schedule!r}")
        self.schedule = schedule
        self._last_run: Dict[str, datetime] = {}

    def next_run(self, user_id: str) -> Optional[datetime]:
        last = self._last_run.get(user_id)
        if last is None:
            return None
        return croniter(self.schedule, last).get_next(datetime)

    def is_due(self, user_id: str, current_time: Optional[datetime] = None) -> bool:
        """Due if never run, or a scheduled fire time has passed since the last run."""
        next_fire = self.next_run(user_id)
        if next_fire is None:
            return True
        return next_fire <= (current_time or datetime.utcnow())

    def mark_run(self, user_id: str, current_time: Optional[datetime] = None) -> None:
        self._last_run[user_id] = current_time or datetime.utcnow()


class BackgroundAnalytics:
    """Fire-and-forget analytics refreshed after synchronicity and mood entries."""

    def __init__(
        self,
        services: ServiceRegistry,
        config: Optional[EngineConfig] = None,
        scheduler: Optional[AnalyticsScheduler] = None,
    ):
        self.services = services
        self.config = config or EngineConfig()
        self.scheduler = scheduler or AnalyticsScheduler(self.config.pattern_discovery_schedule)
        self._tasks: Set[asyncio.Task] = set()
        self.synchronicity_patterns: Dict[str, List[PatternInsight]] = {}
        self.mood_patterns: Dict[str, MoodPatterns] = {}
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, name: str, work: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        """Start `work` in the background; returns the task (None when disabled)."""
        if not self.config.background_analytics_enabled:
            return None
        task = asyncio.get_running_loop().create_task(work(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.failures += 1
            logger.warning("Background analytics task %s failed: %r",
                           task.get_name(), exc, exc_info=exc)

    def after_operation(self, operation: ParsedEntityOperation, user_id: str) -> Optional[asyncio.Task]:
        """Trigger re-discovery for creates that feed pattern analysis."""
        if operation.intent != Intent.CREATE:
            return None
        if operation.entity_type == EntityType.SYNCHRONICITY:
            if not self.scheduler.is_due(user_id):
                return None
            task = self.schedule(
                f"synchronicity-patterns:{user_id}",
                lambda: self._discover_synchronicity_patterns(user_id),
            )
            if task is not None:
                # Marked when queued, not when the task starts
                self.scheduler.mark_run(user_id)
            return task
        if operation.entity_type == EntityType.MOOD:
            return self.schedule(
                f"mood-patterns:{user_id}",
                lambda: self._refresh_mood_patterns(user_id),
            )
        return None

    async def _discover_synchronicity_patterns(self, user_id: str) -> None:
        insights = await self.services.synchronicities.discover_patterns(user_id)
        self.synchronicity_patterns[user_id] = insights
        logger.info("Discovered %d synchronicity patterns for user %s", len(insights), user_id)

    async def _refresh_mood_patterns(self, user_id: str) -> None:
        self.mood_patterns[user_id] = await self.services.moods.get_patterns(user_id)

    async def drain(self) -> None:
        """Wait for every in-flight task (used at shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
