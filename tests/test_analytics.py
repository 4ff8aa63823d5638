"""Tests for background analytics and its cron throttle."""

import asyncio
from datetime import datetime

import pytest

from entity_kernel.analytics.scheduler import AnalyticsScheduler, BackgroundAnalytics
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.operation import EntityType, Intent, ParsedEntityOperation
from entity_kernel.services.memory import InMemorySynchronicityService
from entity_kernel.services.registry import ServiceRegistry


def _op(entity_type: EntityType, intent: Intent = Intent.CREATE) -> ParsedEntityOperation:
    return ParsedEntityOperation(entity_type=entity_type, intent=intent)


class BrokenSynchronicityService(InMemorySynchronicityService):
    async def discover_patterns(self, user_id):
        raise RuntimeError("pattern store offline")


class TestAnalyticsScheduler:
    def test_due_when_never_run(self):
        scheduler = AnalyticsScheduler()
        assert scheduler.next_run("u1") is None
        assert scheduler.is_due("u1")

    def test_throttled_until_next_fire(self):
        scheduler = AnalyticsScheduler("0 */6 * * *")
        scheduler.mark_run("u1", datetime(2026, 3, 1, 10, 0))
        assert scheduler.next_run("u1") == datetime(2026, 3, 1, 12, 0)
        assert not scheduler.is_due("u1", datetime(2026, 3, 1, 11, 59))
        assert scheduler.is_due("u1", datetime(2026, 3, 1, 12, 0))
        assert scheduler.is_due("u2", datetime(2026, 3, 1, 11, 0))

    def test_invalid_schedule(self):
        with pytest.raises(ValueError, match="Invalid cron schedule"):
            AnalyticsScheduler("every six hours")


class TestBackgroundAnalytics:
    def test_synchronicity_create_discovers_patterns(self):
        services = ServiceRegistry.in_memory()
        background = BackgroundAnalytics(services)

        async def scenario():
            for _ in range(2):
                await services.synchronicities.create("u1", {"title": "11:11", "tags": ["numbers"]})
            task = background.after_operation(_op(EntityType.SYNCHRONICITY), "u1")
            assert task is not None
            await background.drain()
            # Throttled until the next scheduled fire
            assert background.after_operation(_op(EntityType.SYNCHRONICITY), "u1") is None

        asyncio.run(scenario())
        assert [p.pattern for p in background.synchronicity_patterns["u1"]] == ["numbers"]
        assert background.pending == 0

    def test_back_to_back_creates_discover_once(self):
        services = ServiceRegistry.in_memory()
        background = BackgroundAnalytics(services)

        async def scenario():
            first = background.after_operation(_op(EntityType.SYNCHRONICITY), "u1")
            second = background.after_operation(_op(EntityType.SYNCHRONICITY), "u1")
            queued = background.pending
            await background.drain()
            return first, second, queued

        first, second, queued = asyncio.run(scenario())
        assert first is not None
        assert second is None
        assert queued == 1

    def test_disabled_does_not_consume_the_window(self):
        scheduler = AnalyticsScheduler()
        background = BackgroundAnalytics(
            ServiceRegistry.in_memory(),
            EngineConfig(background_analytics_enabled=False),
            scheduler=scheduler,
        )

        async def scenario():
            return background.after_operation(_op(EntityType.SYNCHRONICITY), "u1")

        assert asyncio.run(scenario()) is None
        assert scheduler.next_run("u1") is None

    def test_mood_create_refreshes_patterns(self):
        services = ServiceRegistry.in_memory()
        background = BackgroundAnalytics(services)

        async def scenario():
            background.after_operation(_op(EntityType.MOOD), "u1")
            await background.drain()

        asyncio.run(scenario())
        assert background.mood_patterns["u1"].patterns == []

    def test_only_creates_trigger(self):
        background = BackgroundAnalytics(ServiceRegistry.in_memory())
        assert background.after_operation(_op(EntityType.MOOD, Intent.VIEW), "u1") is None
        assert background.after_operation(_op(EntityType.HABIT), "u1") is None

    def test_disabled(self):
        background = BackgroundAnalytics(
            ServiceRegistry.in_memory(), EngineConfig(background_analytics_enabled=False)
        )

        async def scenario():
            return background.after_operation(_op(EntityType.MOOD), "u1")

        assert asyncio.run(scenario()) is None

    def test_failure_is_logged_not_raised(self, caplog):
        services = ServiceRegistry.in_memory()
        services.replace(EntityType.SYNCHRONICITY, BrokenSynchronicityService())
        background = BackgroundAnalytics(services)

        async def scenario():
            background.after_operation(_op(EntityType.SYNCHRONICITY), "u1")
            await background.drain()

        with caplog.at_level("WARNING", logger="entity_kernel.analytics.scheduler"):
            asyncio.run(scenario())
        assert background.failures == 1
        assert "synchronicity-patterns:u1" in caplog.text
        assert "u1" not in background.synchronicity_patterns
