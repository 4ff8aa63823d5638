"""Tests for the in-memory domain services."""

import asyncio
from datetime import datetime, timedelta

import pytest

from entity_kernel.models.operation import EntityType
from entity_kernel.services.memory import (
    InMemoryGoalService,
    InMemoryHabitService,
    InMemoryJournalService,
    InMemoryMoodService,
    InMemorySynchronicityService,
)
from entity_kernel.services.protocols import EntityNotFoundError
from entity_kernel.services.registry import ServiceRegistry


def run(coro):
    return asyncio.run(coro)


class TestEntityService:
    def setup_method(self):
        self.habits = InMemoryHabitService()

    def test_create_assigns_id_and_timestamp(self):
        habit = run(self.habits.create("u1", {"name": "Run", "description": None}))
        assert habit.id.startswith("habit_")
        assert habit.user_id == "u1"
        assert habit.frequency == "daily"
        assert habit.created_at is not None

    def test_list_is_user_scoped_and_filtered(self):
        run(self.habits.create("u1", {"name": "Run"}))
        run(self.habits.create("u1", {"name": "Read books", "frequency": "weekly"}))
        run(self.habits.create("u2", {"name": "Swim"}))

        assert len(run(self.habits.list("u1"))) == 2
        weekly = run(self.habits.list("u1", {"frequency": "weekly"}))
        assert [h.name for h in weekly] == ["Read books"]
        found = run(self.habits.list("u1", {"search": "READ"}))
        assert [h.name for h in found] == ["Read books"]
        assert len(run(self.habits.list("u1", {"limit": 1}))) == 1

    def test_get_other_users_entity_raises(self):
        habit = run(self.habits.create("u1", {"name": "Run"}))
        with pytest.raises(EntityNotFoundError):
            run(self.habits.get("u2", habit.id))

    def test_update_and_delete(self):
        habit = run(self.habits.create("u1", {"name": "Run"}))
        updated = run(self.habits.update("u1", habit.id, {"frequency": "weekly"}))
        assert updated.frequency == "weekly"
        assert updated.name == "Run"

        assert run(self.habits.delete("u1", habit.id))
        assert not run(self.habits.delete("u1", habit.id))
        assert run(self.habits.list("u1")) == []


class TestHabitService:
    def setup_method(self):
        self.habits = InMemoryHabitService()
        self.habit = run(self.habits.create("u1", {"name": "Run"}))
        self.today = datetime.utcnow().date()

    def test_complete_is_idempotent_per_day(self):
        run(self.habits.complete("u1", self.habit.id))
        run(self.habits.complete("u1", self.habit.id))
        assert len(run(self.habits.today_completions("u1"))) == 1

    def test_toggle(self):
        assert run(self.habits.toggle_completion("u1", self.habit.id)) is True
        assert run(self.habits.toggle_completion("u1", self.habit.id)) is False
        assert run(self.habits.today_completions("u1")) == []

    def test_streak_counts_consecutive_days(self):
        for offset in range(4):
            run(self.habits.complete("u1", self.habit.id, on=self.today - timedelta(days=offset)))
        run(self.habits.complete("u1", self.habit.id, on=self.today - timedelta(days=10)))

        streak = run(self.habits.calculate_streak("u1", self.habit.id))
        assert streak.current_streak == 4
        assert streak.longest_streak == 4
        assert streak.streak_health == "good"
        assert not streak.is_at_risk
        assert streak.next_milestone == 7

    def test_streak_at_risk_when_today_missing(self):
        for offset in range(1, 4):
            run(self.habits.complete("u1", self.habit.id, on=self.today - timedelta(days=offset)))
        streak = run(self.habits.calculate_streak("u1", self.habit.id))
        assert streak.current_streak == 3
        assert streak.is_at_risk
        assert streak.streak_health == "warning"

    def test_broken_streak_is_critical(self):
        run(self.habits.complete("u1", self.habit.id, on=self.today - timedelta(days=5)))
        streak = run(self.habits.calculate_streak("u1", self.habit.id))
        assert streak.current_streak == 0
        assert streak.streak_health == "critical"

    def test_delete_drops_completions(self):
        run(self.habits.complete("u1", self.habit.id))
        run(self.habits.delete("u1", self.habit.id))
        assert run(self.habits.today_completions("u1")) == []


class TestGoalService:
    def test_stats(self):
        goals = InMemoryGoalService()
        today = datetime.utcnow().date()
        run(goals.create("u1", {"title": "Marathon", "target_date": today - timedelta(days=1)}))
        run(goals.create("u1", {"title": "Read 12 books", "target_date": today + timedelta(days=3)}))
        run(goals.create("u1", {"title": "Learn Go", "status": "completed", "completion_date": today}))

        stats = run(goals.get_stats("u1"))
        assert stats.total == 3
        assert stats.active == 2
        assert stats.completed == 1
        assert stats.overdue_goals == 1
        assert stats.due_this_week == 1
        assert stats.completion_rate_this_month == 33


class TestJournalService:
    def test_stats_and_search(self):
        journal = InMemoryJournalService()
        run(journal.create("u1", {"title": "Beach", "content": "Long walk", "mood_rating": 8}))
        run(journal.create("u1", {"title": "Work", "content": "Deadline stress", "mood_rating": 4}))

        stats = run(journal.get_stats("u1"))
        assert stats.total_entries == 2
        assert stats.entries_this_week == 2
        assert stats.current_streak == 1
        assert stats.average_mood_rating == 6.0
        assert [e.title for e in run(journal.list("u1", {"search": "deadline"}))] == ["Work"]


class TestMoodService:
    def setup_method(self):
        self.moods = InMemoryMoodService()

    def test_empty_stats(self):
        stats = run(self.moods.get_stats("u1"))
        assert stats.total_entries == 0
        assert stats.mood_trend == "stable"

    def test_stats_and_trend(self):
        now = datetime.utcnow()
        for i, rating in enumerate([3, 3, 8, 8]):
            run(self.moods.create("u1", {
                "mood_rating": rating,
                "energy_level": 5,
                "created_at": now - timedelta(hours=4 - i),
            }))
        stats = run(self.moods.get_stats("u1", days=7))
        assert stats.total_entries == 4
        assert stats.average_mood == 5.5
        assert stats.mood_trend == "improving"
        assert stats.energy_trend == "stable"

    def test_patterns_need_three_entries(self):
        run(self.moods.create("u1", {"mood_rating": 5, "energy_level": 5}))
        assert run(self.moods.get_patterns("u1")).patterns == []

    def test_tag_patterns(self):
        for rating, tags in [(9, ["exercise"]), (9, ["exercise"]), (3, []), (3, [])]:
            run(self.moods.create("u1", {"mood_rating": rating, "energy_level": 5, "tags": tags}))
        patterns = run(self.moods.get_patterns("u1"))
        assert patterns.patterns[0].startswith("Mood tends to be higher on 'exercise' days")
        assert patterns.recommendations == ["Make more room for exercise"]


class TestSynchronicityService:
    def test_discover_patterns(self):
        synchs = InMemorySynchronicityService()
        a = run(synchs.create("u1", {"title": "11:11", "tags": ["numbers"], "emotions": ["wonder"]}))
        b = run(synchs.create("u1", {"title": "22:22", "tags": ["numbers"], "emotions": ["amazed"]}))
        run(synchs.create("u1", {"title": "Owl", "tags": ["animals"]}))

        insights = run(synchs.discover_patterns("u1"))
        assert len(insights) == 1
        assert insights[0].pattern == "numbers"
        assert insights[0].kind == "tag"
        assert insights[0].occurrences == 2
        assert set(insights[0].entry_ids) == {a.id, b.id}


class TestServiceRegistry:
    def test_in_memory_covers_all_types(self):
        registry = ServiceRegistry.in_memory()
        for entity_type in EntityType:
            assert registry.for_type(entity_type) is not None
        assert registry.habits is registry.for_type(EntityType.HABIT)

    def test_missing_service_rejected(self):
        with pytest.raises(ValueError, match="No service registered"):
            ServiceRegistry({EntityType.HABIT: InMemoryHabitService()})

    def test_replace(self):
        registry = ServiceRegistry.in_memory()
        replacement = InMemoryHabitService()
        previous = registry.replace(EntityType.HABIT, replacement)
        assert previous is not replacement
        assert registry.habits is replacement
