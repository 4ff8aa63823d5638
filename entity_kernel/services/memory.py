"""
In-memory domain services for the prototype.
Production would back these with a persistent database.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Type
from uuid import uuid4

from pydantic import BaseModel

from entity_kernel.enrichment.sentiment import trend_direction
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
    SynchronicityEntry,
)
from entity_kernel.services.protocols import EntityNotFoundError


STREAK_MILESTONES = [7, 14, 21, 30, 60, 90, 180, 365]


class InMemoryEntityService:
    """Generic user-scoped store for one entity model."""

    model_cls: Type[BaseModel] = BaseModel
    id_prefix: str = "ent"
    timestamp_field: str = "created_at"
    search_fields: tuple = ()

    def __init__(self):
        self._items: Dict[str, BaseModel] = {}

    async def create(self, user_id: str, data: Dict[str, Any]) -> Any:
        payload = {self.timestamp_field: datetime.utcnow()}
        payload.update({k: v for k, v in data.items() if v is not None})
        payload["id"] = f"{self.id_prefix}_{uuid4().hex[:12]}"
        payload["user_id"] = user_id
        entity = self.model_cls.model_validate(payload)
        self._items[entity.id] = entity
        return entity

    async def list(self, user_id: str, filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        filters = dict(filters or {})
        since = filters.pop("since", None)
        until = filters.pop("until", None)
        search = filters.pop("search", None)
        limit = filters.pop("limit", None)

        results = []
        for entity in self._items.values():
            if entity.user_id != user_id:
                continue
            stamp = getattr(entity, self.timestamp_field)
            if since and stamp < since:
                continue
            if until and stamp > until:
                continue
            if search and not self._matches_search(entity, search):
                continue
            if not self._matches_fields(entity, filters):
                continue
            results.append(entity)

        results.sort(key=lambda e: getattr(e, self.timestamp_field), reverse=True)
        return results[:limit] if limit else results

    async def get(self, user_id: str, entity_id: str) -> Any:
        entity = self._items.get(entity_id)
        if entity is None or entity.user_id != user_id:
            raise EntityNotFoundError(f"{self.id_prefix} {entity_id} not found")
        return entity

    async def update(self, user_id: str, entity_id: str, patch: Dict[str, Any]) -> Any:
        existing = await self.get(user_id, entity_id)
        merged = existing.model_dump()
        merged.update(patch)
        updated = self.model_cls.model_validate(merged)
        self._items[entity_id] = updated
        return updated

    async def delete(self, user_id: str, entity_id: str) -> bool:
        entity = self._items.get(entity_id)
        if entity is None or entity.user_id != user_id:
            return False
        del self._items[entity_id]
        return True

    def _matches_search(self, entity: BaseModel, search: str) -> bool:
        needle = search.lower()
        return any(needle in str(getattr(entity, f, "") or "").lower() for f in self.search_fields)

    def _matches_fields(self, entity: BaseModel, filters: Dict[str, Any]) -> bool:
        for key, wanted in filters.items():
            actual = getattr(entity, key, None)
            if isinstance(wanted, (list, tuple, set)):
                if actual not in wanted:
                    return False
            elif actual != wanted:
                return False
        return True


class InMemoryHabitService(InMemoryEntityService):
    model_cls = Habit
    id_prefix = "habit"
    search_fields = ("name", "description")

    def __init__(self):
        super().__init__()
        self._completions: List[HabitCompletion] = []

    async def delete(self, user_id: str, entity_id: str) -> bool:
        deleted = await super().delete(user_id, entity_id)
        if deleted:
            self._completions = [c for c in self._completions if c.habit_id != entity_id]
        return deleted

    async def complete(self, user_id: str, habit_id: str, on: Optional[date] = None) -> HabitCompletion:
        await self.get(user_id, habit_id)
        on = on or datetime.utcnow().date()
        for c in self._completions:
            if c.habit_id == habit_id and c.completed_on == on:
                return c
        completion = HabitCompletion(habit_id=habit_id, user_id=user_id, completed_on=on)
        self._completions.append(completion)
        return completion

    async def toggle_completion(self, user_id: str, habit_id: str, on: Optional[date] = None) -> bool:
        """Flip the completion for a day. Returns True if now completed."""
        await self.get(user_id, habit_id)
        on = on or datetime.utcnow().date()
        for c in self._completions:
            if c.habit_id == habit_id and c.completed_on == on:
                self._completions.remove(c)
                return False
        self._completions.append(HabitCompletion(habit_id=habit_id, user_id=user_id, completed_on=on))
        return True

    async def today_completions(self, user_id: str) -> List[HabitCompletion]:
        today = datetime.utcnow().date()
        return [c for c in self._completions if c.user_id == user_id and c.completed_on == today]

    async def calculate_streak(self, user_id: str, habit_id: str) -> HabitStreak:
        await self.get(user_id, habit_id)
        days = sorted({c.completed_on for c in self._completions if c.habit_id == habit_id})
        today = datetime.utcnow().date()

        longest, run, previous = 0, 0, None
        for day in days:
            run = run + 1 if previous and day - previous == timedelta(days=1) else 1
            longest = max(longest, run)
            previous = day

        current = 0
        done = set(days)
        cursor = today if today in done else today - timedelta(days=1)
        while cursor in done:
            current += 1
            cursor -= timedelta(days=1)

        at_risk = current > 0 and today not in done
        if current >= 14:
            health = "excellent"
        elif current >= 3:
            health = "warning" if at_risk else "good"
        elif longest > 0 and current == 0:
            health = "critical"
        else:
            health = "good"

        next_milestone = next((m for m in STREAK_MILESTONES if m > current), None)
        return HabitStreak(
            habit_id=habit_id,
            current_streak=current,
            longest_streak=longest,
            streak_health=health,
            is_at_risk=at_risk,
            next_milestone=next_milestone,
        )


class InMemoryGoalService(InMemoryEntityService):
    model_cls = Goal
    id_prefix = "goal"
    search_fields = ("title", "description")

    async def get_stats(self, user_id: str) -> GoalStats:
        goals = await self.list(user_id)
        today = datetime.utcnow().date()
        month_start = today.replace(day=1)

        active = [g for g in goals if g.status == "active"]
        completed = [g for g in goals if g.status == "completed"]
        completed_this_month = [
            g for g in completed if g.completion_date and g.completion_date >= month_start
        ]
        relevant = len(active) + len(completed_this_month)
        rate = round(len(completed_this_month) / relevant * 100) if relevant else 0

        return GoalStats(
            total=len(goals),
            active=len(active),
            completed=len(completed),
            completion_rate_this_month=rate,
            overdue_goals=sum(1 for g in active if g.target_date and g.target_date < today),
            due_this_week=sum(
                1 for g in active
                if g.target_date and today <= g.target_date <= today + timedelta(days=7)
            ),
        )


class InMemoryJournalService(InMemoryEntityService):
    model_cls = JournalEntry
    id_prefix = "journal"
    search_fields = ("title", "content")

    async def get_stats(self, user_id: str) -> JournalStats:
        entries = await self.list(user_id)
        now = datetime.utcnow()
        ratings = [e.mood_rating for e in entries if e.mood_rating is not None]

        days = {e.created_at.date() for e in entries}
        streak, cursor = 0, now.date()
        if cursor not in days:
            cursor -= timedelta(days=1)
        while cursor in days:
            streak += 1
            cursor -= timedelta(days=1)

        return JournalStats(
            total_entries=len(entries),
            entries_this_week=sum(1 for e in entries if e.created_at >= now - timedelta(days=7)),
            current_streak=streak,
            average_mood_rating=round(sum(ratings) / len(ratings), 1) if ratings else None,
        )


class InMemoryMoodService(InMemoryEntityService):
    model_cls = MoodEntry
    id_prefix = "mood"
    search_fields = ("notes",)

    async def _window(self, user_id: str, days: int) -> List[MoodEntry]:
        since = datetime.utcnow() - timedelta(days=days)
        entries = await self.list(user_id, {"since": since})
        return list(reversed(entries))  # oldest first

    async def get_stats(self, user_id: str, days: int = 30) -> MoodStats:
        entries = await self._window(user_id, days)
        if not entries:
            return MoodStats()

        moods = [e.mood_rating for e in entries]
        energies = [e.energy_level for e in entries]

        by_day: Dict[str, List[int]] = defaultdict(list)
        for e in entries:
            by_day[e.created_at.strftime("%A")].append(e.mood_rating)
        best_day = max(by_day, key=lambda d: sum(by_day[d]) / len(by_day[d]))

        return MoodStats(
            total_entries=len(entries),
            average_mood=round(sum(moods) / len(moods), 1),
            average_energy=round(sum(energies) / len(energies), 1),
            mood_trend=trend_direction(moods),
            energy_trend=trend_direction(energies),
            best_day=best_day if len(by_day) > 1 else None,
        )

    async def get_patterns(self, user_id: str, days: int = 30) -> MoodPatterns:
        entries = await self._window(user_id, days)
        if len(entries) < 3:
            return MoodPatterns()

        overall = sum(e.mood_rating for e in entries) / len(entries)
        by_tag: Dict[str, List[int]] = defaultdict(list)
        for e in entries:
            for tag in e.tags:
                by_tag[tag].append(e.mood_rating)

        patterns, recommendations = [], []
        for tag, ratings in sorted(by_tag.items()):
            if len(ratings) < 2:
                continue
            delta = sum(ratings) / len(ratings) - overall
            if delta >= 1.0:
                patterns.append(f"Mood tends to be higher on '{tag}' days (+{delta:.1f})")
                recommendations.append(f"Make more room for {tag}")
            elif delta <= -1.0:
                patterns.append(f"Mood tends to be lower on '{tag}' days ({delta:.1f})")

        return MoodPatterns(patterns=patterns, recommendations=recommendations)


class InMemoryRoutineService(InMemoryEntityService):
    model_cls = Routine
    id_prefix = "routine"
    search_fields = ("name", "description")


class InMemoryBeliefService(InMemoryEntityService):
    model_cls = BeliefCycle
    id_prefix = "belief"
    search_fields = ("statement",)


class InMemorySynchronicityService(InMemoryEntityService):
    model_cls = SynchronicityEntry
    id_prefix = "synch"
    timestamp_field = "occurred_at"
    search_fields = ("title", "description")

    async def discover_patterns(self, user_id: str) -> List[PatternInsight]:
        """Tags and emotions recurring across two or more entries."""
        entries = await self.list(user_id)
        now = datetime.utcnow()
        insights = []
        for kind, attr in (("tag", "tags"), ("emotion", "emotions")):
            counts = Counter(value for e in entries for value in getattr(e, attr))
            for value, occurrences in counts.most_common():
                if occurrences < 2:
                    break
                insights.append(PatternInsight(
                    pattern=value,
                    kind=kind,
                    occurrences=occurrences,
                    entry_ids=[e.id for e in entries if value in getattr(e, attr)],
                    discovered_at=now,
                ))
        return insights
