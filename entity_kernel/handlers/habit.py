"""Habit handler: create, update, delete, complete, toggle and view habits."""

from typing import Any, Dict, List

from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import Habit, HabitStreak
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation


DEFAULT_COLOR = "#3B82F6"
DEFAULT_FREQUENCY = "daily"
UPDATABLE_FIELDS = ("name", "description", "frequency", "target_count", "color", "category",
                    "reminder_time", "is_active")


def streak_icon(streak: HabitStreak) -> str:
    if streak.current_streak >= 30:
        return "🏆"
    if streak.current_streak >= 14:
        return "🔥"
    if streak.current_streak >= 7:
        return "⭐"
    if streak.current_streak >= 3:
        return "💪"
    return "🌱"


def format_streak(streak: HabitStreak) -> str:
    display = f"{streak.current_streak} day streak"
    if streak.longest_streak > streak.current_streak:
        display += f" (best: {streak.longest_streak})"
    if streak.next_milestone and streak.next_milestone <= streak.current_streak + 7:
        display += f" • {streak.next_milestone - streak.current_streak} to milestone"
    return display


def habit_insights(rows: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Recommendations and highlights from today's completion and streaks."""
    recommendations: List[str] = []
    highlights: List[str] = []
    total = len(rows)
    completed = sum(1 for r in rows if r["completed_today"])
    rate = completed / total * 100 if total else 0

    if rate == 100:
        highlights.append("Perfect day! All habits completed")
    elif rate >= 80:
        highlights.append("Great progress today!")
        recommendations.append("Just a few more habits to complete the day")
    elif rate >= 50:
        recommendations.append("Good start! Try to complete a few more habits")
    else:
        recommendations.append("Focus on completing at least one more habit today")

    excellent = sum(1 for r in rows if r["streak"].streak_health == "excellent")
    at_risk = sum(1 for r in rows if r["streak"].is_at_risk)
    if excellent:
        highlights.append(f"{excellent} habits with excellent streaks")
    if at_risk:
        recommendations.append(f"{at_risk} habits need attention to maintain streaks")

    best = max(rows, key=lambda r: r["streak"].current_streak, default=None)
    if best and best["streak"].current_streak >= 7:
        highlights.append(
            f"{best['habit'].name} has your best streak ({best['streak'].current_streak} days)"
        )
    return {"recommendations": recommendations, "highlights": highlights}


class HabitHandler(BaseEntityHandler):
    entity_type = EntityType.HABIT
    service_name = "habits"
    reference_fields = ("name",)

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.COMPLETE] = self._complete
        self._intents[Intent.TOGGLE] = self._toggle
        self._intents[Intent.VIEW] = self._view

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        data = {
            "name": params["name"].strip(),
            "description": params.get("description"),
            "color": params.get("color") or DEFAULT_COLOR,
            "frequency": params.get("frequency") or DEFAULT_FREQUENCY,
            "target_count": params.get("target_count") or 1,
            "category": params.get("category"),
            "reminder_time": params.get("reminder_time"),
        }
        habit: Habit = await self._call_service("create", user_id, data)
        return OperationResult(
            success=True,
            message=f'✅ Created habit "{habit.name}" successfully!',
            data=habit.model_dump(mode="json"),
            suggested_actions=[
                "Set a reminder time",
                "Add it to your daily routine",
                "Track your first completion",
            ],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        patch = self._explicit(operation.parameters, *UPDATABLE_FIELDS)
        # The name may only be the reference used to find the habit
        if "new_name" in operation.parameters:
            patch["name"] = operation.parameters["new_name"]
        elif operation.parameters.get("name"):
            patch.pop("name", None)
        if not patch:
            return self._no_updates("the name, description, frequency, color, category or reminder time")
        habit: Habit = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'✅ Updated habit "{habit.name}" successfully!',
            data=habit.model_dump(mode="json"),
            suggested_actions=["View your habits", f'Complete "{habit.name}"'],
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        habit: Habit = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete habit. Please try again.")
        return OperationResult(
            success=True,
            message=f'🗑️ Successfully deleted habit "{habit.name}"',
            data={"deleted_id": habit.id, "name": habit.name},
        )

    async def _complete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        habit: Habit = await self._call_service("get", user_id, operation.entity_id)
        completion = await self._call_service("complete", user_id, habit.id)
        streak: HabitStreak = await self._call_service("calculate_streak", user_id, habit.id)
        message = f'🎉 Great job completing "{habit.name}"!'
        if streak.current_streak > 1:
            message += f" {streak_icon(streak)} {format_streak(streak)}"
        return OperationResult(
            success=True,
            message=message,
            data={
                "habit": habit.model_dump(mode="json"),
                "completion": completion.model_dump(mode="json"),
                "streak": streak.model_dump(mode="json"),
            },
            suggested_actions=["View your habits", "Complete another habit"],
        )

    async def _toggle(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        habit: Habit = await self._call_service("get", user_id, operation.entity_id)
        completed = await self._call_service("toggle_completion", user_id, habit.id)
        if completed:
            message = f'✅ Marked "{habit.name}" as completed for today!'
        else:
            message = f'⭕ Unmarked "{habit.name}" for today'
        return OperationResult(
            success=True,
            message=message,
            data={"habit": habit.model_dump(mode="json"), "completed": completed},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        habits: List[Habit] = await self._call_service("list", user_id, None)
        if not habits:
            return OperationResult(
                success=True,
                message="You have no habits yet. Create your first habit to get started!",
                suggested_actions=[
                    'Add a new habit like "Add habit drink water daily"',
                    "Create a morning routine habit",
                    "Start with a simple habit",
                ],
            )

        completions = await self._call_service("today_completions", user_id)
        done_today = {c.habit_id for c in completions}
        rows = []
        for habit in habits:
            streak = await self._call_service("calculate_streak", user_id, habit.id)
            rows.append({"habit": habit, "streak": streak, "completed_today": habit.id in done_today})
        rows.sort(key=lambda r: (not r["completed_today"], -r["streak"].current_streak))

        total = len(rows)
        completed = sum(1 for r in rows if r["completed_today"])
        rate = round(completed / total * 100)
        insights = habit_insights(rows)

        detailed = operation.parameters.get("detailed") or operation.parameters.get("show_streaks")
        shown = rows if detailed else rows[:5]
        lines = []
        for r in shown:
            status = "✅" if r["completed_today"] else "⭕"
            if detailed:
                lines.append(f"{status} {r['habit'].name} {streak_icon(r['streak'])} {format_streak(r['streak'])}")
            else:
                lines.append(f"{status} {r['habit'].name} ({r['streak'].current_streak} day streak)")
        message = f"📊 Your Habits ({completed}/{total} completed today - {rate}%)\n\n" + "\n".join(lines)
        if not detailed and total > 5:
            message += f"\n... and {total - 5} more habits"

        return OperationResult(
            success=True,
            message=message,
            data={
                "habits": [
                    {
                        **r["habit"].model_dump(mode="json"),
                        "streak": r["streak"].model_dump(mode="json"),
                        "completed_today": r["completed_today"],
                    }
                    for r in rows
                ],
                "summary": {"total": total, "completed_today": completed, "completion_rate": rate},
                "insights": insights,
            },
            suggested_actions=insights["recommendations"],
        )
