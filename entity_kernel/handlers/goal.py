"""Goal handler."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import Goal, GoalStats
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation


UPDATABLE_FIELDS = ("title", "description", "category", "priority", "status", "target_date",
                    "target_value", "notes")
STATUS_ICONS = {"completed": "✅", "paused": "⏸️", "abandoned": "❌"}
PRIORITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🟢"}


def clamp_progress(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def progress_bar(percentage: float, width: int = 10) -> str:
    filled = int(round(clamp_progress(percentage) / 100 * width))
    return "█" * filled + "░" * (width - filled)


def parse_target_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None


class GoalHandler(BaseEntityHandler):
    entity_type = EntityType.GOAL
    service_name = "goals"
    reference_fields = ("title", "name")

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.COMPLETE] = self._complete
        self._intents[Intent.VIEW] = self._view

    def name_of(self, entity: Goal) -> str:
        return entity.title

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        data = {
            "title": params["title"].strip(),
            "description": params.get("description"),
            "category": params.get("category") or "personal",
            "priority": params.get("priority") or "medium",
            "target_date": parse_target_date(params.get("target_date")),
            "target_value": params.get("target_value"),
            "milestones": params.get("milestones") or [],
        }
        goal: Goal = await self._call_service("create", user_id, data)
        message = f'🎯 Created goal "{goal.title}"'
        if goal.target_date:
            message += f" (target: {goal.target_date.isoformat()})"
        return OperationResult(
            success=True,
            message=message,
            data=goal.model_dump(mode="json"),
            suggested_actions=["Break it into milestones", "Set a target date", "View your goals"],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        patch = self._explicit(params, *UPDATABLE_FIELDS)
        if "new_title" in params:
            patch["title"] = params["new_title"]
        else:
            # The title only located the goal
            patch.pop("title", None)
        if "target_date" in patch:
            patch["target_date"] = parse_target_date(patch["target_date"])

        goal: Optional[Goal] = None
        if params.get("progress_value") is not None:
            goal = await self._call_service("get", user_id, operation.entity_id)
            current = goal.current_value + float(params["progress_value"])
            patch["current_value"] = current
            target = patch.get("target_value") or goal.target_value
            if target:
                patch["progress_percentage"] = clamp_progress(current / float(target) * 100)
        if params.get("progress_percentage") is not None:
            patch["progress_percentage"] = clamp_progress(params["progress_percentage"])

        if not patch:
            return self._no_updates("the title, description, progress, priority, status or target date")

        goal = await self._call_service("update", user_id, operation.entity_id, patch)
        message = f'✅ Updated goal "{goal.title}"'
        if "progress_percentage" in patch:
            message += f" - {progress_bar(goal.progress_percentage)} {goal.progress_percentage:.0f}%"
        return OperationResult(
            success=True,
            message=message,
            data=goal.model_dump(mode="json"),
            suggested_actions=["View your goals"],
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        goal: Goal = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete goal. Please try again.")
        return OperationResult(
            success=True,
            message=f'🗑️ Successfully deleted goal "{goal.title}"',
            data={"deleted_id": goal.id, "title": goal.title},
        )

    async def _complete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        patch = {
            "status": "completed",
            "progress_percentage": 100.0,
            "completion_date": datetime.utcnow().date(),
        }
        goal: Goal = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'🏆 Congratulations! You completed your goal "{goal.title}"!',
            data=goal.model_dump(mode="json"),
            suggested_actions=["Set a new goal", "View your goals"],
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        status = operation.parameters.get("status")
        filters: Dict[str, Any] = {"status": status} if status else {}
        goals: List[Goal] = await self._call_service("list", user_id, filters or None)
        stats: GoalStats = await self._call_service("get_stats", user_id)

        if not goals:
            scope = f"{status} " if status else ""
            return OperationResult(
                success=True,
                message=f"You have no {scope}goals yet.",
                data={"goals": [], "stats": stats.model_dump(mode="json")},
                suggested_actions=['Create a goal like "Set a goal to read 12 books this year"'],
            )

        lines = []
        for goal in goals[:10]:
            icon = STATUS_ICONS.get(goal.status, PRIORITY_ICONS.get(goal.priority, "🎯"))
            line = f"{icon} {goal.title} {progress_bar(goal.progress_percentage)} {goal.progress_percentage:.0f}%"
            if goal.target_date and goal.status == "active":
                line += f" (due {goal.target_date.isoformat()})"
            lines.append(line)

        header = f"🎯 Your Goals ({stats.active} active, {stats.completed} completed)"
        message = header + "\n\n" + "\n".join(lines)
        if len(goals) > 10:
            message += f"\n... and {len(goals) - 10} more goals"

        suggested = []
        if stats.overdue_goals:
            suggested.append(f"Review {stats.overdue_goals} overdue goals")
        if stats.due_this_week:
            suggested.append(f"{stats.due_this_week} goals due this week")
        suggested.append("Update progress on a goal")

        return OperationResult(
            success=True,
            message=message,
            data={
                "goals": [g.model_dump(mode="json") for g in goals],
                "stats": stats.model_dump(mode="json"),
            },
            suggested_actions=suggested,
        )
