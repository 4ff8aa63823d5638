"""Routine handler."""

from typing import List

from entity_kernel.enrichment.extraction import generate_basic_steps, infer_routine_category
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import Routine
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation


DEFAULT_DURATION_MINUTES = 10
UPDATABLE_FIELDS = ("description", "category", "estimated_duration", "preferred_time", "is_active")


class RoutineHandler(BaseEntityHandler):
    entity_type = EntityType.ROUTINE
    service_name = "routines"
    reference_fields = ("name",)

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.VIEW] = self._view

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        name = params["name"].strip()
        hint = f"{name} {operation.original_message}"
        data = {
            "name": name,
            "description": params.get("description"),
            "category": params.get("category") or infer_routine_category(hint),
            "steps": params.get("steps") or generate_basic_steps(hint),
            "estimated_duration": params.get("estimated_duration") or DEFAULT_DURATION_MINUTES,
            "preferred_time": params.get("preferred_time"),
        }
        routine: Routine = await self._call_service("create", user_id, data)
        steps = "\n".join(f"{s.order}. {s.name}" for s in routine.steps)
        return OperationResult(
            success=True,
            message=(
                f'🔄 Created {routine.category.lower()} routine "{routine.name}" '
                f"({routine.estimated_duration} min)\n\n{steps}"
            ),
            data=routine.model_dump(mode="json"),
            suggested_actions=["Customize the steps", "Set a preferred time", "View your routines"],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        patch = self._explicit(operation.parameters, *UPDATABLE_FIELDS)
        if "new_name" in operation.parameters:
            patch["name"] = operation.parameters["new_name"]
        if not patch:
            return self._no_updates("the name, description, category, duration or preferred time")
        routine: Routine = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'✅ Updated routine "{routine.name}"',
            data=routine.model_dump(mode="json"),
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        routine: Routine = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete routine. Please try again.")
        return OperationResult(
            success=True,
            message=f'🗑️ Successfully deleted routine "{routine.name}"',
            data={"deleted_id": routine.id, "name": routine.name},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        routines: List[Routine] = await self._call_service("list", user_id, {"is_active": True})
        if not routines:
            return OperationResult(
                success=True,
                message="You have no active routines yet.",
                data={"routines": []},
                suggested_actions=['Try "Create a morning routine"'],
            )
        lines = [
            f"• {r.name} ({r.category}, {r.estimated_duration} min, {len(r.steps)} steps)"
            for r in routines[:5]
        ]
        message = f"🔄 Your Routines ({len(routines)} active)\n\n" + "\n".join(lines)
        if len(routines) > 5:
            message += f"\n... and {len(routines) - 5} more routines"
        return OperationResult(
            success=True,
            message=message,
            data={"routines": [r.model_dump(mode="json") for r in routines]},
            suggested_actions=["Create a new routine"],
        )
