"""Belief handler: 21-day belief reprogramming cycles."""

from typing import List

from entity_kernel.enrichment.extraction import (
    generate_affirmations,
    generate_visualization_script,
    normalize_belief_statement,
)
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import BeliefCycle
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation


CYCLE_LENGTH = 21


class BeliefHandler(BaseEntityHandler):
    """Deleting a belief archives its cycle; the record is kept."""

    entity_type = EntityType.BELIEF
    service_name = "beliefs"
    reference_fields = ("statement", "name")

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._archive
        self._intents[Intent.VIEW] = self._view

    def name_of(self, entity: BeliefCycle) -> str:
        return entity.statement

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        statement = normalize_belief_statement(params["statement"])
        data = {
            "statement": statement,
            "reason": params.get("reason"),
            "category": params.get("category"),
            "affirmations": generate_affirmations(statement),
            "visualization_script": generate_visualization_script(statement),
            "cycle_length": CYCLE_LENGTH,
            "current_day": 1,
            "days_completed": 0,
        }
        belief: BeliefCycle = await self._call_service("create", user_id, data)
        return OperationResult(
            success=True,
            message=(
                f'🧠 Started a {belief.cycle_length}-day belief cycle: "{belief.statement}"\n\n'
                f"Today's affirmation: {belief.affirmations[0]}"
            ),
            data=belief.model_dump(mode="json"),
            suggested_actions=["Practice today's visualization", "View your beliefs"],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        patch = self._explicit(params, "reason", "category", "days_completed")
        if "new_statement" in params:
            statement = normalize_belief_statement(params["new_statement"])
            patch.update(
                statement=statement,
                affirmations=generate_affirmations(statement),
                visualization_script=generate_visualization_script(statement),
            )
        if "days_completed" in patch:
            done = min(CYCLE_LENGTH, int(patch["days_completed"]))
            patch["days_completed"] = done
            patch["current_day"] = min(CYCLE_LENGTH, done + 1)
            if done >= CYCLE_LENGTH:
                patch["status"] = "completed"
        if not patch:
            return self._no_updates("the statement, reason, category or days completed")

        belief: BeliefCycle = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'✅ Updated belief "{belief.statement}" (day {belief.current_day}/{belief.cycle_length})',
            data=belief.model_dump(mode="json"),
        )

    async def _archive(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        belief: BeliefCycle = await self._call_service(
            "update", user_id, operation.entity_id, {"status": "archived"}
        )
        return OperationResult(
            success=True,
            message=f'📦 Archived belief "{belief.statement}"',
            data={"archived_id": belief.id, "statement": belief.statement},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        beliefs: List[BeliefCycle] = await self._call_service(
            "list", user_id, {"status": ["active", "completed"]}
        )
        if not beliefs:
            return OperationResult(
                success=True,
                message="You have no belief cycles yet.",
                data={"beliefs": []},
                suggested_actions=['Try "Add belief: I am confident"'],
            )
        lines = []
        for b in beliefs:
            icon = "✅" if b.status == "completed" else "🧠"
            lines.append(f"{icon} {b.statement} - day {b.current_day}/{b.cycle_length}")
        return OperationResult(
            success=True,
            message="🧠 Your Beliefs\n\n" + "\n".join(lines),
            data={"beliefs": [b.model_dump(mode="json") for b in beliefs]},
            suggested_actions=["Practice today's affirmations"],
        )
