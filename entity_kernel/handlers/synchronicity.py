"""Synchronicity handler."""

from typing import List, Optional

from entity_kernel.enrichment.extraction import (
    DEFAULT_EMOTIONS,
    DEFAULT_SIGNIFICANCE,
    extract_synchronicity_details,
    generate_title_from_content,
)
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import SynchronicityEntry
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation
from entity_kernel.models.pipeline import TargetResolution, TargetStatus


UPDATABLE_FIELDS = ("description", "significance", "tags", "emotions", "context")


class SynchronicityHandler(BaseEntityHandler):
    entity_type = EntityType.SYNCHRONICITY
    service_name = "synchronicities"
    reference_fields = ("title",)

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.VIEW] = self._view

    def name_of(self, entity: SynchronicityEntry) -> str:
        return entity.title

    def preview(self, entity: SynchronicityEntry) -> Optional[str]:
        return entity.description or None

    async def default_target(self, operation: ParsedEntityOperation, user_id: str) -> TargetResolution:
        entries = await self._call_service("list", user_id, {"limit": 1})
        if not entries:
            return TargetResolution(status=TargetStatus.NOT_FOUND)
        return self._found(entries[0])

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        details = extract_synchronicity_details(operation.original_message)
        description = params.get("description") or details.description or ""
        title = params.get("title") or details.title or generate_title_from_content(description)
        data = {
            "title": title,
            "description": description,
            "significance": params.get("significance") or details.significance or DEFAULT_SIGNIFICANCE,
            "tags": params.get("tags") or details.tags,
            "emotions": params.get("emotions") or details.emotions or list(DEFAULT_EMOTIONS),
            "context": params.get("context"),
        }
        entry: SynchronicityEntry = await self._call_service("create", user_id, data)
        return OperationResult(
            success=True,
            message=f'✨ Logged synchronicity "{entry.title}" (significance {entry.significance}/10)',
            data=entry.model_dump(mode="json"),
            suggested_actions=["View your synchronicities", "Journal about what it might mean"],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        patch = self._explicit(operation.parameters, *UPDATABLE_FIELDS)
        if "new_title" in operation.parameters:
            patch["title"] = operation.parameters["new_title"]
        if not patch:
            return self._no_updates("the title, description, significance, tags or emotions")
        entry: SynchronicityEntry = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'✅ Updated synchronicity "{entry.title}"',
            data=entry.model_dump(mode="json"),
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        entry: SynchronicityEntry = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete synchronicity. Please try again.")
        return OperationResult(
            success=True,
            message=f'🗑️ Deleted synchronicity "{entry.title}"',
            data={"deleted_id": entry.id, "title": entry.title},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        entries: List[SynchronicityEntry] = await self._call_service("list", user_id, {"limit": 10})
        if not entries:
            return OperationResult(
                success=True,
                message="No synchronicities logged yet. Notice any meaningful coincidences lately?",
                data={"entries": []},
                suggested_actions=['Try "Log synch: saw 11:11 three times today"'],
            )
        lines = [
            f"✨ {e.occurred_at.strftime('%b %d')}: {e.title} ({e.significance}/10)"
            for e in entries
        ]
        return OperationResult(
            success=True,
            message="✨ Recent Synchronicities\n\n" + "\n".join(lines),
            data={"entries": [e.model_dump(mode="json") for e in entries]},
            suggested_actions=["Log a new synchronicity"],
        )
