"""Journal handler: entries are enriched with inferred mood, tags and title."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from entity_kernel.enrichment.extraction import generate_title_from_content
from entity_kernel.enrichment.sentiment import analyze_journal_content
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import JournalEntry, JournalStats
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation
from entity_kernel.models.pipeline import TargetResolution, TargetStatus


PREVIEW_LENGTH = 100
TIMEFRAME_DAYS = {"today": 1, "week": 7, "this week": 7, "month": 30, "this month": 30}


def content_preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    if len(content) <= length:
        return content
    return content[:length].rstrip() + "..."


class JournalHandler(BaseEntityHandler):
    entity_type = EntityType.JOURNAL
    service_name = "journal"
    reference_fields = ("search", "title")

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.VIEW] = self._view

    def name_of(self, entity: JournalEntry) -> str:
        return entity.title

    def preview(self, entity: JournalEntry) -> Optional[str]:
        return f'"{content_preview(entity.content)}"'

    async def default_target(self, operation: ParsedEntityOperation, user_id: str) -> TargetResolution:
        """Latest entry, or the latest from yesterday when asked for."""
        reference = str(operation.parameters.get("date_reference") or "latest").lower()
        filters: Dict[str, Any] = {"limit": 1}
        if reference == "yesterday":
            today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
            filters.update(since=today - timedelta(days=1), until=today)
        elif reference == "today":
            filters["since"] = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

        entries = await self._call_service("list", user_id, filters)
        if not entries:
            return TargetResolution(status=TargetStatus.NOT_FOUND)
        return self._found(entries[0])

    async def resolve_target(self, operation: ParsedEntityOperation, user_id: str) -> TargetResolution:
        # Journal titles are generated, so a search term is matched against content too
        query = self.reference_query(operation)
        if operation.entity_id or query is None or operation.intent not in (Intent.UPDATE, Intent.DELETE):
            return await super().resolve_target(operation, user_id)

        entries: List[JournalEntry] = await self._call_service("list", user_id, {"search": query})
        if len(entries) == 1:
            return self._found(entries[0])
        if not entries:
            return await super().resolve_target(operation, user_id)
        return TargetResolution(
            status=TargetStatus.AMBIGUOUS,
            options=[self.to_candidate(e) for e in entries],
            query=query,
        )

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        content = params["content"].strip()
        analysis = analyze_journal_content(content)

        tags = params.get("tags") or analysis.suggested_tags
        data = {
            "title": params.get("title") or generate_title_from_content(content),
            "content": content,
            "mood_rating": params.get("mood_rating") or analysis.suggested_mood,
            "tags": tags,
            "category": params.get("category") or analysis.category,
        }
        entry: JournalEntry = await self._call_service("create", user_id, data)

        message = f'📝 Saved journal entry "{entry.title}"'
        if analysis.sentiment == "positive":
            message += " - sounds like a good day!"
        elif analysis.sentiment == "negative":
            message += " - thank you for sharing something difficult."
        return OperationResult(
            success=True,
            message=message,
            data={**entry.model_dump(mode="json"), "analysis": analysis.model_dump()},
            suggested_actions=["Log your mood", "View recent entries"],
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        patch = self._explicit(params, "content", "mood_rating", "tags", "category", "is_favorite")
        if "new_title" in params:
            patch["title"] = params["new_title"]
        if "content" in patch:
            analysis = analyze_journal_content(patch["content"])
            patch.setdefault("mood_rating", analysis.suggested_mood)
            patch.setdefault("tags", analysis.suggested_tags)
            if analysis.category:
                patch.setdefault("category", analysis.category)
        if not patch:
            return self._no_updates("the content, title, mood rating, tags or favorite flag")

        entry: JournalEntry = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f'✅ Updated journal entry "{entry.title}"',
            data=entry.model_dump(mode="json"),
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        entry: JournalEntry = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete journal entry. Please try again.")
        return OperationResult(
            success=True,
            message=f'🗑️ Deleted journal entry "{entry.title}"',
            data={"deleted_id": entry.id, "title": entry.title},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        filters: Dict[str, Any] = {"limit": 10}
        timeframe = str(params.get("timeframe") or "").lower()
        if timeframe in TIMEFRAME_DAYS:
            filters["since"] = datetime.utcnow() - timedelta(days=TIMEFRAME_DAYS[timeframe])
        if params.get("search"):
            filters["search"] = params["search"]

        entries: List[JournalEntry] = await self._call_service("list", user_id, filters)
        stats: JournalStats = await self._call_service("get_stats", user_id)

        if not entries:
            return OperationResult(
                success=True,
                message="No journal entries found. Start writing to capture your thoughts!",
                data={"entries": [], "stats": stats.model_dump(mode="json")},
                suggested_actions=['Try "Journal: today I learned something new"'],
            )

        lines = []
        for entry in entries:
            mood = f" (mood {entry.mood_rating}/10)" if entry.mood_rating else ""
            lines.append(f"• {entry.created_at.strftime('%b %d')}: {entry.title}{mood}")
        header = f"📖 Your Journal ({stats.total_entries} entries, {stats.entries_this_week} this week)"
        message = header + "\n\n" + "\n".join(lines)
        if stats.current_streak > 1:
            message += f"\n\n🔥 {stats.current_streak} day journaling streak"

        return OperationResult(
            success=True,
            message=message,
            data={
                "entries": [e.model_dump(mode="json") for e in entries],
                "stats": stats.model_dump(mode="json"),
            },
            suggested_actions=["Write a new entry", "Search your journal"],
        )
