"""Mood handler."""

from datetime import datetime
from typing import List, Optional

from entity_kernel.enrichment.extraction import extract_mood_context
from entity_kernel.enrichment.sentiment import analyze_mood_from_message, is_mood_trend_query
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.models.entities import MoodEntry, MoodPatterns, MoodStats
from entity_kernel.models.operation import EntityType, Intent, OperationResult, ParsedEntityOperation
from entity_kernel.models.pipeline import TargetResolution, TargetStatus


DEFAULT_RATING = 5
TREND_ICONS = {"improving": "📈", "declining": "📉", "stable": "➡️"}


def clamp_rating(value: int) -> int:
    return max(1, min(10, int(value)))


def mood_icon(rating: int) -> str:
    if rating >= 8:
        return "😄"
    if rating >= 6:
        return "🙂"
    if rating >= 4:
        return "😐"
    return "😔"


class MoodHandler(BaseEntityHandler):
    entity_type = EntityType.MOOD
    service_name = "moods"
    reference_fields = ()

    def _register_default_intents(self) -> None:
        self._intents[Intent.CREATE] = self._create
        self._intents[Intent.UPDATE] = self._update
        self._intents[Intent.DELETE] = self._delete
        self._intents[Intent.VIEW] = self._view

    def name_of(self, entity: MoodEntry) -> str:
        return f"Mood entry from {entity.created_at.strftime('%Y-%m-%d %H:%M')}"

    def preview(self, entity: MoodEntry) -> Optional[str]:
        text = f"Mood {entity.mood_rating}/10, energy {entity.energy_level}/10"
        if entity.notes:
            text += f': "{entity.notes}"'
        return text

    async def default_target(self, operation: ParsedEntityOperation, user_id: str) -> TargetResolution:
        """The most recent entry (today's latest when asked about today)."""
        filters = {"limit": 1}
        if str(operation.parameters.get("date_reference") or "").lower() == "today":
            filters["since"] = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        entries = await self._call_service("list", user_id, filters)
        if not entries:
            return TargetResolution(status=TargetStatus.NOT_FOUND)
        return self._found(entries[0])

    async def _create(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        params = operation.parameters
        analysis = analyze_mood_from_message(operation.original_message)

        mood = params.get("mood_rating") or analysis.suggested_mood or DEFAULT_RATING
        energy = params.get("energy_level") or analysis.suggested_energy or DEFAULT_RATING
        data = {
            "mood_rating": clamp_rating(mood),
            "energy_level": clamp_rating(energy),
            "notes": params.get("notes") or analysis.extracted_notes,
            "tags": params.get("tags") or analysis.suggested_tags,
            "context": extract_mood_context(operation.original_message),
        }
        entry: MoodEntry = await self._call_service("create", user_id, data)

        message = f"{mood_icon(entry.mood_rating)} Logged mood {entry.mood_rating}/10, energy {entry.energy_level}/10"
        if analysis.detected_emotion:
            message += f" (feeling {analysis.detected_emotion})"
        suggested = ["View your mood trends"]
        if entry.mood_rating <= 3:
            suggested.insert(0, "Write a journal entry about it")
        return OperationResult(
            success=True,
            message=message,
            data={**entry.model_dump(mode="json"), "analysis": analysis.model_dump()},
            suggested_actions=suggested,
        )

    async def _update(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        patch = self._explicit(operation.parameters, "mood_rating", "energy_level", "notes", "tags")
        for key in ("mood_rating", "energy_level"):
            if key in patch:
                patch[key] = clamp_rating(patch[key])
        if not patch:
            return self._no_updates("the mood rating, energy level, notes or tags")

        entry: MoodEntry = await self._call_service("update", user_id, operation.entity_id, patch)
        return OperationResult(
            success=True,
            message=f"✅ Updated mood entry: mood {entry.mood_rating}/10, energy {entry.energy_level}/10",
            data=entry.model_dump(mode="json"),
        )

    async def _delete(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        entry: MoodEntry = await self._call_service("get", user_id, operation.entity_id)
        deleted = await self._call_service("delete", user_id, operation.entity_id)
        if not deleted:
            return OperationResult(success=False, message="Failed to delete mood entry. Please try again.")
        return OperationResult(
            success=True,
            message=f"🗑️ Deleted {self.name_of(entry).lower()}",
            data={"deleted_id": entry.id},
        )

    async def _view(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        days = operation.parameters.get("days") or 30
        wants_trend = (
            operation.parameters.get("timeframe") == "trend"
            or is_mood_trend_query(operation.original_message)
        )
        if wants_trend:
            return await self._trends(user_id, days)

        entries: List[MoodEntry] = await self._call_service("list", user_id, {"limit": 7})
        if not entries:
            return OperationResult(
                success=True,
                message="No mood entries yet. How are you feeling today?",
                data={"entries": []},
                suggested_actions=['Try "Feeling great today, energy 8"'],
            )
        lines = [
            f"{mood_icon(e.mood_rating)} {e.created_at.strftime('%b %d')}: "
            f"mood {e.mood_rating}/10, energy {e.energy_level}/10"
            + (f" - {e.notes}" if e.notes else "")
            for e in entries
        ]
        return OperationResult(
            success=True,
            message="📊 Recent Moods\n\n" + "\n".join(lines),
            data={"entries": [e.model_dump(mode="json") for e in entries]},
            suggested_actions=["View your mood trends", "Log your mood"],
        )

    async def _trends(self, user_id: str, days: int) -> OperationResult:
        stats: MoodStats = await self._call_service("get_stats", user_id, days)
        patterns: MoodPatterns = await self._call_service("get_patterns", user_id, days)
        if stats.total_entries == 0:
            return OperationResult(
                success=True,
                message=f"No mood entries in the last {days} days to analyze.",
                data={"stats": stats.model_dump(mode="json")},
                suggested_actions=["Log your mood"],
            )

        lines = [
            f"Average mood: {stats.average_mood}/10 {TREND_ICONS.get(stats.mood_trend, '')} {stats.mood_trend}",
            f"Average energy: {stats.average_energy}/10 {TREND_ICONS.get(stats.energy_trend, '')} {stats.energy_trend}",
            f"Entries: {stats.total_entries}",
        ]
        if stats.best_day:
            lines.append(f"Best day: {stats.best_day}")
        lines.extend(f"• {p}" for p in patterns.patterns)

        return OperationResult(
            success=True,
            message=f"📈 Mood Trends (last {days} days)\n\n" + "\n".join(lines),
            data={
                "stats": stats.model_dump(mode="json"),
                "patterns": patterns.model_dump(mode="json"),
            },
            suggested_actions=patterns.recommendations or ["Keep logging your mood daily"],
        )
