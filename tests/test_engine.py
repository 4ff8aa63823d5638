"""End-to-end tests for the Entity Operation Engine: one user turn at a time."""

import asyncio
from datetime import datetime, timedelta

from entity_kernel.conversation.engine import EntityOperationEngine
from entity_kernel.conversation.sessions import SessionStore
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.errors import ErrorSeverity, ErrorType, SuggestionType
from entity_kernel.models.operation import EntityType, GateState, Intent, ParsedEntityOperation
from entity_kernel.models.session import ConversationSession
from entity_kernel.services.memory import InMemoryHabitService, InMemorySynchronicityService
from entity_kernel.services.registry import ServiceRegistry


class CountingHabitService(InMemoryHabitService):
    def __init__(self):
        super().__init__()
        self.deletes = 0

    async def delete(self, user_id, entity_id):
        self.deletes += 1
        return await super().delete(user_id, entity_id)


class UnauthorizedHabitService(InMemoryHabitService):
    async def create(self, user_id, data):
        raise PermissionError("401 unauthorized")


class BrokenSynchronicityService(InMemorySynchronicityService):
    async def discover_patterns(self, user_id):
        raise RuntimeError("pattern store offline")


def _make_engine(**replacements):
    services = ServiceRegistry.in_memory()
    for entity_type, service in replacements.items():
        services.replace(EntityType(entity_type), service)
    engine = EntityOperationEngine(services=services, config=EngineConfig(retry_delay_seconds=0))
    return engine, services


def _session() -> ConversationSession:
    return ConversationSession(id="session_test", user_id="u1")


def _converse(engine, *messages, session=None):
    """Feed messages in order, threading the session through each turn."""

    async def scenario():
        turns = []
        current = session or _session()
        for message in messages:
            turn = await engine.handle_message(message, current)
            turns.append(turn)
            current = turn.session
        await engine.background.drain()
        return turns

    return asyncio.run(scenario())


def _habit_names(services):
    return sorted(h.name for h in asyncio.run(services.habits.list("u1")))


class TestDeleteConfirmation:
    def test_delete_waits_for_yes(self):
        habits = CountingHabitService()
        engine, services = _make_engine(habit=habits)
        asyncio.run(habits.create("u1", {"name": "Exercise"}))

        asking, done = _converse(engine, "delete habit called Exercise", "yes")

        assert asking.state == GateState.NEEDS_CONFIRMATION
        assert asking.result.needs_confirmation
        assert "cannot be undone" in asking.result.message
        assert asking.session.pending is not None

        assert done.state == GateState.SUCCEEDED
        assert done.result.message == '🗑️ Successfully deleted habit "Exercise"'
        assert done.session.pending is None
        assert habits.deletes == 1
        assert _habit_names(services) == []

    def test_no_cancels(self):
        habits = CountingHabitService()
        engine, services = _make_engine(habit=habits)
        asyncio.run(habits.create("u1", {"name": "Exercise"}))

        _, cancelled = _converse(engine, "delete habit called Exercise", "no")

        assert cancelled.state == GateState.CANCELLED
        assert cancelled.result.success
        assert cancelled.session.pending is None
        assert habits.deletes == 0
        assert _habit_names(services) == ["Exercise"]

    def test_unparseable_reply_keeps_question(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Exercise"}))

        asking, unclear = _converse(engine, "delete habit called Exercise", "hmm")

        assert unclear.state == GateState.NEEDS_CONFIRMATION
        assert unclear.session.pending.id == asking.session.pending.id
        assert _habit_names(services) == ["Exercise"]

    def test_new_command_replaces_pending(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Exercise"}))

        _, viewed = _converse(engine, "delete habit called Exercise", "show my goals")

        assert viewed.state == GateState.SUCCEEDED
        assert viewed.session.pending is None
        assert _habit_names(services) == ["Exercise"]

    def test_not_found_offers_alternative(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Exercise"}))

        (turn,) = _converse(engine, "delete habit called Exercize")

        assert turn.state == GateState.FAILED
        assert turn.result.suggested_actions == ['Delete "Exercise" instead?']
        assert turn.session.pending is None
        assert turn.result.error.type == ErrorType.VALIDATION
        alternative = turn.result.error.suggestions[0]
        assert alternative.action_type == SuggestionType.ALTERNATIVE
        assert alternative.parameters["name"] == "Exercise"

    def test_not_found_counts_toward_escalation(self):
        engine, _ = _make_engine()
        *misses, gibberish = _converse(
            engine, "delete habit called Nope", "complete zzzz", "complete qqqq", "asdf"
        )

        assert [t.state for t in misses] == [GateState.FAILED] * 3
        assert all(t.result.error is not None for t in misses)
        assert gibberish.result.error.severity.rank >= ErrorSeverity.HIGH.rank
        assert engine.classifier.get_user_error_summary("u1")["errors_last_24h"] == 4


class TestDisambiguation:
    def setup_method(self):
        self.engine, self.services = _make_engine()
        asyncio.run(self.services.habits.create("u1", {"name": "Read news"}))
        asyncio.run(self.services.habits.create("u1", {"name": "Read books"}))

    def test_select_by_name(self):
        asking, done = _converse(self.engine, "complete read", "read books")

        assert asking.state == GateState.NEEDS_DISAMBIGUATION
        assert "Read news" in asking.result.message
        assert "Read books" in asking.result.message

        assert done.state == GateState.SUCCEEDED
        assert 'completing "Read books"' in done.result.message
        assert done.session.pending is None

    def test_selected_delete_still_needs_confirmation(self):
        asking, yes_too_soon, selected, done = _converse(
            self.engine, "delete habit read", "yes", "read news", "yes"
        )

        assert asking.state == GateState.NEEDS_DISAMBIGUATION
        assert yes_too_soon.state == GateState.NEEDS_DISAMBIGUATION
        assert selected.state == GateState.NEEDS_CONFIRMATION
        assert done.state == GateState.SUCCEEDED
        assert _habit_names(self.services) == ["Read books"]

    def test_different_command_is_not_a_selection(self):
        asking, deleting, done = _converse(
            self.engine, "complete read", "delete habit read books", "yes"
        )

        assert asking.state == GateState.NEEDS_DISAMBIGUATION
        assert deleting.state == GateState.NEEDS_CONFIRMATION
        assert "cannot be undone" in deleting.result.message
        assert deleting.session.pending.parsed_operation.intent == Intent.DELETE
        assert done.state == GateState.SUCCEEDED
        assert _habit_names(self.services) == ["Read news"]
        assert asyncio.run(self.services.habits.today_completions("u1")) == []

    def test_ordinal_inside_a_command_is_not_a_selection(self):
        asking, unclear = _converse(self.engine, "complete read", "view last entry")

        assert unclear.state == GateState.NEEDS_DISAMBIGUATION
        assert unclear.session.pending.id == asking.session.pending.id
        assert asyncio.run(self.services.habits.today_completions("u1")) == []


class TestDirectOperations:
    def test_complete_runs_without_confirmation(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Reading"}))

        (turn,) = _converse(engine, "complete reading")

        assert turn.state == GateState.SUCCEEDED
        assert turn.result.message.startswith('🎉 Great job completing "Reading"!')
        assert turn.session.turn_count == 1
        assert turn.session.last_state == GateState.SUCCEEDED

    def test_create_then_view(self):
        engine, _ = _make_engine()
        created, viewed = _converse(engine, "add habit drink water daily", "show my habits")
        assert created.result.message == '✅ Created habit "drink water" successfully!'
        assert viewed.result.data["summary"]["total"] == 1

    def test_gibberish_is_a_parsing_error(self):
        engine, _ = _make_engine()
        (turn,) = _converse(engine, "asdf")
        assert turn.state == GateState.REJECTED
        assert not turn.result.success
        assert turn.result.error.type == ErrorType.PARSING
        assert turn.result.suggested_actions

    def test_validation_rejection(self):
        engine, _ = _make_engine()
        op = ParsedEntityOperation(
            entity_type=EntityType.MOOD, intent=Intent.CREATE, parameters={"mood_rating": 11}
        )
        turn = asyncio.run(engine.execute(op, _session()))
        assert turn.state == GateState.REJECTED
        assert turn.result.error.type == ErrorType.VALIDATION
        assert asyncio.run(engine.services.moods.list("u1")) == []

    def test_missing_name_rejected(self):
        engine, _ = _make_engine()
        (turn,) = _converse(engine, "add habit")
        assert turn.state == GateState.REJECTED
        assert turn.result.error.suggestions[0].id == "provide_name"

    def test_service_failure_becomes_result(self):
        engine, _ = _make_engine(habit=UnauthorizedHabitService())
        (turn,) = _converse(engine, "add habit stretch")
        assert turn.state == GateState.FAILED
        assert turn.result.error.type == ErrorType.AUTHENTICATION


class TestBackgroundIsolation:
    def test_mood_create_refreshes_patterns(self):
        engine, _ = _make_engine()
        (turn,) = _converse(engine, "feeling great, energy 8")
        assert turn.state == GateState.SUCCEEDED
        assert "u1" in engine.background.mood_patterns

    def test_failed_discovery_does_not_touch_result(self):
        engine, _ = _make_engine(synchronicity=BrokenSynchronicityService())
        (turn,) = _converse(engine, "log synch: saw 11:11 three times")
        assert turn.state == GateState.SUCCEEDED
        assert turn.result.success
        assert engine.background.failures == 1
        assert engine.health_status()["background_failures"] == 1


class TestSessionControls:
    def test_cancel_pending(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Exercise"}))
        (asking,) = _converse(engine, "delete habit called Exercise")

        turn = engine.cancel_pending(asking.session)
        assert turn.state == GateState.CANCELLED
        assert turn.session.pending is None
        assert _habit_names(services) == ["Exercise"]

    def test_cancel_with_nothing_pending(self):
        engine, _ = _make_engine()
        turn = engine.cancel_pending(_session())
        assert turn.result.message == "There is nothing waiting for confirmation."

    def test_session_input_not_mutated(self):
        engine, _ = _make_engine()
        session = _session()
        _converse(engine, "asdf", session=session)
        assert session.turn_count == 0
        assert session.last_state is None


class TestSessionStore:
    def test_get_or_create(self):
        store = SessionStore()
        created = store.get_or_create("u1")
        assert created.id.startswith("session_")
        assert store.get_or_create("u1", created.id) is created
        assert store.get("session_missing") is None

    def test_save_replaces_session(self):
        store = SessionStore()
        session = store.create("u1", "session_a")
        store.save(session.model_copy(update={"turn_count": 3}))
        assert store.get("session_a").turn_count == 3

    def test_one_lock_per_session(self):
        store = SessionStore()
        assert store.lock("session_a") is store.lock("session_a")
        assert store.lock("session_a") is not store.lock("session_b")

    def test_unused_locks_are_released(self):
        store = SessionStore()
        held = store.lock("session_a")
        store.lock("session_b")
        assert "session_a" in store._locks
        assert "session_b" not in store._locks
        del held
        assert "session_a" not in store._locks

    def test_idle_sessions_pruned(self):
        store = SessionStore(idle_ttl=timedelta(hours=1))
        stale = store.create("u1", "session_old")
        store.save(stale.model_copy(update={"updated_at": datetime.utcnow() - timedelta(hours=2)}))
        fresh = store.create("u2")
        assert store.get("session_old") is None
        assert store.get(fresh.id) is fresh
        assert store.prune() == 0


class TestHealthAndConfig:
    def test_health_status(self):
        engine, _ = _make_engine()
        assert engine.health_status()["status"] == "healthy"

        _converse(engine, "asdf")
        health = engine.health_status()
        assert health["status"] == "unhealthy"
        assert health["failed_operations"] == 1
        assert health["error_rate"] == 1.0

    def test_awaiting_user_is_not_a_failure(self):
        engine, services = _make_engine()
        asyncio.run(services.habits.create("u1", {"name": "Exercise"}))
        _converse(engine, "delete habit called Exercise")
        health = engine.health_status()
        assert health["awaiting_user"] == 1
        assert health["status"] == "healthy"

    def test_reconfigure(self):
        engine, _ = _make_engine()
        old_router = engine.router
        config = EngineConfig(pattern_discovery_schedule="0 0 * * *", similarity_threshold=0.5)
        engine.reconfigure(config)
        assert engine.router is not old_router
        assert engine.classifier.config is config
        assert engine.background.scheduler.schedule == "0 0 * * *"
        assert engine.router.handler_for(EntityType.HABIT).resolver.similarity_threshold == 0.5
