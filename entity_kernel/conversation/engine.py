"""
Entity Operation Engine: one user turn from parsed operation to result.

Behavioral Contract:
- Pipeline: validate -> resolve target -> gate -> route -> handler
- Every failure at every stage comes back as a success=False result carrying
  a classified ChatEntityError; nothing raises to the caller
- Session state is passed in and an updated copy returned; the engine keeps
  no per-conversation state of its own
- A session holds at most one pending operation; every executed turn clears
  or replaces it
- A message arriving while an operation is pending is read as the answer to
  it first, and only otherwise as a new command
- Background analytics never affect the returned result
"""

import logging
import time
from datetime import datetime
from typing import Optional, Tuple

from entity_kernel.analytics.scheduler import AnalyticsScheduler, BackgroundAnalytics
from entity_kernel.errors.classifier import ErrorClassifier
from entity_kernel.gate.confirmation import ConfirmationGate, ResponseKind
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.errors import ChatEntityError
from entity_kernel.models.operation import (
    GateState,
    OperationResult,
    ParsedEntityOperation,
    PendingOperation,
)
from entity_kernel.models.pipeline import TargetStatus
from entity_kernel.models.session import ConversationSession, EngineTurn
from entity_kernel.parsing.parser import OperationParser, RuleBasedOperationParser
from entity_kernel.routing.router import EntityOperationRouter
from entity_kernel.services.registry import ServiceRegistry
from entity_kernel.validation.validator import ParameterValidator

logger = logging.getLogger(__name__)

HOLDING_STATES = (GateState.NEEDS_CONFIRMATION, GateState.NEEDS_DISAMBIGUATION)
SUCCESS_STATES = (GateState.SUCCEEDED, GateState.CANCELLED)
FAILURE_STATES = (GateState.FAILED, GateState.REJECTED)


class EngineMetrics:
    """Turn counters behind health_status."""

    def __init__(self):
        self.total_operations = 0
        self.successful_operations = 0
        self.failed_operations = 0
        self.awaiting_user = 0
        self._total_response_time = 0.0

    def record(self, state: GateState, elapsed: float) -> None:
        self.total_operations += 1
        self._total_response_time += elapsed
        if state in SUCCESS_STATES:
            self.successful_operations += 1
        elif state in FAILURE_STATES:
            self.failed_operations += 1
        else:
            self.awaiting_user += 1

    @property
    def error_rate(self) -> float:
        if not self.total_operations:
            return 0.0
        return self.failed_operations / self.total_operations

    @property
    def average_response_time(self) -> float:
        if not self.total_operations:
            return 0.0
        return self._total_response_time / self.total_operations

    def to_dict(self) -> dict:
        return {
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "awaiting_user": self.awaiting_user,
            "error_rate": round(self.error_rate, 4),
            "average_response_time_ms": round(self.average_response_time * 1000, 2),
        }


class EntityOperationEngine:
    """Runs operations and chat messages through the full pipeline."""

    def __init__(
        self,
        services: Optional[ServiceRegistry] = None,
        config: Optional[EngineConfig] = None,
        classifier: Optional[ErrorClassifier] = None,
        parser: Optional[OperationParser] = None,
        validator: Optional[ParameterValidator] = None,
        gate: Optional[ConfirmationGate] = None,
        router: Optional[EntityOperationRouter] = None,
        background: Optional[BackgroundAnalytics] = None,
    ):
        self.config = config or EngineConfig()
        self.services = services or ServiceRegistry.in_memory()
        self.classifier = classifier or ErrorClassifier(self.config)
        self.parser = parser or RuleBasedOperationParser()
        self.validator = validator or ParameterValidator()
        self.gate = gate or ConfirmationGate()
        self.router = router or EntityOperationRouter.build(self.services, self.classifier, self.config)
        self.background = background or BackgroundAnalytics(self.services, self.config)
        self.metrics = EngineMetrics()

    # --- Operations ---

    async def execute(
        self, operation: ParsedEntityOperation, session: ConversationSession
    ) -> EngineTurn:
        """Run one operation for the session's user. Never raises."""
        started = time.monotonic()
        result, pending = await self._run(operation, session.user_id)
        return self._finish(session, result, pending, started)

    async def _run(
        self, operation: ParsedEntityOperation, user_id: str
    ) -> Tuple[OperationResult, Optional[PendingOperation]]:
        validation = self.validator.validate_operation(operation)
        if not validation.is_valid:
            error = self.classifier.classify_validation_error(operation, validation.errors, user_id=user_id)
            return _error_result(error, GateState.REJECTED), None

        handler = self.router.handler_for(operation.entity_type)
        if handler is None:
            return await self.router.dispatch(operation, user_id), None

        try:
            target = await handler.resolve_target(operation, user_id)
        except Exception as exc:
            return handler.failure_result(operation, user_id, exc), None

        decision = self.gate.evaluate(operation, target)
        if decision.state in HOLDING_STATES:
            pending = self.gate.build_pending(decision, operation.original_message)
            return decision.result, pending
        if decision.state != GateState.READY:
            if target.status == TargetStatus.NOT_FOUND:
                error = self.classifier.classify_not_found(
                    operation, target.query, target.alternatives, user_id=user_id
                )
            else:
                error = self.classifier.classify_missing_reference(operation, user_id=user_id)
            return decision.result.model_copy(update={"error": error}), None

        result = await self.router.dispatch(decision.operation, user_id)
        if result.success:
            self.background.after_operation(decision.operation, user_id)
        return result, None

    def _finish(
        self,
        session: ConversationSession,
        result: OperationResult,
        pending: Optional[PendingOperation],
        started: float,
    ) -> EngineTurn:
        state = result.state or (GateState.SUCCEEDED if result.success else GateState.FAILED)
        if result.state is None:
            result = result.model_copy(update={"state": state})
        updated = session.model_copy(update={
            "pending": pending,
            "last_state": state,
            "turn_count": session.turn_count + 1,
            "updated_at": datetime.utcnow(),
        })
        elapsed = time.monotonic() - started
        self.metrics.record(state, elapsed)
        logger.debug("Session %s turn %d finished in state %s (%.1fms)",
                     session.id, updated.turn_count, state.value, elapsed * 1000)
        return EngineTurn(result=result, session=updated, state=state)

    # --- Chat messages ---

    async def handle_message(self, message: str, session: ConversationSession) -> EngineTurn:
        """
        Interpret a chat message: first as the answer to the pending operation,
        then as a new command.
        """
        started = time.monotonic()
        pending = session.pending
        operation = self.parser.parse(message)
        if pending is not None:
            response = self.gate.interpret_response(message, pending, operation)
            if response.kind == ResponseKind.CANCEL:
                return self._finish(session, self.gate.cancelled_result(pending), None, started)
            if response.kind in (ResponseKind.CONFIRM, ResponseKind.SELECT):
                return await self.execute(self.gate.resume(pending, response), session)
            if response.kind == ResponseKind.REPROMPT:
                return self._finish(session, pending.operation, pending, started)

        if operation is None:
            if pending is not None:
                # Not a command either; keep waiting on the question
                return self._finish(session, pending.operation, pending, started)
            error = self.classifier.classify_parsing_error(message, user_id=session.user_id)
            return self._finish(session, _error_result(error, GateState.REJECTED), None, started)

        return await self.execute(operation, session)

    def cancel_pending(self, session: ConversationSession) -> EngineTurn:
        """Session reset: drop the pending operation, if any."""
        started = time.monotonic()
        if session.pending is None:
            result = OperationResult(
                success=True,
                message="There is nothing waiting for confirmation.",
                state=GateState.CANCELLED,
            )
        else:
            result = self.gate.cancelled_result(session.pending)
        return self._finish(session, result, None, started)

    def reconfigure(self, config: EngineConfig) -> None:
        """Apply a new configuration to every stage. Error history is kept."""
        self.config = config
        self.classifier.config = config
        self.router = EntityOperationRouter.build(self.services, self.classifier, config)
        if config.pattern_discovery_schedule != self.background.scheduler.schedule:
            self.background.scheduler = AnalyticsScheduler(config.pattern_discovery_schedule)
        self.background.config = config

    # --- Health ---

    def health_status(self) -> dict:
        rate = self.metrics.error_rate
        if rate > 0.2:
            status = "unhealthy"
        elif rate > 0.1:
            status = "degraded"
        else:
            status = "healthy"
        return {
            "status": status,
            **self.metrics.to_dict(),
            "background_tasks_pending": self.background.pending,
            "background_failures": self.background.failures,
        }


def _error_result(error: ChatEntityError, state: GateState) -> OperationResult:
    return OperationResult(
        success=False,
        message=error.user_friendly_message,
        suggested_actions=[s.title for s in error.suggestions],
        error=error,
        state=state,
    )
