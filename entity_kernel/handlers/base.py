"""
Domain Operation Handler base.

Behavioral Contract:
- Dispatches by intent through a per-handler registry
- Every domain-service call is bounded by a timeout; timeouts surface as
  network errors
- Network and rate-limit failures are retried automatically (bounded);
  authentication and other failures are not
- Exceptions never escape `handle`: they become success=False results
  carrying a classified ChatEntityError
- Finds the target entity by natural-language name when no id is given
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from entity_kernel.errors.classifier import ErrorClassifier, infer_error_type
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.errors import ChatEntityError, ErrorType
from entity_kernel.models.operation import (
    TARGETED_INTENTS,
    EntityCandidate,
    EntityType,
    GateState,
    Intent,
    OperationResult,
    ParsedEntityOperation,
)
from entity_kernel.models.pipeline import TargetResolution, TargetStatus
from entity_kernel.resolution.resolver import FuzzyEntityResolver
from entity_kernel.services.protocols import EntityNotFoundError

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (ErrorType.NETWORK, ErrorType.RATE_LIMIT)

IntentHandler = Callable[[ParsedEntityOperation, str], Awaitable[OperationResult]]


class ServiceTimeoutError(TimeoutError):
    """A domain-service call did not finish within the configured bound."""
    pass


class ServiceCallError(Exception):
    """Wraps the final failure of a domain-service call (after retries)."""

    def __init__(self, service_name: str, method: str, cause: BaseException, attempts: int = 1):
        super().__init__(f"{service_name}.{method} failed after {attempts} attempt(s): {cause}")
        self.service_name = service_name
        self.method = method
        self.cause = cause
        self.attempts = attempts


class BaseEntityHandler:
    """Shared plumbing for the seven entity handlers."""

    entity_type: EntityType
    service_name: str = "entity"
    # Parameters that name the target when no entity_id is given
    reference_fields: Tuple[str, ...] = ("name",)

    def __init__(
        self,
        service: Any,
        classifier: ErrorClassifier,
        resolver: Optional[FuzzyEntityResolver] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.service = service
        self.errors = classifier
        self.config = config or classifier.config
        self.resolver = resolver or FuzzyEntityResolver(
            similarity_threshold=self.config.similarity_threshold,
            max_alternatives=self.config.max_alternatives,
        )
        self._intents: Dict[Intent, IntentHandler] = {}
        self._register_default_intents()

    def _register_default_intents(self) -> None:
        raise NotImplementedError

    def register_intent(self, intent: Intent, handler: IntentHandler) -> None:
        """Register (or override) the handler for one intent."""
        self._intents[intent] = handler

    @property
    def supported_intents(self) -> List[Intent]:
        return list(self._intents)

    async def handle(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        """Run one Ready operation. Never raises."""
        method = self._intents.get(operation.intent)
        if method is None:
            return OperationResult(
                success=False,
                message=f"{self.entity_type.value.capitalize()} operation '{operation.intent.value}' is not supported",
                suggested_actions=[f"Try: {', '.join(i.value for i in self._intents)}"],
                state=GateState.FAILED,
            )
        try:
            result = await method(operation, user_id)
        except Exception as exc:
            return self.failure_result(operation, user_id, exc)
        if result.state is None:
            result = result.model_copy(
                update={"state": GateState.SUCCEEDED if result.success else GateState.FAILED}
            )
        return result

    def failure_result(
        self, operation: ParsedEntityOperation, user_id: str, exc: BaseException
    ) -> OperationResult:
        """Classify an exception and turn it into a user-facing result."""
        if isinstance(exc, ServiceCallError):
            error = self.errors.classify_service_error(
                operation, exc.cause, exc.service_name, user_id=user_id
            )
        else:
            error = self.errors.classify_unexpected_error(operation, exc, user_id=user_id)
        return self._error_result(error)

    def _error_result(self, error: ChatEntityError) -> OperationResult:
        return OperationResult(
            success=False,
            message=error.user_friendly_message,
            suggested_actions=[s.title for s in error.suggestions],
            error=error,
            state=GateState.FAILED,
        )

    # --- Domain-service calls ---

    async def _call_service(self, method_name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Call the domain service with a timeout, retrying transient failures.
        Raises ServiceCallError with the last failure.
        """
        method = getattr(self.service, method_name)
        attempts = 0
        while True:
            attempts += 1
            try:
                return await asyncio.wait_for(
                    method(*args, **kwargs),
                    timeout=self.config.service_timeout_seconds,
                )
            except asyncio.TimeoutError:
                cause: BaseException = ServiceTimeoutError(
                    f"timeout calling {self.service_name}.{method_name} "
                    f"after {self.config.service_timeout_seconds}s"
                )
            except Exception as exc:
                cause = exc

            if isinstance(cause, EntityNotFoundError):
                raise ServiceCallError(self.service_name, method_name, cause, attempts) from cause

            error_type = infer_error_type(cause)
            if error_type in RETRYABLE_ERRORS and attempts <= self.config.max_retries:
                delay = self.config.retry_delay_seconds * attempts
                logger.info(
                    "Retrying %s.%s after %s (attempt %d/%d, waiting %.1fs)",
                    self.service_name, method_name, error_type.value,
                    attempts, self.config.max_retries, delay,
                )
                if delay > 0:
                    await asyncio.sleep(delay)
                continue
            raise ServiceCallError(self.service_name, method_name, cause, attempts) from cause

    # --- Target resolution ---

    def name_of(self, entity: Any) -> str:
        return getattr(entity, "name", "") or ""

    def to_candidate(self, entity: Any) -> EntityCandidate:
        return EntityCandidate(id=entity.id, name=self.name_of(entity), entity_type=self.entity_type)

    def preview(self, entity: Any) -> Optional[str]:
        """Extra text shown in delete confirmations."""
        return None

    def reference_query(self, operation: ParsedEntityOperation) -> Optional[str]:
        for key in self.reference_fields:
            value = operation.parameters.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    async def default_target(
        self, operation: ParsedEntityOperation, user_id: str
    ) -> TargetResolution:
        """Target when neither an id nor a name was given."""
        return TargetResolution(status=TargetStatus.MISSING_REFERENCE)

    async def resolve_target(
        self, operation: ParsedEntityOperation, user_id: str
    ) -> TargetResolution:
        """
        Find the entity a targeted operation refers to.
        May raise ServiceCallError (other than not-found).
        """
        if operation.intent not in TARGETED_INTENTS:
            return TargetResolution(status=TargetStatus.NOT_REQUIRED)

        if operation.entity_id:
            try:
                entity = await self._call_service("get", user_id, operation.entity_id)
            except ServiceCallError as exc:
                if isinstance(exc.cause, EntityNotFoundError):
                    return TargetResolution(status=TargetStatus.NOT_FOUND, query=operation.entity_id)
                raise
            return TargetResolution(
                status=TargetStatus.FOUND,
                candidate=self.to_candidate(entity),
                preview=self.preview(entity),
            )

        query = self.reference_query(operation)
        if query is None:
            return await self.default_target(operation, user_id)

        entities = await self._call_service("list", user_id, None)
        by_id = {e.id: e for e in entities}
        result = self.resolver.resolve(
            self.entity_type, query, [self.to_candidate(e) for e in entities]
        )
        if result.match is not None:
            return TargetResolution(
                status=TargetStatus.FOUND,
                candidate=result.match,
                query=query,
                tier=result.tier,
                preview=self.preview(by_id[result.match.id]),
            )
        if result.is_ambiguous:
            return TargetResolution(
                status=TargetStatus.AMBIGUOUS,
                options=result.ambiguous_matches,
                query=query,
                tier=result.tier,
            )
        return TargetResolution(
            status=TargetStatus.NOT_FOUND,
            alternatives=result.alternatives,
            query=query,
            tier=result.tier,
        )

    def _found(self, entity: Any) -> TargetResolution:
        return TargetResolution(
            status=TargetStatus.FOUND,
            candidate=self.to_candidate(entity),
            preview=self.preview(entity),
        )

    # --- Helpers ---

    @staticmethod
    def _explicit(parameters: Dict[str, Any], *keys: str) -> Dict[str, Any]:
        """The subset of parameters the user actually supplied."""
        return {k: parameters[k] for k in keys if parameters.get(k) is not None}

    def _no_updates(self, fields: str) -> OperationResult:
        return OperationResult(
            success=False,
            message=f"No valid updates provided. You can update {fields}.",
        )
