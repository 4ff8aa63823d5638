"""
Entity Operation Router: the single seam to the seven entity domains.

Behavioral Contract:
- Selects the handler keyed by entity type; the handler selects by intent
- Construction fails unless every EntityType has a handler
- Unknown entity types produce a static "not supported" result, never an exception
- Holds no logic beyond the dispatch table
"""

from typing import Dict, Optional

from entity_kernel.errors.classifier import ErrorClassifier
from entity_kernel.handlers.base import BaseEntityHandler
from entity_kernel.handlers.belief import BeliefHandler
from entity_kernel.handlers.goal import GoalHandler
from entity_kernel.handlers.habit import HabitHandler
from entity_kernel.handlers.journal import JournalHandler
from entity_kernel.handlers.mood import MoodHandler
from entity_kernel.handlers.routine import RoutineHandler
from entity_kernel.handlers.synchronicity import SynchronicityHandler
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.operation import EntityType, GateState, OperationResult, ParsedEntityOperation
from entity_kernel.resolution.resolver import FuzzyEntityResolver
from entity_kernel.services.registry import ServiceRegistry


HANDLER_CLASSES = {
    EntityType.HABIT: HabitHandler,
    EntityType.GOAL: GoalHandler,
    EntityType.JOURNAL: JournalHandler,
    EntityType.MOOD: MoodHandler,
    EntityType.ROUTINE: RoutineHandler,
    EntityType.BELIEF: BeliefHandler,
    EntityType.SYNCHRONICITY: SynchronicityHandler,
}


class RouterConfigurationError(Exception):
    """Raised when the handler table does not cover every entity type."""
    pass


class EntityOperationRouter:
    """Dispatches Ready operations to the handler for their entity type."""

    def __init__(self, handlers: Dict[EntityType, BaseEntityHandler]):
        missing = [t.value for t in EntityType if t not in handlers]
        if missing:
            raise RouterConfigurationError(
                f"No handler registered for entity types: {', '.join(missing)}"
            )
        self._handlers = dict(handlers)

    @classmethod
    def build(
        cls,
        services: ServiceRegistry,
        classifier: ErrorClassifier,
        config: Optional[EngineConfig] = None,
    ) -> "EntityOperationRouter":
        """Wire one handler per entity type around the given services."""
        config = config or classifier.config
        resolver = FuzzyEntityResolver(
            similarity_threshold=config.similarity_threshold,
            max_alternatives=config.max_alternatives,
        )
        return cls({
            entity_type: handler_cls(
                services.for_type(entity_type), classifier, resolver=resolver, config=config
            )
            for entity_type, handler_cls in HANDLER_CLASSES.items()
        })

    def handler_for(self, entity_type: EntityType) -> Optional[BaseEntityHandler]:
        return self._handlers.get(entity_type)

    async def dispatch(self, operation: ParsedEntityOperation, user_id: str) -> OperationResult:
        handler = self._handlers.get(operation.entity_type)
        if handler is None:
            return OperationResult(
                success=False,
                message=f"Entity type {operation.entity_type.value} not yet supported for chat operations",
                state=GateState.FAILED,
            )
        return await handler.handle(operation, user_id)
