"""
Entity Kernel API: FastAPI endpoints.

Exposes the conversational engine via a REST API for:
- Chat turns (message in, result and pending question out)
- Executing pre-parsed operations
- Session inspection and reset
- Error analytics
- Health and configuration
"""

from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from entity_kernel.conversation.engine import EntityOperationEngine
from entity_kernel.conversation.sessions import SessionStore
from entity_kernel.errors.classifier import ErrorClassifier
from entity_kernel.errors.history import ErrorHistoryStore
from entity_kernel.models.config import EngineConfig
from entity_kernel.models.operation import ParsedEntityOperation
from entity_kernel.models.session import EngineTurn
from entity_kernel.services.registry import ServiceRegistry


# --- Request/Response Models ---

class ChatMessageRequest(BaseModel):
    user_id: str
    message: str
    session_id: Optional[str] = None


class ExecuteOperationRequest(BaseModel):
    user_id: str
    operation: ParsedEntityOperation
    session_id: Optional[str] = None


def _turn_response(turn: EngineTurn) -> dict:
    return {
        "session_id": turn.session.id,
        "state": turn.state.value,
        "result": turn.result.model_dump(mode="json"),
        "pending": turn.session.pending.model_dump(mode="json") if turn.session.pending else None,
    }


# --- Application Factory ---

def create_app(
    services: Optional[ServiceRegistry] = None,
    config: Optional[EngineConfig] = None,
    error_history: Optional[ErrorHistoryStore] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Entity Kernel API",
        description="Conversational entity operations for habits, goals, journal, moods and more",
        version="0.1.0-alpha",
    )

    cfg = config or EngineConfig()
    classifier = ErrorClassifier(cfg, history=error_history)
    engine = EntityOperationEngine(
        services=services or ServiceRegistry.in_memory(),
        config=cfg,
        classifier=classifier,
    )
    sessions = session_store or SessionStore()

    app.state.engine = engine
    app.state.sessions = sessions

    # === CHAT ===

    @app.post("/chat/messages")
    async def post_message(req: ChatMessageRequest):
        """One chat turn: answer the pending question or run a new command."""
        session = sessions.get_or_create(req.user_id, req.session_id)
        if session.user_id != req.user_id:
            raise HTTPException(403, "Session belongs to another user")
        async with sessions.lock(session.id):
            session = sessions.get(session.id) or session
            turn = await engine.handle_message(req.message, session)
            sessions.save(turn.session)
        return _turn_response(turn)

    @app.post("/operations/execute")
    async def execute_operation(req: ExecuteOperationRequest):
        """Execute an operation that was parsed upstream."""
        session = sessions.get_or_create(req.user_id, req.session_id)
        if session.user_id != req.user_id:
            raise HTTPException(403, "Session belongs to another user")
        async with sessions.lock(session.id):
            session = sessions.get(session.id) or session
            turn = await engine.execute(req.operation, session)
            sessions.save(turn.session)
        return _turn_response(turn)

    # === SESSIONS ===

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str):
        session = sessions.get(session_id)
        if session is None:
            raise HTTPException(404, "Session not found")
        return session.model_dump(mode="json")

    @app.delete("/sessions/{session_id}/pending")
    async def reset_pending(session_id: str):
        """Session reset: cancels whatever operation is awaiting the user."""
        if sessions.get(session_id) is None:
            raise HTTPException(404, "Session not found")
        async with sessions.lock(session_id):
            turn = engine.cancel_pending(sessions.get(session_id))
            sessions.save(turn.session)
        return _turn_response(turn)

    # === ERRORS ===

    @app.get("/errors/analytics")
    def error_analytics():
        return engine.classifier.get_error_analytics()

    @app.get("/errors/users/{user_id}")
    def user_error_summary(user_id: str):
        return engine.classifier.get_user_error_summary(user_id)

    # === HEALTH & CONFIG ===

    @app.get("/health")
    def health():
        return engine.health_status()

    @app.get("/config")
    def get_config():
        """Current engine configuration."""
        return engine.config.model_dump()

    @app.put("/config")
    def update_config(config: EngineConfig):
        """Update engine configuration."""
        engine.reconfigure(config)
        return config.model_dump()

    return app


# Default application instance
app = create_app()
