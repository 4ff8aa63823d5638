"""Conversation session state, passed into and returned from the engine."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from entity_kernel.models.operation import GateState, OperationResult, PendingOperation


class ConversationSession(BaseModel):
    """
    Per-conversation state. Holds at most one PendingOperation; the engine
    returns an updated copy instead of keeping state of its own.
    """
    id: str
    user_id: str
    pending: Optional[PendingOperation] = None
    last_state: Optional[GateState] = None
    turn_count: int = 0
    updated_at: Optional[datetime] = None


class EngineTurn(BaseModel):
    """What one execute / handle_message call produces."""
    result: OperationResult
    session: ConversationSession
    state: GateState
