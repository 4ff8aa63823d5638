"""Conversation sessions held by id, each processed one turn at a time."""

import asyncio
import weakref
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import uuid4

from entity_kernel.models.session import ConversationSession


class SessionStore:
    """
    In-process session store.
    Prototype: a dict. Production: a shared store keyed by session id.

    Sessions idle longer than `idle_ttl` are dropped when a new one is
    created. A session's lock lives only while a turn holds it.
    """

    def __init__(self, idle_ttl: timedelta = timedelta(hours=24)):
        self.idle_ttl = idle_ttl
        self._sessions: Dict[str, ConversationSession] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, session_id: str) -> Optional[ConversationSession]:
        return self._sessions.get(session_id)

    def create(self, user_id: str, session_id: Optional[str] = None) -> ConversationSession:
        now = datetime.utcnow()
        self.prune(now)
        session = ConversationSession(
            id=session_id or f"session_{uuid4().hex[:12]}",
            user_id=user_id,
            updated_at=now,
        )
        self._sessions[session.id] = session
        return session

    def get_or_create(self, user_id: str, session_id: Optional[str] = None) -> ConversationSession:
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        return self.create(user_id, session_id)

    def save(self, session: ConversationSession) -> None:
        self._sessions[session.id] = session

    def prune(self, current_time: Optional[datetime] = None) -> int:
        """Drop sessions not updated within idle_ttl. Returns how many were dropped."""
        cutoff = (current_time or datetime.utcnow()) - self.idle_ttl
        expired = [
            sid for sid, s in self._sessions.items()
            if s.updated_at is not None and s.updated_at < cutoff
        ]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def lock(self, session_id: str) -> asyncio.Lock:
        """The lock serializing turns within one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock
