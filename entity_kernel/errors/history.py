"""
Per-user error history: the rolling window behind severity escalation.

Two backends: a process-local dict (single instance) and SQLite, for
deployments that share the window between workers. Both keep entries only
for the history window.
"""

import sqlite3
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Protocol

from pydantic import BaseModel

from entity_kernel.models.errors import ChatEntityError


class ErrorRecord(BaseModel):
    user_id: str
    error_type: str
    code: str
    severity: str
    occurred_at: datetime


class ErrorHistoryStore(Protocol):
    def record(self, user_id: str, error: ChatEntityError) -> None: ...

    def since(self, user_id: str, cutoff: datetime) -> List[ErrorRecord]: ...

    def prune(self, cutoff: datetime) -> int: ...

    def user_counts(self) -> Dict[str, int]: ...


def _to_record(user_id: str, error: ChatEntityError) -> ErrorRecord:
    return ErrorRecord(
        user_id=user_id,
        error_type=error.type.value,
        code=error.code,
        severity=error.severity.value,
        occurred_at=error.context.timestamp,
    )


class InMemoryErrorHistory:
    """Error history held in process memory, keyed by user id."""

    def __init__(self):
        self._records: Dict[str, List[ErrorRecord]] = defaultdict(list)

    def record(self, user_id: str, error: ChatEntityError) -> None:
        self._records[user_id].append(_to_record(user_id, error))

    def since(self, user_id: str, cutoff: datetime) -> List[ErrorRecord]:
        return [r for r in self._records.get(user_id, []) if r.occurred_at > cutoff]

    def prune(self, cutoff: datetime) -> int:
        removed = 0
        for user_id in list(self._records):
            kept = [r for r in self._records[user_id] if r.occurred_at > cutoff]
            removed += len(self._records[user_id]) - len(kept)
            if kept:
                self._records[user_id] = kept
            else:
                del self._records[user_id]
        return removed

    def user_counts(self) -> Dict[str, int]:
        return {user_id: len(records) for user_id, records in self._records.items()}


class SqliteErrorHistory:
    """
    Error history in SQLite.
    Prototype: a local file or ":memory:". Production: a shared store with TTL.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS error_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                error_type TEXT NOT NULL,
                code TEXT NOT NULL,
                severity TEXT NOT NULL,
                occurred_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_error_history_user
            ON error_history(user_id, occurred_at)
        """)
        self._conn.commit()

    def record(self, user_id: str, error: ChatEntityError) -> None:
        record = _to_record(user_id, error)
        self._conn.execute(
            """
            INSERT INTO error_history (user_id, error_type, code, severity, occurred_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.user_id,
                record.error_type,
                record.code,
                record.severity,
                record.occurred_at.isoformat(timespec="microseconds"),
            ),
        )
        self._conn.commit()

    def since(self, user_id: str, cutoff: datetime) -> List[ErrorRecord]:
        rows = self._conn.execute(
            """
            SELECT user_id, error_type, code, severity, occurred_at
            FROM error_history
            WHERE user_id = ? AND occurred_at > ?
            ORDER BY occurred_at ASC
            """,
            (user_id, cutoff.isoformat(timespec="microseconds")),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def prune(self, cutoff: datetime) -> int:
        cursor = self._conn.execute(
            "DELETE FROM error_history WHERE occurred_at <= ?",
            (cutoff.isoformat(timespec="microseconds"),),
        )
        self._conn.commit()
        return cursor.rowcount

    def user_counts(self) -> Dict[str, int]:
        rows = self._conn.execute(
            "SELECT user_id, COUNT(*) AS n FROM error_history GROUP BY user_id"
        ).fetchall()
        return {row["user_id"]: row["n"] for row in rows}

    def _row_to_record(self, row: sqlite3.Row) -> ErrorRecord:
        return ErrorRecord(
            user_id=row["user_id"],
            error_type=row["error_type"],
            code=row["code"],
            severity=row["severity"],
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
        )

    def close(self) -> None:
        self._conn.close()
