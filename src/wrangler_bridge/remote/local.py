"""
Local live bindings: a sqlite-backed database and an in-memory queue.
Shaped like the runtime's D1 and Queue bindings so the bridge can be served without it.
"""
from __future__ import annotations

import contextlib
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterator


def _meta(cursor: sqlite3.Cursor, started: float, rows_read: int) -> dict[str, Any]:
    return {
        "duration": round((time.perf_counter() - started) * 1000, 3),
        "changes": max(cursor.rowcount, 0),
        "last_row_id": cursor.lastrowid,
        "rows_read": rows_read,
    }


def split_statements(script: str) -> list[str]:
    """Cut a script into complete statements; semicolons inside literals do not split."""
    statements: list[str] = []
    buffer = ""
    for piece in script.split(";"):
        buffer += piece + ";"
        if sqlite3.complete_statement(buffer):
            if buffer.strip(" \t\r\n;"):
                statements.append(buffer.strip())
            buffer = ""
    if buffer.strip(" \t\r\n;"):
        statements.append(buffer.rstrip(";").strip())
    return statements


class LocalStatement:
    """Prepared statement over SqliteDatabase; bind() returns a new statement."""

    def __init__(self, db: SqliteDatabase, query: str, params: tuple[Any, ...] = ()) -> None:
        self._db = db
        self.query = query
        self.params = params

    def bind(self, *values: Any) -> LocalStatement:
        return LocalStatement(self._db, self.query, tuple(values))

    def all(self) -> dict[str, Any]:
        with self._db.lock:
            return self._db.execute(self)

    def run(self) -> dict[str, Any]:
        return self.all()

    def first(self, column: str | None = None) -> Any:
        rows = self.all()["results"]
        if not rows:
            return None
        row = rows[0]
        if column is None:
            return row
        if column not in row:
            raise KeyError(f"Column {column!r} not found")
        return row[column]

    def raw(self) -> list[list[Any]]:
        with self._db.lock:
            cursor = self._db.connection.execute(self.query, self.params)
            return [list(r) for r in cursor.fetchall()]


class SqliteDatabase:
    """
    D1-shaped database on sqlite3. ":memory:" by default.
    Results use the D1 shape: {"results": [...], "success": True, "meta": {...}}.

    The connection runs in autocommit mode; batch() and exec() open their own
    transaction so DDL is rolled back together with everything else.
    """

    def __init__(self, path: str = ":memory:") -> None:
        self.connection = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self.connection.row_factory = sqlite3.Row
        self.lock = threading.RLock()

    def close(self) -> None:
        self.connection.close()

    def prepare(self, query: str) -> LocalStatement:
        return LocalStatement(self, query)

    def execute(self, statement: LocalStatement) -> dict[str, Any]:
        started = time.perf_counter()
        cursor = self.connection.execute(statement.query, statement.params)
        rows = [dict(r) for r in cursor.fetchall()]
        return {"results": rows, "success": True, "meta": _meta(cursor, started, len(rows))}

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """BEGIN ... COMMIT, or ROLLBACK if the block raises."""
        with self.lock:
            self.connection.execute("BEGIN")
            try:
                yield self.connection
            except Exception:
                if self.connection.in_transaction:
                    self.connection.execute("ROLLBACK")
                raise
            self.connection.execute("COMMIT")

    def batch(self, statements: list[LocalStatement]) -> list[dict[str, Any]]:
        """All statements in one transaction, in order; any failure rolls the whole batch back."""
        with self.transaction():
            return [self.execute(stmt) for stmt in statements]

    def exec(self, query: str) -> dict[str, Any]:
        """Run one or more raw statements in one transaction; returns {"count", "duration"}."""
        started = time.perf_counter()
        statements = split_statements(query)
        with self.transaction() as connection:
            for statement in statements:
                connection.execute(statement)
        return {"count": len(statements), "duration": round((time.perf_counter() - started) * 1000, 3)}

    def dump(self) -> bytes:
        """Serialized database file."""
        with self.lock:
            return self.connection.serialize()


@dataclass
class QueuedMessage:
    body: Any
    content_type: str | None = None
    delay_seconds: int | None = None


@dataclass
class InMemoryQueue:
    """Records sent messages in order; stands in for a queue producer binding."""

    messages: list[QueuedMessage] = field(default_factory=list)

    def send(self, body: Any, options: dict[str, Any] | None = None) -> None:
        options = options or {}
        self.messages.append(
            QueuedMessage(body, options.get("contentType"), options.get("delaySeconds"))
        )

    def send_batch(self, messages: list[dict[str, Any]]) -> None:
        batch = [
            QueuedMessage(m["body"], m.get("contentType"), m.get("delaySeconds"))
            for m in messages
        ]
        self.messages.extend(batch)
