"""Binding kinds, routing headers and the operation identifiers both sides agree on."""
from __future__ import annotations

import enum

MODULE_HEADER = "X-BRIDGE-BINDING-MODULE"
NAME_HEADER = "X-BRIDGE-BINDING-NAME"


class BindingKind(str, enum.Enum):
    """Tag carried next to every binding; value is what goes into MODULE_HEADER."""

    DATABASE = "D1"
    QUEUE = "QUEUE"

    @classmethod
    def parse(cls, value: str) -> BindingKind:
        """Accept the header value ("D1") or the member name ("database"), case-insensitive."""
        text = value.strip().upper()
        for kind in cls:
            if text in (kind.value, kind.name):
                return kind
        raise ValueError(f"Unknown binding kind {value!r}")


class Operation(str, enum.Enum):
    """Operation identifiers, namespaced "<Kind>.<method>"."""

    DATABASE_DUMP = "Database.dump"
    DATABASE_EXEC = "Database.exec"
    DATABASE_BATCH = "Database.batch"
    STATEMENT_FIRST = "PreparedStatement.first"
    STATEMENT_ALL = "PreparedStatement.all"
    STATEMENT_RUN = "PreparedStatement.run"
    STATEMENT_RAW = "PreparedStatement.raw"
    QUEUE_SEND = "Queue.send"
    QUEUE_SEND_BATCH = "Queue.sendBatch"
