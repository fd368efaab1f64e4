"""
Remote dispatch handler: runs next to the live binding, executes one operation per request.
Each binding kind has a fixed operation table; anything outside it is rejected.
"""
from __future__ import annotations

import asyncio
import enum
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence, runtime_checkable

from wrangler_bridge.bindings.kinds import BindingKind, Operation
from wrangler_bridge.core import codec
from wrangler_bridge.core.errors import CodecError, UnsupportedOperationError

BINARY_MEDIA_TYPE = "application/octet-stream"


@runtime_checkable
class LiveStatement(Protocol):
    """Subset of a D1 prepared statement the handler drives."""

    def bind(self, *values: Any) -> "LiveStatement":
        ...

    def first(self, column: str | None = None) -> Any:
        ...

    def all(self) -> Any:
        ...

    def run(self) -> Any:
        ...

    def raw(self) -> Any:
        ...


@runtime_checkable
class LiveDatabase(Protocol):
    """Interface expected from a database binding inside the runtime. Methods may be sync or async."""

    def prepare(self, query: str) -> LiveStatement:
        ...

    def dump(self) -> Any:
        ...

    def exec(self, query: str) -> Any:
        ...

    def batch(self, statements: list[LiveStatement]) -> Any:
        ...


@runtime_checkable
class LiveQueue(Protocol):
    def send(self, body: Any, options: dict[str, Any] | None = None) -> Any:
        ...

    def send_batch(self, messages: list[dict[str, Any]]) -> Any:
        ...


class HandlerState(enum.Enum):
    IDLE = "idle"
    EXECUTING = "executing"


@dataclass(frozen=True)
class HandlerResult:
    """Response body plus how to label it."""

    body: bytes
    media_type: str = codec.MEDIA_TYPE


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    """Coroutine functions are awaited on the loop; blocking ones run in a worker thread."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    return await _resolve(await asyncio.to_thread(fn, *args))


def _structured(value: Any) -> HandlerResult:
    return HandlerResult(codec.encode(value).encode("utf-8"))


def _statement(db: LiveDatabase, query: str, params: Sequence[Any]) -> LiveStatement:
    return db.prepare(query).bind(*params)


async def _db_dump(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    data = await _call(db.dump)
    return HandlerResult(bytes(data), BINARY_MEDIA_TYPE)


async def _db_exec(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    (query,) = parameters
    return _structured(await _call(db.exec, query))


async def _db_batch(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    statements = [_statement(db, query, params) for query, params in parameters]
    return _structured(await _call(db.batch, statements))


async def _stmt_first(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    query, params, column = parameters
    return _structured(await _call(_statement(db, query, params).first, column))


async def _stmt_all(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    query, params = parameters
    return _structured(await _call(_statement(db, query, params).all))


async def _stmt_run(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    query, params = parameters
    return _structured(await _call(_statement(db, query, params).run))


async def _stmt_raw(db: LiveDatabase, parameters: list[Any]) -> HandlerResult:
    query, params = parameters
    return _structured(await _call(_statement(db, query, params).raw))


async def _queue_send(queue: LiveQueue, parameters: list[Any]) -> HandlerResult:
    body, options = parameters
    await _call(queue.send, body, options)
    return HandlerResult(b"", "text/plain")


async def _queue_send_batch(queue: LiveQueue, parameters: list[Any]) -> HandlerResult:
    (messages,) = parameters
    await _call(queue.send_batch, list(messages))
    return HandlerResult(b"", "text/plain")


OperationFn = Callable[[Any, list[Any]], Awaitable[HandlerResult]]

OPERATIONS: dict[BindingKind, dict[str, OperationFn]] = {
    BindingKind.DATABASE: {
        Operation.DATABASE_DUMP.value: _db_dump,
        Operation.DATABASE_EXEC.value: _db_exec,
        Operation.DATABASE_BATCH.value: _db_batch,
        Operation.STATEMENT_FIRST.value: _stmt_first,
        Operation.STATEMENT_ALL.value: _stmt_all,
        Operation.STATEMENT_RUN.value: _stmt_run,
        Operation.STATEMENT_RAW.value: _stmt_raw,
    },
    BindingKind.QUEUE: {
        Operation.QUEUE_SEND.value: _queue_send,
        Operation.QUEUE_SEND_BATCH.value: _queue_send_batch,
    },
}


def decode_envelope(payload: str | bytes) -> tuple[str, list[Any]]:
    """Read {operation, parameters} out of a request body."""
    envelope = codec.decode(payload)
    if not isinstance(envelope, dict):
        raise CodecError("Envelope must be an object")
    operation = envelope.get("operation")
    parameters = envelope.get("parameters")
    if not isinstance(operation, str) or not isinstance(parameters, list):
        raise CodecError("Envelope needs a string 'operation' and a list 'parameters'")
    return operation, parameters


class RemoteDispatchHandler:
    """
    Executes operations against one live binding of an explicitly declared kind.
    IDLE until handle() is called, EXECUTING while the operation runs.
    """

    def __init__(self, binding: Any, kind: BindingKind) -> None:
        self.binding = binding
        self.kind = kind
        self.state = HandlerState.IDLE

    def supports(self, operation: str) -> bool:
        return operation in OPERATIONS[self.kind]

    async def handle(self, operation: str, parameters: Sequence[Any]) -> HandlerResult:
        fn = OPERATIONS[self.kind].get(operation)
        if fn is None:
            raise UnsupportedOperationError(operation)
        if self.state is HandlerState.EXECUTING:
            raise RuntimeError("Handler is already executing an operation")
        self.state = HandlerState.EXECUTING
        try:
            return await fn(self.binding, list(parameters))
        finally:
            self.state = HandlerState.IDLE
