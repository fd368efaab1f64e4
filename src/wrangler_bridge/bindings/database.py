"""
Database facade: prepare/exec/dump/batch over the dispatch channel.
Mirrors the D1 client API; statements execute remotely only when dispatched.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from wrangler_bridge.bindings.kinds import BindingKind, Operation
from wrangler_bridge.core import codec
from wrangler_bridge.rpc.channel import BindingConfig, DispatchChannel
from wrangler_bridge.rpc.protocol import Fetch, TransportResponse


def _decode(response: TransportResponse) -> Any:
    return codec.decode(response.text)


@dataclass(frozen=True)
class PreparedStatement:
    """
    Immutable (query, params) pair. bind() returns a new statement; the
    original is never touched. first/all/run/raw need a statement created
    through DatabaseBinding.prepare().
    """

    query: str
    params: tuple[Any, ...] = ()
    channel: DispatchChannel | None = field(default=None, compare=False, repr=False)

    def bind(self, *values: Any) -> PreparedStatement:
        return replace(self, params=tuple(values))

    def to_wire(self) -> list[Any]:
        """[query, params] pair as sent inside a batch."""
        return [self.query, list(self.params)]

    def _channel(self) -> DispatchChannel:
        if self.channel is None:
            raise RuntimeError("Statement is not attached to a database; use DatabaseBinding.prepare()")
        return self.channel

    async def first(self, column: str | None = None) -> Any:
        """First row as a dict (or one column of it); None when there are no rows."""
        res = await self._channel().dispatch(
            Operation.STATEMENT_FIRST, [self.query, list(self.params), column]
        )
        return _decode(res)

    async def all(self) -> dict[str, Any]:
        res = await self._channel().dispatch(Operation.STATEMENT_ALL, self.to_wire())
        return _decode(res)

    async def run(self) -> dict[str, Any]:
        res = await self._channel().dispatch(Operation.STATEMENT_RUN, self.to_wire())
        return _decode(res)

    async def raw(self) -> list[list[Any]]:
        res = await self._channel().dispatch(Operation.STATEMENT_RAW, self.to_wire())
        return _decode(res)


class DatabaseBinding:
    """
    Caller-side handle to a remote database binding.
    Construct once per binding (origin + name + fetch are fixed) and reuse.
    """

    kind = BindingKind.DATABASE

    def __init__(self, origin: str, binding_name: str, fetch: Fetch) -> None:
        self._channel = DispatchChannel(BindingConfig(origin, self.kind, binding_name), fetch)

    @property
    def config(self) -> BindingConfig:
        return self._channel.config

    def prepare(self, query: str) -> PreparedStatement:
        return PreparedStatement(query, (), channel=self._channel)

    async def dump(self) -> bytes:
        """Serialized database file, as raw bytes."""
        res = await self._channel.dispatch(Operation.DATABASE_DUMP, [])
        return res.content

    async def exec(self, query: str) -> dict[str, Any]:
        res = await self._channel.dispatch(Operation.DATABASE_EXEC, [query])
        return _decode(res)

    async def batch(self, statements: Iterable[PreparedStatement]) -> list[dict[str, Any]]:
        """Run statements remotely in the given order; the whole batch succeeds or fails."""
        res = await self._channel.dispatch(
            Operation.DATABASE_BATCH,
            [stmt.to_wire() for stmt in statements],
        )
        return _decode(res)
