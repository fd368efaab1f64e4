"""Queue facade: send/sendBatch over the dispatch channel. Fire-and-forget for the caller."""
from __future__ import annotations

from typing import Any, Iterable, TypedDict

from wrangler_bridge.bindings.kinds import BindingKind, Operation
from wrangler_bridge.rpc.channel import BindingConfig, DispatchChannel
from wrangler_bridge.rpc.protocol import Fetch


class QueueSendOptions(TypedDict, total=False):
    """Hints the remote queue understands; the bridge passes them through untouched."""

    contentType: str
    delaySeconds: int


class MessageSendRequest(TypedDict, total=False):
    body: Any
    contentType: str
    delaySeconds: int


class QueueBinding:
    """Caller-side handle to a remote queue binding."""

    kind = BindingKind.QUEUE

    def __init__(self, origin: str, binding_name: str, fetch: Fetch) -> None:
        self._channel = DispatchChannel(BindingConfig(origin, self.kind, binding_name), fetch)

    @property
    def config(self) -> BindingConfig:
        return self._channel.config

    async def send(self, body: Any, options: QueueSendOptions | None = None) -> None:
        await self._channel.dispatch(Operation.QUEUE_SEND, [body, options])

    async def send_batch(self, messages: Iterable[MessageSendRequest]) -> None:
        await self._channel.dispatch(Operation.QUEUE_SEND_BATCH, [list(messages)])
