"""Shared fakes: a recording transport and an in-process bridge over ASGI."""
from __future__ import annotations

import contextlib
from typing import Any, AsyncIterator, Callable

import httpx
import pytest

from wrangler_bridge.core import codec
from wrangler_bridge.remote.app import LiveBinding, create_bridge_app
from wrangler_bridge.remote.handler import decode_envelope
from wrangler_bridge.rpc.protocol import DispatchRequest, HttpxFetch

ORIGIN = "http://bridge.test/"


class RecordingFetch:
    """Transport fake: records every request, answers with respond(origin, request)."""

    def __init__(self, respond: Callable[[str, DispatchRequest], httpx.Response] | None = None) -> None:
        self.calls: list[tuple[str, DispatchRequest]] = []
        self._respond = respond or (lambda origin, request: httpx.Response(200, content=b""))

    async def __call__(self, origin: str, request: DispatchRequest) -> httpx.Response:
        self.calls.append((origin, request))
        return self._respond(origin, request)

    def envelope(self, index: int = -1) -> tuple[str, list[Any]]:
        return decode_envelope(self.calls[index][1].body)


def structured(value: Any, status_code: int = 200) -> Callable[[str, DispatchRequest], httpx.Response]:
    return lambda origin, request: httpx.Response(status_code, text=codec.encode(value))


def failing(message: str, status_code: int = 500) -> Callable[[str, DispatchRequest], httpx.Response]:
    return lambda origin, request: httpx.Response(status_code, text=message)


@contextlib.asynccontextmanager
async def bridge(bindings: list[LiveBinding]) -> AsyncIterator[HttpxFetch]:
    """HttpxFetch wired straight into a bridge app, no sockets involved."""
    app = create_bridge_app(bindings)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as client:
        yield HttpxFetch(client)


@pytest.fixture
def recording_fetch() -> RecordingFetch:
    return RecordingFetch()
