"""Transport boundary: the surrounding application supplies fetch(origin, request) -> response."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx


@dataclass(frozen=True)
class DispatchRequest:
    """Request descriptor handed to the transport."""

    body: str
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "POST"


@runtime_checkable
class TransportResponse(Protocol):
    """What the channel reads back. httpx.Response satisfies it."""

    status_code: int

    @property
    def is_success(self) -> bool:
        ...

    @property
    def text(self) -> str:
        ...

    @property
    def content(self) -> bytes:
        ...


@runtime_checkable
class Fetch(Protocol):
    """HTTP-capable call. User implements or uses HttpxFetch."""

    async def __call__(self, origin: str, request: DispatchRequest) -> TransportResponse:
        ...


class HttpxFetch:
    """
    Default transport over httpx.AsyncClient.
    Pass a client to share its connection pool (and lifecycle) with the caller;
    otherwise a short-lived client is opened per request.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_options: Any) -> None:
        self._client = client
        self._client_options = client_options

    async def __call__(self, origin: str, request: DispatchRequest) -> httpx.Response:
        if self._client is not None:
            return await self._send(self._client, origin, request)
        async with httpx.AsyncClient(**self._client_options) as client:
            return await self._send(client, origin, request)

    @staticmethod
    async def _send(client: httpx.AsyncClient, origin: str, request: DispatchRequest) -> httpx.Response:
        return await client.request(
            request.method,
            origin,
            headers=request.headers,
            content=request.body.encode("utf-8"),
        )
