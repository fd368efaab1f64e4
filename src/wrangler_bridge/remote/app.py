"""
Bridge endpoint as a Starlette app: one POST route, routing headers pick the live binding.
Failures are answered as text/plain with the message as body; the caller turns
that into RemoteOperationError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from wrangler_bridge.bindings.kinds import MODULE_HEADER, NAME_HEADER, BindingKind
from wrangler_bridge.core.errors import (
    BindingKindMismatchError,
    BindingNotFoundError,
    BridgeError,
    RoutingError,
)
from wrangler_bridge.remote.handler import RemoteDispatchHandler, decode_envelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveBinding:
    """A live binding object tagged with its kind at registration."""

    name: str
    kind: BindingKind
    binding: Any


def _error(error: BridgeError | Exception, status_code: int) -> PlainTextResponse:
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return PlainTextResponse(message, status_code=status_code)


def _resolve_binding(request: Request, registry: dict[str, LiveBinding]) -> LiveBinding:
    name = request.headers.get(NAME_HEADER)
    module = request.headers.get(MODULE_HEADER)
    if not name or not module:
        raise RoutingError(f"Both {MODULE_HEADER} and {NAME_HEADER} headers are required")
    live = registry.get(name)
    if live is None:
        raise BindingNotFoundError(f"Binding {name!r} is not available")
    try:
        kind = BindingKind.parse(module)
    except ValueError as e:
        raise BindingKindMismatchError(str(e)) from e
    if kind is not live.kind:
        raise BindingKindMismatchError(
            f"Binding {name!r} is a {live.kind.value} binding, not {kind.value}"
        )
    return live


def create_bridge_app(bindings: Iterable[LiveBinding], path: str = "/", debug: bool = False) -> Starlette:
    """Serve the given live bindings at POST {path}."""
    registry = {b.name: b for b in bindings}

    async def endpoint(request: Request) -> Response:
        try:
            live = _resolve_binding(request, registry)
            operation, parameters = decode_envelope(await request.body())
        except BindingNotFoundError as e:
            return _error(e, 404)
        except BridgeError as e:
            return _error(e, 400)

        handler = RemoteDispatchHandler(live.binding, live.kind)
        try:
            result = await handler.handle(operation, parameters)
        except BridgeError as e:
            logger.warning("%s on %s failed: %s", operation, live.name, e.message)
            return _error(e, 500)
        except Exception as e:
            logger.exception("%s on %s raised", operation, live.name)
            return _error(e, 500)
        logger.debug("%s on %s -> %d bytes", operation, live.name, len(result.body))
        return Response(result.body, media_type=result.media_type)

    return Starlette(debug=debug, routes=[Route(path, endpoint, methods=["POST"])])
