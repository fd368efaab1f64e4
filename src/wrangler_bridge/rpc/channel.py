"""
Dispatch channel: one operation + parameters -> one POST to the bridge origin.
The channel is a frozen record plus a fetch function; it holds no state across calls.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from wrangler_bridge.bindings.kinds import MODULE_HEADER, NAME_HEADER, BindingKind
from wrangler_bridge.core import codec
from wrangler_bridge.core.errors import (
    BridgeError,
    DispatchFailure,
    FailureKind,
    RemoteOperationError,
)
from wrangler_bridge.rpc.protocol import DispatchRequest, Fetch, TransportResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BindingConfig:
    """Which binding to reach and where: fixed for the lifetime of a facade."""

    origin: str
    kind: BindingKind
    name: str

    def headers(self) -> dict[str, str]:
        return {
            MODULE_HEADER: self.kind.value,
            NAME_HEADER: self.name,
            "Content-Type": codec.MEDIA_TYPE,
        }


@dataclass(frozen=True)
class DispatchResult:
    """Either a successful response or a failure, never both."""

    response: TransportResponse | None = None
    failure: DispatchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def operation_name(operation: str | enum.Enum) -> str:
    return operation.value if isinstance(operation, enum.Enum) else operation


def build_request(config: BindingConfig, operation: str | enum.Enum, parameters: Sequence[Any]) -> DispatchRequest:
    """Envelope {operation, parameters}, codec-encoded, with both routing headers."""
    body = codec.encode({"operation": operation_name(operation), "parameters": list(parameters)})
    return DispatchRequest(body=body, headers=config.headers())


async def dispatch(
    config: BindingConfig,
    fetch: Fetch,
    operation: str | enum.Enum,
    parameters: Sequence[Any] = (),
) -> TransportResponse:
    """
    Send one operation and return the raw response.
    Raises RemoteOperationError (message = body text) on non-success status,
    Transport exceptions (network level) propagate unchanged.
    """
    op = operation_name(operation)
    request = build_request(config, op, parameters)
    try:
        response = await fetch(config.origin, request)
    except (httpx.TransportError, OSError) as e:
        logger.warning("Dispatch %s to %s/%s failed: %s", op, config.kind.value, config.name, e)
        raise

    logger.debug(
        "Dispatch %s to %s/%s -> %s",
        op, config.kind.value, config.name, response.status_code,
    )
    if not response.is_success:
        error = response.text
        logger.warning("Remote %s failed with status %s: %s", op, response.status_code, error)
        raise RemoteOperationError(error, status_code=response.status_code)
    return response


@dataclass(frozen=True)
class DispatchChannel:
    """A BindingConfig bound to a transport. Facades hold one of these and nothing else."""

    config: BindingConfig
    fetch: Fetch

    async def dispatch(self, operation: str | enum.Enum, parameters: Sequence[Any] = ()) -> TransportResponse:
        return await dispatch(self.config, self.fetch, operation, parameters)

    async def try_dispatch(self, operation: str | enum.Enum, parameters: Sequence[Any] = ()) -> DispatchResult:
        """Like dispatch(), but failures come back as DispatchResult.failure instead of raising."""
        try:
            response = await self.dispatch(operation, parameters)
        except BridgeError as e:
            return DispatchResult(failure=e.failure)
        except (httpx.TransportError, OSError) as e:
            return DispatchResult(failure=DispatchFailure(FailureKind.TRANSPORT, str(e) or type(e).__name__))
        return DispatchResult(response=response)
