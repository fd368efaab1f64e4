"""Bridge errors: every failure carries a DispatchFailure so callers can branch on kind."""
from __future__ import annotations

import enum
from dataclasses import dataclass


class FailureKind(str, enum.Enum):
    """What went wrong on a dispatch."""

    TRANSPORT = "transport"
    REMOTE = "remote"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    ROUTING = "routing"
    BINDING_NOT_FOUND = "binding_not_found"
    BINDING_KIND_MISMATCH = "binding_kind_mismatch"
    CODEC = "codec"


@dataclass(frozen=True)
class DispatchFailure:
    """Discriminated failure value: kind + human-readable message + raw body (if any)."""

    kind: FailureKind
    message: str
    raw_body: str | None = None


class BridgeError(Exception):
    """Base class for all bridge errors."""

    kind: FailureKind = FailureKind.REMOTE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def failure(self) -> DispatchFailure:
        return DispatchFailure(self.kind, self.message)


class RemoteOperationError(BridgeError):
    """
    The remote side answered with a non-success status.
    message is the response body verbatim.
    """

    kind = FailureKind.REMOTE

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def raw_body(self) -> str:
        return self.message

    @property
    def failure(self) -> DispatchFailure:
        return DispatchFailure(self.kind, self.message, raw_body=self.message)


class UnsupportedOperationError(BridgeError):
    """Remote handler got an operation identifier outside its table."""

    kind = FailureKind.UNSUPPORTED_OPERATION

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}() is not supported.")


class RoutingError(BridgeError):
    """Request cannot be routed to a live binding: routing headers missing or unusable."""

    kind = FailureKind.ROUTING


class BindingNotFoundError(RoutingError):
    """Remote side has no live binding under the requested name."""

    kind = FailureKind.BINDING_NOT_FOUND


class BindingKindMismatchError(RoutingError):
    """Routing header names a kind different from the one the binding was declared with."""

    kind = FailureKind.BINDING_KIND_MISMATCH


class CodecError(BridgeError):
    """Value could not be encoded, or text could not be decoded."""

    kind = FailureKind.CODEC
