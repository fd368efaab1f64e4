from wrangler_bridge.core.errors import (
    BindingKindMismatchError,
    BindingNotFoundError,
    BridgeError,
    CodecError,
    DispatchFailure,
    FailureKind,
    RemoteOperationError,
    RoutingError,
    UnsupportedOperationError,
)
from wrangler_bridge.core import codec
from wrangler_bridge.core.config import BridgeSettings

__all__ = [
    "BindingKindMismatchError",
    "BindingNotFoundError",
    "BridgeError",
    "BridgeSettings",
    "CodecError",
    "DispatchFailure",
    "FailureKind",
    "RemoteOperationError",
    "RoutingError",
    "UnsupportedOperationError",
    "codec",
]
