"""
wrangler-bridge: call runtime-only bindings (D1 databases, queues) from outside the runtime.
Every binding method becomes one HTTP POST to a bridge endpoint that owns the live binding.
"""
from wrangler_bridge.core import BridgeError, BridgeSettings, RemoteOperationError, codec
from wrangler_bridge.bindings import (
    BindingKind,
    DatabaseBinding,
    PreparedStatement,
    QueueBinding,
)
from wrangler_bridge.bindings.module import BindingsModule
from wrangler_bridge.rpc import DispatchChannel, HttpxFetch

__all__ = [
    "BindingKind",
    "BindingsModule",
    "BridgeError",
    "BridgeSettings",
    "DatabaseBinding",
    "DispatchChannel",
    "HttpxFetch",
    "PreparedStatement",
    "QueueBinding",
    "RemoteOperationError",
    "codec",
]
