from wrangler_bridge.rpc.protocol import DispatchRequest, Fetch, HttpxFetch, TransportResponse
from wrangler_bridge.rpc.channel import BindingConfig, DispatchChannel, DispatchResult, dispatch

__all__ = [
    "BindingConfig",
    "DispatchChannel",
    "DispatchRequest",
    "DispatchResult",
    "Fetch",
    "HttpxFetch",
    "TransportResponse",
    "dispatch",
]
