from wrangler_bridge.remote.handler import HandlerResult, HandlerState, RemoteDispatchHandler
from wrangler_bridge.remote.app import LiveBinding, create_bridge_app

__all__ = [
    "HandlerResult",
    "HandlerState",
    "LiveBinding",
    "RemoteDispatchHandler",
    "create_bridge_app",
]
