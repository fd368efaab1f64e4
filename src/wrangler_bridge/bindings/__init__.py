from wrangler_bridge.bindings.kinds import BindingKind, Operation
from wrangler_bridge.bindings.database import DatabaseBinding, PreparedStatement
from wrangler_bridge.bindings.queue import MessageSendRequest, QueueBinding, QueueSendOptions

__all__ = [
    "BindingKind",
    "DatabaseBinding",
    "MessageSendRequest",
    "Operation",
    "PreparedStatement",
    "QueueBinding",
    "QueueSendOptions",
]
