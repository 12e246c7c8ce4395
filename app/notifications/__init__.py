from .events import OrderEvent
from .dispatcher import build_push, dispatch_order_event

__all__ = [
    "OrderEvent",
    "build_push",
    "dispatch_order_event",
]
