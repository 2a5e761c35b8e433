"""roombus: multi-node room broadcast adapter over NATS."""

from roombus.adapters import AdapterFactory, NatsAdapter, RoomAdapter
from roombus.events import BroadcastOptions, DeliveryTarget, Envelope
from roombus.identity import NodeIdentity

__version__ = "0.1.0"

__all__ = [
    "AdapterFactory",
    "BroadcastOptions",
    "DeliveryTarget",
    "Envelope",
    "NatsAdapter",
    "NodeIdentity",
    "RoomAdapter",
    "__version__",
]
