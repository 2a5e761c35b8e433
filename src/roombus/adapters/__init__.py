"""Room adapters. NatsAdapter implements base.RoomAdapter."""

from roombus.adapters.base import RoomAdapter
from roombus.adapters.nats import AdapterFactory, NatsAdapter

__all__ = ["AdapterFactory", "NatsAdapter", "RoomAdapter"]
