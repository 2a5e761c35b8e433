"""Core constants and errors."""

from roombus.core.errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    PublishError,
    RoomBusError,
    SubscribeError,
    TransportConnectError,
    TransportError,
)

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "PublishError",
    "RoomBusError",
    "SubscribeError",
    "TransportConnectError",
    "TransportError",
]
