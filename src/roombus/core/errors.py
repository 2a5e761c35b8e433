"""Adapter domain exceptions."""

from __future__ import annotations


class RoomBusError(Exception):
    """Base for adapter domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class ConfigurationError(RoomBusError):
    """Config validation or load failure."""


class TransportError(RoomBusError):
    """Bus transport call failed."""


class TransportConnectError(TransportError):
    """Could not establish the bus connection (fatal at startup)."""


class SubscribeError(TransportError):
    """Subscribe or unsubscribe on a bus channel failed."""


class PublishError(TransportError):
    """Publishing an envelope to the bus failed."""


class DecodeError(RoomBusError):
    """Inbound bus payload is not a valid envelope."""


class EncodeError(RoomBusError):
    """Outbound packet cannot be serialized into an envelope."""
