"""Envelope codec: ``[origin, packet, options]`` as UTF-8 JSON."""

from __future__ import annotations

import json
from typing import Any

from roombus.core.errors import DecodeError, EncodeError
from roombus.events import BroadcastOptions, Envelope


def encode(origin: str, packet: dict[str, Any], options: BroadcastOptions) -> bytes:
    """Serialize an envelope for publishing.

    Raises:
        EncodeError: packet or options hold values JSON cannot carry (bytes, sets, cycles).
    """
    try:
        text = json.dumps(
            [origin, packet, options.to_dict()],
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as exc:
        raise EncodeError(
            "packet is not JSON-serializable",
            code="unencodable_packet",
            details={"origin": origin},
            original_error=exc,
        ) from exc
    return text.encode("utf-8")


def encode_envelope(envelope: Envelope) -> bytes:
    return encode(envelope.origin, envelope.packet, envelope.options)


def decode(data: bytes | str) -> Envelope:
    """Parse a bus payload into an Envelope.

    Extra trailing elements are ignored; unknown packet keys pass through and
    unknown option keys land in ``BroadcastOptions.extra``.

    Raises:
        DecodeError: payload is not a well-formed envelope.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        raw = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
        raise DecodeError(
            "envelope is not valid JSON",
            code="invalid_json",
            original_error=exc,
        ) from exc

    if not isinstance(raw, list) or len(raw) < 3:
        raise DecodeError(
            "envelope must be an array of [origin, packet, options]",
            code="invalid_shape",
            details={"type": type(raw).__name__},
        )

    origin, packet, options = raw[0], raw[1], raw[2]
    if not isinstance(origin, str):
        raise DecodeError("envelope origin must be a string", code="invalid_origin")
    if not isinstance(packet, dict):
        raise DecodeError("envelope packet must be an object", code="invalid_packet")
    if options is not None and not isinstance(options, dict):
        raise DecodeError("envelope options must be an object", code="invalid_options")

    try:
        opts = BroadcastOptions.from_dict(options)
    except TypeError as exc:
        raise DecodeError(str(exc), code="invalid_options", original_error=exc) from exc

    return Envelope(origin=origin, packet=packet, options=opts)
