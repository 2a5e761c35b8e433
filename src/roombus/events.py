"""Broadcast types shared by the router, codec and session registry."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from roombus.core.constants import LOCAL_FLAG

_KNOWN_OPTION_KEYS = frozenset({"rooms", "except", "flags"})


@dataclass
class BroadcastOptions:
    """Targeting for one broadcast.

    ``rooms`` keeps the caller's order; an empty list means the whole namespace.
    ``except_`` holds connection ids that never receive the packet.
    ``extra`` keeps option keys this version does not know so they survive a
    round trip over the bus.
    """

    rooms: list[str] = field(default_factory=list)
    except_: set[str] = field(default_factory=set)
    flags: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_local(self) -> bool:
        """True when the broadcast must not leave this node."""
        return bool(self.flags.get(LOCAL_FLAG))

    @classmethod
    def build(
        cls,
        rooms: Iterable[str] | None = None,
        *,
        except_: Iterable[str] | None = None,
        flags: Mapping[str, Any] | None = None,
    ) -> BroadcastOptions:
        """Convenience constructor accepting any iterables."""
        return cls(
            rooms=list(rooms or []),
            except_=set(except_ or []),
            flags=dict(flags or {}),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BroadcastOptions:
        """Build options from their wire mapping. Missing keys default to empty."""
        if not data:
            return cls()
        rooms = data.get("rooms")
        excluded = data.get("except")
        flags = data.get("flags")
        rooms = [] if rooms is None else rooms
        excluded = [] if excluded is None else excluded
        flags = {} if flags is None else flags
        if not isinstance(rooms, list) or not all(isinstance(r, str) for r in rooms):
            raise TypeError("rooms must be a list of strings")
        if not isinstance(excluded, list):
            raise TypeError("except must be a list")
        if not isinstance(flags, dict):
            raise TypeError("flags must be an object")
        extra = {k: v for k, v in data.items() if k not in _KNOWN_OPTION_KEYS}
        return cls(
            rooms=list(rooms),
            except_={str(c) for c in excluded},
            flags=dict(flags),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire mapping. ``except`` is emitted sorted for a stable payload."""
        data: dict[str, Any] = dict(self.extra)
        data["rooms"] = list(self.rooms)
        data["except"] = sorted(self.except_)
        data["flags"] = dict(self.flags)
        return data


@dataclass
class Envelope:
    """What travels over the bus: origin node, opaque packet, options."""

    origin: str
    packet: dict[str, Any]
    options: BroadcastOptions = field(default_factory=BroadcastOptions)


class DeliveryTarget(Protocol):
    """Session registry hook: hands one packet to one local connection."""

    def deliver(self, connection_id: str, packet: dict[str, Any]) -> None:
        """Enqueue the packet for the connection. Must not block."""
        ...
