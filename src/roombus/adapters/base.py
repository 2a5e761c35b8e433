"""Adapter interface consumed by the session registry."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from roombus.events import BroadcastOptions


class RoomAdapter(Protocol):
    """join/leave/leave_all/broadcast plus lifecycle."""

    @property
    def namespace(self) -> str:
        """Namespace this adapter serves."""
        ...

    async def start(self) -> None:
        """Subscribe the namespace channel."""
        ...

    async def stop(self) -> None:
        """Release all subscriptions."""
        ...

    async def join(self, connection_id: str, room: str | None = None) -> None: ...

    async def join_many(self, connection_id: str, rooms: Iterable[str]) -> None: ...

    async def leave(self, connection_id: str, room: str | None = None) -> None: ...

    async def leave_all(self, connection_id: str) -> None: ...

    async def broadcast(
        self,
        packet: dict[str, Any],
        options: BroadcastOptions | None = None,
    ) -> int: ...
