"""Membership table: connection id <-> room index for one adapter."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from loguru import logger


class MembershipTable:
    """Bidirectional connection/room index.

    Indices:
    - rooms: room -> set[connection_id]
    - sids: connection_id -> set[room]

    A connection present in ``sids`` is on the namespace-default broadcast
    path even when its room set is empty. Every read returns a frozen
    snapshot taken under the lock; unknown keys read as empty.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[str]] = {}
        self._sids: dict[str, set[str]] = {}
        self._lock = threading.RLock()

    # Mutations

    def join(self, connection_id: str, room: str | None) -> bool:
        """Add a connection to a room. Returns True if it is the room's first member."""
        with self._lock:
            rooms = self._sids.setdefault(connection_id, set())
            if room is None:
                return False
            members = self._rooms.get(room)
            first = not members
            if members is None:
                members = self._rooms[room] = set()
            members.add(connection_id)
            rooms.add(room)
        if first:
            logger.debug("Room {} created by {}", room, connection_id)
        return first

    def leave(self, connection_id: str, room: str | None) -> bool:
        """Remove a connection from a room. Returns True if the room is now empty."""
        if room is None:
            return False
        with self._lock:
            rooms = self._sids.get(connection_id)
            if rooms is not None:
                rooms.discard(room)
            members = self._rooms.get(room)
            if members is None:
                return True
            members.discard(connection_id)
            if members:
                return False
            del self._rooms[room]
        logger.debug("Room {} destroyed (last member {} left)", room, connection_id)
        return True

    def leave_all(self, connection_id: str) -> list[str]:
        """Drop a connection entirely. Returns the rooms it left empty."""
        emptied: list[str] = []
        with self._lock:
            for room in sorted(self._sids.get(connection_id, ())):
                if self.leave(connection_id, room):
                    emptied.append(room)
            self._sids.pop(connection_id, None)
        return emptied

    # Reads

    def rooms_of(self, connection_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._sids.get(connection_id, ()))

    def members_of(self, room: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._rooms.get(room, ()))

    def connections(self) -> frozenset[str]:
        """Every locally known connection in the namespace."""
        with self._lock:
            return frozenset(self._sids)

    def room_names(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._rooms)

    def targets(self, rooms: Iterable[str], excluded: Iterable[str] = ()) -> list[str]:
        """Connections a broadcast reaches, in room order, without duplicates.

        No rooms means every known connection. Computed under one lock
        acquisition so the result is a consistent snapshot.
        """
        skip = set(excluded)
        result: list[str] = []
        seen: set[str] = set()
        with self._lock:
            room_list = list(rooms)
            if room_list:
                pools = [self._rooms.get(room, ()) for room in room_list]
            else:
                pools = [self._sids.keys()]
            for pool in pools:
                for connection_id in sorted(pool):
                    if connection_id in seen or connection_id in skip:
                        continue
                    seen.add(connection_id)
                    result.append(connection_id)
        return result

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._sids

    def __len__(self) -> int:
        with self._lock:
            return len(self._sids)
