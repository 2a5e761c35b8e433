"""NATS-backed room adapter and the factory sharing one connection across namespaces."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from loguru import logger

from roombus.core.constants import DEFAULT_DELIMITER, DEFAULT_PREFIX
from roombus.core.errors import SubscribeError
from roombus.events import BroadcastOptions, DeliveryTarget
from roombus.gateway import (
    BroadcastRouter,
    ChannelNamer,
    InboundRelay,
    MembershipTable,
    NatsBus,
    SubscriptionManager,
    Transport,
)
from roombus.identity import NodeIdentity

if TYPE_CHECKING:
    from roombus.config import Config


class NatsAdapter:
    """Room adapter for one namespace, relaying broadcasts over the bus.

    join/leave/leave_all hold ``_lock`` across the membership change and the
    resulting (un)subscribe, so the decision is made on a consistent table.
    """

    def __init__(
        self,
        namespace: str,
        target: DeliveryTarget,
        bus: Transport,
        identity: NodeIdentity,
        *,
        prefix: str = DEFAULT_PREFIX,
        delimiter: str = DEFAULT_DELIMITER,
    ) -> None:
        self._namer = ChannelNamer(namespace, prefix=prefix, delimiter=delimiter)
        self._members = MembershipTable()
        self._subscriptions = SubscriptionManager(bus)
        self._router = BroadcastRouter(self._namer, self._members, target, bus, identity)
        self._relay = InboundRelay(self._router, identity)
        self._identity = identity
        self._lock = asyncio.Lock()
        self._started = False

    @property
    def namespace(self) -> str:
        return self._namer.namespace

    @property
    def identity(self) -> NodeIdentity:
        return self._identity

    @property
    def channels(self) -> frozenset[str]:
        """Bus channels currently subscribed by this adapter."""
        return self._subscriptions.channels

    @property
    def members(self) -> MembershipTable:
        return self._members

    def channel_name(self, room: str | None = None) -> str:
        return self._namer.channel(room)

    async def start(self) -> None:
        """Subscribe the namespace channel. Idempotent."""
        if self._started:
            return
        channel = self._namer.namespace_channel
        async with self._lock:
            await self._subscriptions.ensure_subscribed(channel, self._relay.on_message)
            self._subscriptions.pin(channel)
            self._started = True
        logger.info("Adapter for {} listening on {}", self.namespace, channel)

    async def stop(self) -> None:
        async with self._lock:
            await self._subscriptions.close()
            self._started = False
        logger.info("Adapter for {} stopped", self.namespace)

    async def __aenter__(self) -> NatsAdapter:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    async def on_message(self, data: bytes) -> None:
        """Inbound bus payload entry point."""
        await self._relay.on_message(data)

    async def join(self, connection_id: str, room: str | None = None) -> None:
        """Add a connection to a room, subscribing its channel on first member.

        Raises:
            SubscribeError: the room channel could not be subscribed; the join
                is rolled back.
        """
        logger.debug("Adding {} to {}", connection_id, room)
        async with self._lock:
            await self._join_locked(connection_id, room)

    async def join_many(self, connection_id: str, rooms: Iterable[str]) -> None:
        async with self._lock:
            for room in rooms:
                await self._join_locked(connection_id, room)

    async def _join_locked(self, connection_id: str, room: str | None) -> None:
        known = connection_id in self._members
        if not self._members.join(connection_id, room):
            return
        channel = self._namer.channel(room)
        try:
            await self._subscriptions.ensure_subscribed(channel, self._relay.on_message)
        except SubscribeError:
            if known:
                self._members.leave(connection_id, room)
            else:
                self._members.leave_all(connection_id)
            logger.warning("Join of {} to {} rolled back: subscribe failed", connection_id, room)
            raise

    async def leave(self, connection_id: str, room: str | None = None) -> None:
        """Remove a connection from a room; unsubscribe if the room emptied."""
        logger.debug("Removing {} from {}", connection_id, room)
        async with self._lock:
            if self._members.leave(connection_id, room):
                await self._subscriptions.ensure_unsubscribed(self._namer.channel(room))

    async def leave_all(self, connection_id: str) -> None:
        """Remove a connection from every room and forget it."""
        logger.debug("Removing {} from all rooms", connection_id)
        async with self._lock:
            for room in self._members.leave_all(connection_id):
                await self._subscriptions.ensure_unsubscribed(self._namer.channel(room))

    async def broadcast(
        self,
        packet: dict[str, Any],
        options: BroadcastOptions | None = None,
    ) -> int:
        """Deliver locally and publish to the other nodes.

        Raises:
            EncodeError: the packet cannot be serialized; nothing was delivered.
            PublishError: the bus rejected the publish (local delivery already happened).
        """
        return await self._router.route(packet, options, remote=False)

    def clients(self, rooms: Iterable[str] | None = None) -> list[str]:
        """Local connection ids in any of ``rooms`` (all connections when empty)."""
        return self._members.targets(rooms or ())

    def client_rooms(self, connection_id: str) -> frozenset[str]:
        return self._members.rooms_of(connection_id)


class AdapterFactory:
    """One bus connection and node identity shared by adapters of every namespace."""

    def __init__(
        self,
        bus: Transport,
        *,
        identity: NodeIdentity | None = None,
        prefix: str = DEFAULT_PREFIX,
        delimiter: str = DEFAULT_DELIMITER,
        owns_bus: bool = False,
    ) -> None:
        self.bus = bus
        self.identity = identity or NodeIdentity.generate()
        self.prefix = prefix
        self.delimiter = delimiter
        self._owns_bus = owns_bus
        self._adapters: dict[str, NatsAdapter] = {}

    @classmethod
    async def connect(
        cls,
        config: Config,
        *,
        bus: Transport | None = None,
        identity: NodeIdentity | None = None,
    ) -> AdapterFactory:
        """Build a factory from config, connecting NATS unless ``bus`` is given.

        Raises:
            TransportConnectError: NATS unreachable after the configured attempts.
        """
        owns_bus = bus is None
        if bus is None:
            bus = await NatsBus.connect(
                config.nats_servers,
                name=config.nats_name,
                connect_timeout=config.nats_connect_timeout,
                attempts=config.nats_connect_attempts,
            )
        return cls(
            bus,
            identity=identity,
            prefix=config.prefix,
            delimiter=config.delimiter,
            owns_bus=owns_bus,
        )

    async def create(self, namespace: str, target: DeliveryTarget) -> NatsAdapter:
        """Return the started adapter for a namespace, creating it on first use."""
        adapter = self._adapters.get(namespace)
        if adapter is not None:
            return adapter
        adapter = NatsAdapter(
            namespace,
            target,
            self.bus,
            self.identity,
            prefix=self.prefix,
            delimiter=self.delimiter,
        )
        await adapter.start()
        self._adapters[namespace] = adapter
        return adapter

    def get(self, namespace: str) -> NatsAdapter | None:
        return self._adapters.get(namespace)

    @property
    def namespaces(self) -> list[str]:
        return list(self._adapters)

    async def close(self) -> None:
        """Stop every adapter; close the bus only if this factory opened it."""
        for adapter in list(self._adapters.values()):
            await adapter.stop()
        self._adapters.clear()
        if self._owns_bus:
            await self.bus.close()
