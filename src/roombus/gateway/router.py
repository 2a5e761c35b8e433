"""Broadcast router: local delivery plus publication to the bus."""

from __future__ import annotations

from typing import Any

from loguru import logger

from roombus.core.constants import PACKET_NAMESPACE_KEY, ROOT_NAMESPACE
from roombus.events import BroadcastOptions, DeliveryTarget, Envelope
from roombus.gateway.bus import Transport
from roombus.gateway.channels import ChannelNamer
from roombus.gateway.codec import encode_envelope
from roombus.gateway.membership import MembershipTable
from roombus.identity import NodeIdentity


def packet_namespace(packet: dict[str, Any]) -> str:
    """Namespace tag of a packet; untagged packets belong to the root namespace."""
    nsp = packet.get(PACKET_NAMESPACE_KEY)
    return ROOT_NAMESPACE if nsp is None else nsp


class BroadcastRouter:
    """Delivers packets to local members and publishes locally-originated ones."""

    def __init__(
        self,
        namer: ChannelNamer,
        members: MembershipTable,
        target: DeliveryTarget,
        bus: Transport,
        identity: NodeIdentity,
    ) -> None:
        self._namer = namer
        self._members = members
        self._target = target
        self._bus = bus
        self._identity = identity

    @property
    def namespace(self) -> str:
        return self._namer.namespace

    def accepts(self, packet: dict[str, Any]) -> bool:
        """True if the packet belongs to this router's namespace."""
        return packet_namespace(packet) == self._namer.namespace

    def publish_channel(self, options: BroadcastOptions) -> str:
        """Room channel for a single-room broadcast, namespace channel otherwise.

        Multi-room and room-less broadcasts go namespace-wide and every node
        re-filters by its own membership.
        """
        if len(options.rooms) == 1:
            return self._namer.channel(options.rooms[0])
        return self._namer.namespace_channel

    def deliver(self, packet: dict[str, Any], options: BroadcastOptions) -> int:
        """Hand the packet to every matching local connection. Returns the count."""
        targets = self._members.targets(options.rooms, options.except_)
        delivered = 0
        for connection_id in targets:
            try:
                self._target.deliver(connection_id, packet)
                delivered += 1
            except Exception as exc:
                logger.exception("Failed to deliver packet to {}: {}", connection_id, exc)
        return delivered

    async def route(
        self,
        packet: dict[str, Any],
        options: BroadcastOptions | None = None,
        *,
        remote: bool = False,
    ) -> int:
        """Broadcast a packet. Returns the number of local deliveries.

        Raises:
            EncodeError: the packet cannot be serialized; nothing was delivered.
            PublishError: a local broadcast could not be published to the bus.
        """
        options = options or BroadcastOptions()
        if not self.accepts(packet):
            logger.debug(
                "Ignoring packet for namespace {} on {}",
                packet_namespace(packet),
                self._namer.namespace,
            )
            return 0

        payload = None
        if not remote and not options.is_local:
            payload = encode_envelope(Envelope(self._identity.value, packet, options))

        delivered = self.deliver(packet, options)

        if payload is None:
            return delivered

        channel = self.publish_channel(options)
        await self._bus.publish(channel, payload)
        logger.debug("Published to {} ({} local deliveries)", channel, delivered)
        return delivered
