"""Inbound relay: bus message -> local broadcast, never re-published."""

from __future__ import annotations

from loguru import logger

from roombus.core.errors import DecodeError
from roombus.gateway.codec import decode
from roombus.gateway.router import BroadcastRouter
from roombus.identity import NodeIdentity


class InboundRelay:
    """Bus subscription handler shared by every channel of one adapter."""

    def __init__(self, router: BroadcastRouter, identity: NodeIdentity) -> None:
        self._router = router
        self._identity = identity

    async def on_message(self, data: bytes) -> None:
        """Decode, drop self-echo, and replay into the router as remote.

        Undecodable payloads are logged and dropped.
        """
        try:
            envelope = decode(data)
        except DecodeError as exc:
            logger.warning(
                "Dropping undecodable bus message on {} ({}): {}",
                self._router.namespace,
                exc.code,
                exc,
            )
            return

        if self._identity.is_self(envelope.origin):
            logger.debug("Ignoring own echo on {}", self._router.namespace)
            return

        await self._router.route(envelope.packet, envelope.options, remote=True)
