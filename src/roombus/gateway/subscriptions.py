"""Subscription manager: the set of bus channels one adapter listens on."""

from __future__ import annotations

from loguru import logger

from roombus.core.errors import SubscribeError
from roombus.gateway.bus import MessageHandler, Transport


class SubscriptionManager:
    """Owns channel -> subscription handle for a single adapter instance.

    Pinned channels (the namespace channel) are only released by ``close``.
    """

    def __init__(self, bus: Transport) -> None:
        self._bus = bus
        self._subs: dict[str, object] = {}
        self._pinned: set[str] = set()

    @property
    def channels(self) -> frozenset[str]:
        """Currently subscribed channels."""
        return frozenset(self._subs)

    def is_subscribed(self, channel: str) -> bool:
        return channel in self._subs

    def pin(self, channel: str) -> None:
        """Keep this channel subscribed until ``close``."""
        self._pinned.add(channel)

    async def ensure_subscribed(self, channel: str, handler: MessageHandler) -> object:
        """Subscribe unless already subscribed; return the handle.

        Raises:
            SubscribeError: the bus refused the subscription.
        """
        handle = self._subs.get(channel)
        if handle is not None:
            return handle
        handle = await self._bus.subscribe(channel, handler)
        self._subs[channel] = handle
        logger.debug("Subscribed to {}", channel)
        return handle

    async def ensure_unsubscribed(self, channel: str) -> bool:
        """Unsubscribe if subscribed and not pinned. Returns True if released.

        A failed unsubscribe is logged and the handle kept for a later retry.
        """
        if channel in self._pinned:
            logger.debug("Keeping pinned channel {}", channel)
            return False
        handle = self._subs.get(channel)
        if handle is None:
            return False
        try:
            await self._bus.unsubscribe(handle)
        except SubscribeError as exc:
            logger.warning("Unsubscribe from {} failed, keeping subscription: {}", channel, exc)
            return False
        del self._subs[channel]
        logger.debug("Unsubscribed from {}", channel)
        return True

    async def close(self) -> None:
        """Release every subscription, pinned ones included."""
        self._pinned.clear()
        for channel in list(self._subs):
            await self.ensure_unsubscribed(channel)
        if self._subs:
            logger.warning("{} subscriptions could not be released", len(self._subs))
