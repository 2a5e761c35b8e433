"""Bus transport: the pub/sub contract and its NATS implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

import nats
import nats.errors
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from roombus.core.errors import PublishError, SubscribeError, TransportConnectError

MessageHandler = Callable[[bytes], Awaitable[None]]

# Transient failures worth another initial-connect attempt
_CONNECT_ERRORS = (nats.errors.Error, OSError, asyncio.TimeoutError)


class Transport(Protocol):
    """What the adapter needs from a pub/sub bus."""

    async def subscribe(self, channel: str, handler: MessageHandler) -> object:
        """Subscribe handler to channel; return an opaque handle."""
        ...

    async def unsubscribe(self, handle: object) -> None:
        """Release a handle returned by subscribe."""
        ...

    async def publish(self, channel: str, data: bytes) -> None:
        """Publish one payload to channel."""
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...


class NatsBus:
    """Transport over a nats-py client. Wraps nats errors in adapter errors.

    A bus built around an existing client (``NatsBus(client)``) does not own
    it, so ``close`` leaves it connected for its other users.
    """

    def __init__(self, client: Any, *, owned: bool = False) -> None:
        self._client = client
        self._owned = owned

    @property
    def client(self) -> Any:
        """Underlying nats client."""
        return self._client

    @classmethod
    async def connect(
        cls,
        servers: Sequence[str],
        *,
        name: str | None = None,
        connect_timeout: float = 2.0,
        attempts: int = 1,
        wait_min: float = 1.0,
        wait_max: float = 10.0,
    ) -> NatsBus:
        """Connect to NATS, retrying the initial connection with backoff.

        Raises:
            TransportConnectError: every attempt failed.
        """
        servers = list(servers)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, attempts)),
                wait=wait_exponential(multiplier=1, min=wait_min, max=wait_max),
                retry=retry_if_exception_type(_CONNECT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    n = attempt.retry_state.attempt_number
                    if n > 1:
                        logger.warning("NATS connect attempt {} to {}", n, servers)
                    client = await nats.connect(
                        servers=servers,
                        name=name,
                        connect_timeout=connect_timeout,
                    )
        except _CONNECT_ERRORS as exc:
            raise TransportConnectError(
                f"Could not connect to NATS at {servers}",
                code="connect_failed",
                details={"servers": servers, "attempts": attempts},
                original_error=exc,
            ) from exc
        logger.info("Connected to NATS {}", servers)
        return cls(client, owned=True)

    async def subscribe(self, channel: str, handler: MessageHandler) -> object:
        async def _on_msg(msg: Any) -> None:
            await handler(msg.data)

        try:
            return await self._client.subscribe(channel, cb=_on_msg)
        except nats.errors.Error as exc:
            raise SubscribeError(
                f"Subscribe to {channel} failed",
                code="subscribe_failed",
                details={"channel": channel},
                original_error=exc,
            ) from exc

    async def unsubscribe(self, handle: object) -> None:
        try:
            await handle.unsubscribe()  # type: ignore[attr-defined]
        except nats.errors.Error as exc:
            raise SubscribeError(
                "Unsubscribe failed",
                code="unsubscribe_failed",
                details={"subject": getattr(handle, "subject", None)},
                original_error=exc,
            ) from exc

    async def publish(self, channel: str, data: bytes) -> None:
        try:
            await self._client.publish(channel, data)
        except nats.errors.Error as exc:
            raise PublishError(
                f"Publish to {channel} failed",
                code="publish_failed",
                details={"channel": channel, "size": len(data)},
                original_error=exc,
            ) from exc

    async def close(self) -> None:
        if not self._owned:
            return
        try:
            await self._client.drain()
        except nats.errors.Error as exc:
            logger.warning("NATS drain failed, closing: {}", exc)
            await self._client.close()
