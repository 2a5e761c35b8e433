"""roombus entrypoint: listen to or emit into a namespace over the bus."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from roombus import __version__
from roombus.adapters import AdapterFactory
from roombus.config import Config, cfg, load_config_with_env
from roombus.core.constants import PACKET_NAMESPACE_KEY, ROOT_NAMESPACE
from roombus.core.errors import RoomBusError
from roombus.events import BroadcastOptions

# Socket.IO EVENT packet type
EVENT_PACKET_TYPE = 2
LISTENER_ID = "roombus-listener"


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=(
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan> | {message}"
        ),
    )


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


class LoggingTarget:
    """Delivery target that logs every packet it receives."""

    def __init__(self) -> None:
        self.count = 0

    def deliver(self, connection_id: str, packet: dict[str, Any]) -> None:
        self.count += 1
        logger.info("[{}] {}", connection_id, json.dumps(packet, default=str))


def build_packet(namespace: str, event: str, data: Any) -> dict[str, Any]:
    """Socket.IO-style event packet."""
    args: list[Any] = [event]
    if data is not None:
        args.append(data)
    return {"type": EVENT_PACKET_TYPE, PACKET_NAMESPACE_KEY: namespace, "data": args}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roombus",
        description="roombus: room broadcast relay over NATS",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    listen = sub.add_parser("listen", help="Log broadcasts reaching a namespace")
    listen.add_argument("--namespace", "-n", default=ROOT_NAMESPACE)
    listen.add_argument("--room", "-r", action="append", default=[], dest="rooms")

    emit = sub.add_parser("emit", help="Broadcast one event into a namespace")
    emit.add_argument("--namespace", "-n", default=ROOT_NAMESPACE)
    emit.add_argument("--room", "-r", action="append", default=[], dest="rooms")
    emit.add_argument("--event", "-e", required=True)
    emit.add_argument("--data", "-d", default=None, help="JSON payload")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entrypoint."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = reload_config(args.config)
    except RoomBusError as exc:
        logger.error("Invalid config {}: {}", args.config, exc)
        sys.exit(1)

    data: Any = None
    if args.command == "emit" and args.data is not None:
        try:
            data = json.loads(args.data)
        except json.JSONDecodeError as exc:
            logger.error("--data is not valid JSON: {}", exc)
            sys.exit(2)

    try:
        if args.command == "listen":
            asyncio.run(_listen(config, args.namespace, args.rooms))
        else:
            asyncio.run(_emit(config, args.namespace, args.rooms, args.event, data))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except RoomBusError as exc:
        logger.error("{}", exc)
        sys.exit(1)


async def _listen(config: Config, namespace: str, rooms: list[str]) -> None:
    """Join a listener connection to rooms and log deliveries until cancelled."""
    factory = await AdapterFactory.connect(config)
    target = LoggingTarget()
    try:
        adapter = await factory.create(namespace, target)
        await adapter.join(LISTENER_ID)
        await adapter.join_many(LISTENER_ID, rooms)
        logger.info(
            "Listening on {} as node {} (rooms: {})",
            namespace,
            factory.identity,
            ", ".join(rooms) or "-",
        )
        while True:
            await asyncio.sleep(60)
    except asyncio.CancelledError:
        logger.info("Listener shutting down after {} packets", target.count)
    finally:
        await factory.close()


async def _emit(
    config: Config,
    namespace: str,
    rooms: list[str],
    event: str,
    data: Any,
) -> None:
    """Publish one event packet and exit."""
    factory = await AdapterFactory.connect(config)
    try:
        adapter = await factory.create(namespace, LoggingTarget())
        packet = build_packet(namespace, event, data)
        await adapter.broadcast(packet, BroadcastOptions.build(rooms))
        logger.info("Emitted {} to {} (rooms: {})", event, namespace, ", ".join(rooms) or "-")
    finally:
        await factory.close()


if __name__ == "__main__":
    main()
