"""Test the CLI entrypoint without a NATS server."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from roombus.__main__ import (
    LISTENER_ID,
    LoggingTarget,
    _listen,
    build_packet,
    build_parser,
    main,
    setup_logging,
)
from roombus.adapters import AdapterFactory
from roombus.config import Config
from roombus.identity import NodeIdentity
from tests.mocks import MockBroker


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("ROOMBUS_NATS_URL", "ROOMBUS_PREFIX", "ROOMBUS_DELIMITER"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def broker():
    return MockBroker()


@pytest.fixture
def factory(broker):
    return AdapterFactory(broker.connect(), identity=NodeIdentity("cli001"))


class TestSetupLogging:
    def test_setup_logging_levels(self):
        with patch("roombus.__main__.logger") as mock_logger:
            setup_logging(verbose=True)
            mock_logger.remove.assert_called_once()
            assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"

            setup_logging(verbose=False)
            assert mock_logger.add.call_args.kwargs["level"] == "INFO"


class TestParser:
    def test_emit_arguments(self):
        args = build_parser().parse_args(
            ["-c", "x.yaml", "emit", "-n", "/chat", "-r", "a", "-r", "b", "-e", "hello", "-d", "1"]
        )
        assert str(args.config) == "x.yaml"
        assert args.command == "emit"
        assert args.namespace == "/chat"
        assert args.rooms == ["a", "b"]
        assert args.event == "hello"
        assert args.data == "1"

    def test_listen_defaults(self):
        args = build_parser().parse_args(["listen"])
        assert args.namespace == "/"
        assert args.rooms == []
        assert args.verbose is False

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_emit_requires_event(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["emit"])


class TestBuildPacket:
    def test_with_data(self):
        assert build_packet("/chat", "hello", {"x": 1}) == {
            "type": 2,
            "nsp": "/chat",
            "data": ["hello", {"x": 1}],
        }

    def test_without_data(self):
        assert build_packet("/", "ping", None)["data"] == ["ping"]


class TestLoggingTarget:
    def test_counts_deliveries(self):
        target = LoggingTarget()
        with patch("roombus.__main__.logger"):
            target.deliver("c1", {"data": 1})
            target.deliver("c2", {"data": 2})
        assert target.count == 2


class TestMain:
    def test_emit_publishes_to_room_channel(self, tmp_path, broker, factory):
        # Arrange
        config_path = tmp_path / "config.yaml"
        config_path.write_text("prefix: app\n")
        factory.prefix = "app"

        # Act
        with (
            patch("roombus.__main__.setup_logging"),
            patch.object(AdapterFactory, "connect", AsyncMock(return_value=factory)),
        ):
            main(["-c", str(config_path), "emit", "-r", "lobby", "-e", "hello", "-d", '{"x": 1}'])

        # Assert
        [payload] = broker.published_to("app./.lobby")
        origin, packet, options = json.loads(payload)
        assert origin == "cli001"
        assert packet == {"type": 2, "nsp": "/", "data": ["hello", {"x": 1}]}
        assert options["rooms"] == ["lobby"]
        assert factory.namespaces == []

    def test_emit_without_rooms_uses_namespace_channel(self, tmp_path, broker, factory):
        with (
            patch("roombus.__main__.setup_logging"),
            patch.object(AdapterFactory, "connect", AsyncMock(return_value=factory)),
        ):
            main(["-c", str(tmp_path / "missing.yaml"), "emit", "-e", "ping"])

        assert len(broker.published_to("socket.io./")) == 1

    def test_invalid_config_exits_1(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("delimiter: '%'\n")

        with patch("roombus.__main__.setup_logging"), pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config_path), "emit", "-e", "x"])
        assert exc_info.value.code == 1

    def test_bad_json_data_exits_2(self, tmp_path):
        with patch("roombus.__main__.setup_logging"), pytest.raises(SystemExit) as exc_info:
            main(["-c", str(tmp_path / "missing.yaml"), "emit", "-e", "x", "-d", "{nope"])
        assert exc_info.value.code == 2

    def test_connect_failure_exits_1(self, tmp_path):
        from roombus.core.errors import TransportConnectError

        failing = AsyncMock(side_effect=TransportConnectError("down", code="connect_failed"))
        with (
            patch("roombus.__main__.setup_logging"),
            patch.object(AdapterFactory, "connect", failing),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["-c", str(tmp_path / "missing.yaml"), "emit", "-e", "x"])
        assert exc_info.value.code == 1


class TestListen:
    @pytest.mark.asyncio
    async def test_listen_joins_rooms_until_cancelled(self, broker, factory):
        # Arrange
        with patch.object(AdapterFactory, "connect", AsyncMock(return_value=factory)):
            task = asyncio.create_task(_listen(Config({}), "/", ["lobby"]))
            for _ in range(5):
                await asyncio.sleep(0)

            # Assert: listening
            adapter = factory.get("/")
            assert adapter is not None
            assert adapter.client_rooms(LISTENER_ID) == {"lobby"}
            assert broker.subscriber_count("socket.io./.lobby") == 1

            # Act
            task.cancel()
            await task

        # Assert: released
        assert broker.subscriber_count("socket.io./") == 0
        assert broker.subscriber_count("socket.io./.lobby") == 0

    @pytest.mark.asyncio
    async def test_listen_logs_remote_broadcasts(self, broker, factory):
        other = AdapterFactory(broker.connect(), identity=NodeIdentity("other1"))
        sender = await other.create("/", MagicMock())

        with (
            patch.object(AdapterFactory, "connect", AsyncMock(return_value=factory)),
            patch("roombus.__main__.logger") as mock_logger,
        ):
            task = asyncio.create_task(_listen(Config({}), "/", []))
            for _ in range(5):
                await asyncio.sleep(0)

            await sender.broadcast({"nsp": "/", "data": ["hi"]})

            task.cancel()
            await task

        delivered = [
            c for c in mock_logger.info.call_args_list if c.args and c.args[0] == "[{}] {}"
        ]
        assert len(delivered) == 1
        assert delivered[0].args[1] == LISTENER_ID
        await other.close()
