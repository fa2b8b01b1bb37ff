"""Tests for the MQTT backend using the mock paho client."""

from __future__ import annotations

import asyncio
import json

import pytest
from mocks.mqtt_client import MockMQTTClient

from iot_bridge.adapters import ThermostatAdapter
from iot_bridge.backends import MqttBackend
from iot_bridge.bridge import CommunicationBridge
from iot_bridge.config import Config
from iot_bridge.core.errors import ProtocolError, ProtocolErrorReason, TransportError
from iot_bridge.core.interfaces import ProtocolBackend
from iot_bridge.core.models import BackendKind, Command, ConnectionState, Operation
from iot_bridge.hub import NotificationHub

ADDRESS = "hall"
BASE = f"v1/iot_bridge/device/{ADDRESS}"


@pytest.fixture(autouse=True)
def default_topics(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IOT_BRIDGE_MQTT_TOPIC_VERSION", raising=False)
    monkeypatch.delenv("IOT_BRIDGE_MQTT_BASE_PREFIX", raising=False)


@pytest.fixture
def mock_client() -> MockMQTTClient:
    """Fixture providing a mock MQTT client that auto-acknowledges commands."""
    return MockMQTTClient()


@pytest.fixture
def mqtt_backend(mock_client: MockMQTTClient) -> MqttBackend:
    """Fixture providing an MQTT backend wired to the mock client."""
    return MqttBackend({"address": ADDRESS, "client": mock_client, "ack_timeout_s": 0.5})


class TestConnect:
    """Tests for the broker session."""

    def test_satisfies_protocol(self, mqtt_backend: MqttBackend) -> None:
        assert isinstance(mqtt_backend, ProtocolBackend)
        assert mqtt_backend.kind is BackendKind.MQTT
        assert mqtt_backend.name == "mqtt:hall"

    def test_requires_address(self) -> None:
        with pytest.raises(ValueError):
            MqttBackend({})

    @pytest.mark.asyncio
    async def test_connect_subscribes(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        result = await mqtt_backend.connect()

        assert result.state is ConnectionState.CONNECTED
        assert mqtt_backend.is_connected
        assert mock_client.loop_running
        assert sorted(mock_client.subscriptions) == [f"{BASE}/ack", f"{BASE}/state"]

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        await mqtt_backend.connect()
        await mqtt_backend.connect()
        assert mock_client.connect_calls == 1

    @pytest.mark.asyncio
    async def test_refused_connection(self) -> None:
        client = MockMQTTClient(connect_rc=5)
        backend = MqttBackend({"address": ADDRESS, "client": client})

        result = await backend.connect()

        assert result.state is ConnectionState.DISCONNECTED
        assert "refused" in result.detail
        assert backend.is_connected is False
        assert client.loop_running is False

    @pytest.mark.asyncio
    async def test_broker_drop_marks_link_down(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        await mqtt_backend.connect()

        mock_client.simulate_disconnect()
        await asyncio.sleep(0)

        assert mqtt_backend.is_connected is False

    @pytest.mark.asyncio
    async def test_disconnect_before_stopping_loop(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        """Test the DISCONNECT is sent while the network loop still runs."""
        await mqtt_backend.connect()

        await mqtt_backend.disconnect()

        assert mock_client.loop_running_at_disconnect is True
        assert mock_client.loop_running is False
        assert mqtt_backend.is_connected is False


class TestSend:
    """Tests for publishing commands."""

    @pytest.mark.asyncio
    async def test_send_round_trip(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        """Test the command is published with a seq and the echoed ack is matched."""
        command = Command.of(Operation.SET_TEMPERATURE, 21.5)
        await mqtt_backend.connect()

        ack = await mqtt_backend.send_command(mqtt_backend.encode_command(command))

        published = mock_client.get_published_to(f"{BASE}/set")
        assert len(published) == 1
        assert published[0]["qos"] == 1
        assert json.loads(published[0]["payload"]) == {
            "op": "set_temperature",
            "args": [21.5],
            "seq": 1,
        }
        assert ack.command == command
        assert ack.sequence == 1

    @pytest.mark.asyncio
    async def test_send_when_disconnected(self, mqtt_backend: MqttBackend) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            await mqtt_backend.send_command('{"args":[],"op":"turn_on"}')
        assert exc_info.value.reason is ProtocolErrorReason.DISCONNECTED

    @pytest.mark.asyncio
    async def test_malformed_frame_not_published(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        await mqtt_backend.connect()

        with pytest.raises(ProtocolError) as exc_info:
            await mqtt_backend.send_command('{"op":"self_destruct"}')

        assert exc_info.value.reason is ProtocolErrorReason.MALFORMED
        assert mock_client.published_messages == []

    @pytest.mark.asyncio
    async def test_missing_ack_times_out(self) -> None:
        client = MockMQTTClient(auto_ack=False)
        backend = MqttBackend({"address": ADDRESS, "client": client, "ack_timeout_s": 0.05})
        await backend.connect()

        with pytest.raises(TransportError):
            await backend.send_command(backend.encode_command(Command.of(Operation.TURN_ON)))

    @pytest.mark.asyncio
    async def test_unrelated_ack_ignored(self) -> None:
        client = MockMQTTClient(auto_ack=False)
        backend = MqttBackend({"address": ADDRESS, "client": client, "ack_timeout_s": 0.05})
        await backend.connect()

        client.simulate_message(f"{BASE}/ack", '{"op":"turn_on","args":[],"seq":99}')
        with pytest.raises(TransportError):
            await backend.send_command(backend.encode_command(Command.of(Operation.TURN_ON)))


class TestReceive:
    """Tests for unsolicited state reports."""

    @pytest.mark.asyncio
    async def test_receive_state_report(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        await mqtt_backend.connect()
        mock_client.simulate_message(f"{BASE}/state", '{"op":"set_mode","args":["heat"]}')

        event = await mqtt_backend.receive_data(timeout=0.1)

        assert event is not None
        assert event.command == Command.of(Operation.SET_MODE, "heat")

    @pytest.mark.asyncio
    async def test_receive_nothing(self, mqtt_backend: MqttBackend) -> None:
        await mqtt_backend.connect()
        assert await mqtt_backend.receive_data(timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_receive_malformed_report(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient
    ) -> None:
        await mqtt_backend.connect()
        mock_client.simulate_message(f"{BASE}/state", "not json")

        with pytest.raises(ProtocolError) as exc_info:
            await mqtt_backend.receive_data(timeout=0.1)
        assert exc_info.value.reason is ProtocolErrorReason.MALFORMED

    @pytest.mark.asyncio
    async def test_receive_when_disconnected(self, mqtt_backend: MqttBackend) -> None:
        with pytest.raises(TransportError):
            await mqtt_backend.receive_data(timeout=0.01)


class TestThermostatOverMqtt:
    """End-to-end: thermostat adapter over an MQTT-attached device."""

    @pytest.mark.asyncio
    async def test_setpoint_and_report_reach_hub(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient, config: Config
    ) -> None:
        hub = NotificationHub()
        thermostat = ThermostatAdapter(
            "thermostat1", CommunicationBridge.from_config(mqtt_backend, config)
        )
        await thermostat.initialize()
        hub.register_device(thermostat, "thermostat1", thermostat.category)

        await thermostat.set_temperature(22.5)
        mock_client.simulate_message(f"{BASE}/state", '{"op":"set_mode","args":["cool"]}')
        await thermostat.poll_once()

        snapshot = hub.get_snapshot("thermostat1")
        assert snapshot.get("temperature") == 22.5
        assert snapshot.get("mode") == "cool"

    @pytest.mark.asyncio
    async def test_bridge_reconnects_after_broker_drop(
        self, mqtt_backend: MqttBackend, mock_client: MockMQTTClient, config: Config
    ) -> None:
        bridge = CommunicationBridge.from_config(mqtt_backend, config)
        await bridge.initialize()

        mock_client.simulate_disconnect()
        await asyncio.sleep(0)
        ack = await bridge.send(Command.of(Operation.TURN_OFF))

        assert ack.command == Command.of(Operation.TURN_OFF)
        assert mock_client.connect_calls == 2
        assert bridge.state is ConnectionState.CONNECTED
