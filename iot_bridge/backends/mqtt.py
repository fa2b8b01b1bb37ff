"""MQTT-attached device backend.

Talks to devices that expose a JSON command interface over an MQTT
broker. Frames look like ``{"op":"set_temperature","args":[21.5]}``;
commands carry a ``seq`` that the device echoes in its ack so replies
can be matched to requests.

paho-mqtt runs its network loop in a background thread; every callback
hops back onto the asyncio loop with call_soon_threadsafe before it
touches backend state.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from iot_bridge.backends.topics import MqttTopicConfig
from iot_bridge.core.errors import ProtocolError, ProtocolErrorReason, TransportError
from iot_bridge.core.models import (
    Ack,
    BackendKind,
    Command,
    ConnectionResult,
    ConnectionState,
    Operation,
    RawCommand,
    RawEvent,
)

logger = logging.getLogger(__name__)


def _dumps(frame: dict[str, Any]) -> str:
    return json.dumps(frame, separators=(",", ":"), sort_keys=True)


class MqttBackend:
    """Backend for devices reachable through an MQTT broker.

    Configuration:
        address: Device address used in topic paths (required)
        host: Broker hostname (default: 'localhost')
        port: Broker port (default: 1883)
        keepalive: MQTT keepalive in seconds (default: 60)
        connect_timeout_s: Max wait for CONNACK (default: 5.0)
        ack_timeout_s: Max wait for a device ack (default: 5.0)
        client: Pre-built paho client (optional, mainly for tests)

    Example:
        >>> backend = MqttBackend({"address": "hall-thermostat", "host": "broker"})
        >>> await backend.connect()
    """

    KIND = BackendKind.MQTT

    def __init__(self, config: dict[str, Any]) -> None:
        """Initialize MQTT backend.

        Args:
            config: Configuration dictionary

        Raises:
            ValueError: If no device address is configured
        """
        if not config.get("address"):
            raise ValueError("MqttBackend requires an 'address'")

        self.config = config
        self.address: str = config["address"]
        self.host: str = config.get("host", "localhost")
        self.port: int = config.get("port", 1883)
        self.keepalive: int = config.get("keepalive", 60)
        self.connect_timeout_s: float = config.get("connect_timeout_s", 5.0)
        self.ack_timeout_s: float = config.get("ack_timeout_s", 5.0)
        self.topics = MqttTopicConfig()
        self._name = config.get("name", f"mqtt:{self.address}")

        self._client: Any = config.get("client")
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connack: asyncio.Event | None = None
        self._connected = False
        self._connect_detail: str | None = None
        self._sequence = 0
        self._pending: dict[int, asyncio.Future[str]] = {}
        self._inbox: asyncio.Queue[str] = asyncio.Queue()

    @property
    def kind(self) -> BackendKind:
        """Backend kind."""
        return self.KIND

    @property
    def name(self) -> str:
        """Backend instance label."""
        return self._name

    @property
    def is_connected(self) -> bool:
        """Whether the broker session is up."""
        return self._connected

    async def connect(self) -> ConnectionResult:
        """Connect to the broker and subscribe to the device's topics."""
        if self._connected:
            return ConnectionResult(state=ConnectionState.CONNECTED)

        self._loop = asyncio.get_running_loop()
        self._connack = asyncio.Event()
        self._connect_detail = None

        if self._client is None:
            self._client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2,
                client_id=f"iot-bridge-{self.address}",
            )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        logger.info(f"Connecting to MQTT broker at {self.host}:{self.port}")
        try:
            await asyncio.to_thread(self._client.connect, self.host, self.port, self.keepalive)
        except OSError as e:
            raise TransportError(f"Failed to connect to MQTT broker: {e}", backend=self.name) from e

        self._client.loop_start()
        try:
            await asyncio.wait_for(self._connack.wait(), self.connect_timeout_s)
        except asyncio.TimeoutError:
            await asyncio.to_thread(self._client.loop_stop)
            return ConnectionResult(
                state=ConnectionState.DISCONNECTED,
                detail="timed out waiting for CONNACK",
            )

        if not self._connected:
            await asyncio.to_thread(self._client.loop_stop)
            return ConnectionResult(
                state=ConnectionState.DISCONNECTED,
                detail=self._connect_detail,
            )
        return ConnectionResult(state=ConnectionState.CONNECTED)

    async def disconnect(self) -> None:
        """Disconnect from the broker."""
        if self._client is not None:
            self._client.disconnect()
            # loop_stop joins the network thread
            await asyncio.to_thread(self._client.loop_stop)
        self._link_lost("disconnected")
        logger.info("Disconnected from MQTT broker")

    def encode_command(self, command: Command) -> RawCommand:
        """Translate a command into a JSON frame."""
        return _dumps({"op": command.operation.value, "args": list(command.arguments)})

    def decode_ack(self, payload: str) -> Command:
        """Translate an ack frame back into a command."""
        return self._from_frame(self._load(payload))

    async def send_command(self, raw: RawCommand) -> Ack:
        """Publish a command frame and wait for the matching ack."""
        if not self._connected or self._loop is None:
            raise ProtocolError(
                ProtocolErrorReason.DISCONNECTED,
                "Cannot send: not connected to MQTT broker",
                backend=self.name,
            )

        frame = self._load(raw)
        self._from_frame(frame)

        self._sequence += 1
        sequence = self._sequence
        frame["seq"] = sequence
        future: asyncio.Future[str] = self._loop.create_future()
        self._pending[sequence] = future

        try:
            topic = self.topics.command(self.address)
            result = self._client.publish(topic, _dumps(frame), qos=1)
            if result.rc != mqtt.MQTT_ERR_SUCCESS:
                raise TransportError(f"Publish failed: rc={result.rc}", backend=self.name)
            logger.debug(f"Published {frame} to {topic}")

            try:
                payload = await asyncio.wait_for(future, self.ack_timeout_s)
            except asyncio.TimeoutError as e:
                raise TransportError(
                    f"No ack for seq {sequence} within {self.ack_timeout_s}s",
                    backend=self.name,
                ) from e
        finally:
            self._pending.pop(sequence, None)

        return Ack(
            command=self.decode_ack(payload),
            payload=payload,
            sequence=sequence,
            backend=self.name,
        )

    async def receive_data(self, timeout: float) -> RawEvent | None:
        """Read one state report, waiting at most ``timeout`` seconds."""
        if not self._connected:
            raise TransportError("Cannot receive: not connected to MQTT broker", backend=self.name)

        try:
            payload = await asyncio.wait_for(self._inbox.get(), timeout)
        except asyncio.TimeoutError:
            return None

        command = self._from_frame(self._load(payload))
        return RawEvent(
            operation=command.operation,
            arguments=command.arguments,
            payload=payload,
        )

    # paho callbacks (network thread)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when the broker answers the connect request."""
        if reason_code == 0:
            client.subscribe(
                [(self.topics.ack(self.address), 1), (self.topics.state(self.address), 1)]
            )
        self._call_soon(self._handle_connack, reason_code == 0, str(reason_code))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when the broker session ends."""
        logger.warning(f"Disconnected from MQTT broker, reason: {reason_code}")
        self._call_soon(self._link_lost, f"broker disconnect: {reason_code}")

    def _on_message(self, client, userdata, message):
        """Callback for messages on the subscribed topics."""
        payload = message.payload.decode("utf-8", errors="replace")
        self._call_soon(self._dispatch, message.topic, payload)

    def _call_soon(self, callback: Any, *args: Any) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)

    # loop-thread handlers

    def _handle_connack(self, success: bool, detail: str) -> None:
        self._connected = success
        if success:
            logger.info("Successfully connected to MQTT broker")
        else:
            self._connect_detail = f"broker refused connection: {detail}"
            logger.error(f"Failed to connect to MQTT broker: {detail}")
        if self._connack is not None:
            self._connack.set()

    def _link_lost(self, detail: str) -> None:
        self._connected = False
        for future in self._pending.values():
            if not future.done():
                future.set_exception(TransportError(detail, backend=self.name))
        self._pending.clear()

    def _dispatch(self, topic: str, payload: str) -> None:
        if topic == self.topics.state(self.address):
            self._inbox.put_nowait(payload)
            return

        if topic == self.topics.ack(self.address):
            try:
                sequence = json.loads(payload).get("seq")
            except (json.JSONDecodeError, AttributeError):
                logger.warning(f"Dropping unparseable ack: {payload!r}")
                return
            future = self._pending.get(sequence)
            if future is None or future.done():
                logger.debug(f"Ignoring ack with unknown seq {sequence}")
                return
            future.set_result(payload)
            return

        logger.debug(f"Ignoring message on unexpected topic {topic}")

    # frame helpers

    def _from_frame(self, frame: Any) -> Command:
        if not isinstance(frame, dict) or "op" not in frame:
            raise self._malformed(f"Invalid frame: {frame!r}")
        try:
            operation = Operation(frame["op"])
        except ValueError as e:
            raise self._malformed(f"Unknown operation: {frame['op']!r}") from e
        arguments = frame.get("args", [])
        if not isinstance(arguments, list):
            raise self._malformed(f"Frame args must be a list: {frame!r}")
        try:
            return Command(operation=operation, arguments=tuple(arguments))
        except ValidationError as e:
            raise self._malformed(f"Unsupported argument types: {arguments!r}") from e

    def _load(self, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise self._malformed(f"Invalid JSON: {e}") from e

    def _malformed(self, message: str) -> ProtocolError:
        return ProtocolError(ProtocolErrorReason.MALFORMED, message, backend=self.name)
