"""Simulated device backends.

Provides the shared machinery for in-memory manufacturer backends:
an attribute store that applies commands the way a real device would,
a report outbox for unsolicited state changes, and failure injection
for exercising retry and timeout paths without hardware.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Any

from iot_bridge.core.errors import (
    ProtocolError,
    ProtocolErrorReason,
    TransportError,
)
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


class SimulatedDevice:
    """In-memory device state.

    Applies commands to an attribute mapping to simulate device
    behavior.

    Attributes:
        attributes: Current attribute name -> value mapping
    """

    def __init__(self, attributes: dict[str, Any] | None = None) -> None:
        self.attributes: dict[str, Any] = dict(attributes or {})

    def apply(self, command: Command) -> dict[str, Any]:
        """Apply a command and return the new attribute mapping."""
        handler = self._get_handler(command.operation)
        handler(command)
        return dict(self.attributes)

    def _get_handler(self, operation: Operation) -> Any:
        handlers = {
            Operation.TURN_ON: self._handle_turn_on,
            Operation.TURN_OFF: self._handle_turn_off,
            Operation.SET_BRIGHTNESS: self._handle_set_brightness,
            Operation.SET_TEMPERATURE: self._handle_set_temperature,
            Operation.SET_MODE: self._handle_set_mode,
        }
        return handlers[operation]

    def _handle_turn_on(self, command: Command) -> None:
        self.attributes["power"] = "ON"
        if self.attributes.get("brightness", 0) == 0:
            self.attributes["brightness"] = 100

    def _handle_turn_off(self, command: Command) -> None:
        self.attributes["power"] = "OFF"

    def _handle_set_brightness(self, command: Command) -> None:
        level = command.argument(0)
        self.attributes["brightness"] = level
        self.attributes["power"] = "ON" if level else "OFF"

    def _handle_set_temperature(self, command: Command) -> None:
        self.attributes["temperature"] = command.argument(0)

    def _handle_set_mode(self, command: Command) -> None:
        self.attributes["mode"] = command.argument(0)


class SimulatedBackend(ABC):
    """Base class for simulated manufacturer backends.

    Subclasses supply the wire format (frame encoding and parsing); this
    class supplies the link lifecycle, latency and failure simulation.

    Configuration:
        name: Instance label (default: the backend kind)
        latency_ms: Simulated link latency in milliseconds (default: 0)
        failure_rate: Probability a send fails at transport level (default: 0.0)
        connect_failures: Number of initial connect attempts that fail (default: 0)
        attributes: Initial simulated device attributes

    Example:
        >>> backend = LuminaBackend({"latency_ms": 20, "connect_failures": 1})
        >>> await backend.connect()
    """

    KIND: BackendKind

    def __init__(self, config: dict[str, Any]) -> None:
        """Initialize simulated backend.

        Args:
            config: Configuration dictionary
        """
        self.config = config
        self.latency_ms = config.get("latency_ms", 0)
        self.failure_rate = config.get("failure_rate", 0.0)
        self.connect_failures = config.get("connect_failures", 0)
        self._name = config.get("name", self.KIND.value)

        self.device = SimulatedDevice(config.get("attributes"))
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._connected = False
        self._sequence = 0
        self._failing_sends = 0

        self.connect_calls = 0
        self.send_calls = 0

        logger.info(
            f"{type(self).__name__} initialized: latency={self.latency_ms}ms, "
            f"failure_rate={self.failure_rate}"
        )

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
        """Whether the simulated link is up."""
        return self._connected

    async def connect(self) -> ConnectionResult:
        """Bring the simulated link up.

        Returns:
            ConnectionResult; DISCONNECTED while injected failures remain
        """
        if self._connected:
            return ConnectionResult(state=ConnectionState.CONNECTED)

        self.connect_calls += 1
        await self._simulate_latency()

        if self.connect_failures > 0:
            self.connect_failures -= 1
            logger.warning(f"{self.name}: simulated connect failure")
            return ConnectionResult(
                state=ConnectionState.DISCONNECTED,
                detail="simulated connect failure",
            )

        self._connected = True
        logger.info(f"{self.name} connected")
        return ConnectionResult(state=ConnectionState.CONNECTED)

    async def disconnect(self) -> None:
        """Bring the simulated link down."""
        if self._connected:
            self._connected = False
            logger.info(f"{self.name} disconnected")

    async def send_command(self, raw: RawCommand) -> Ack:
        """Deliver a frame to the simulated device.

        Args:
            raw: Wire frame produced by encode_command()

        Returns:
            Ack decoded from the device's acknowledgement frame
        """
        if not self._connected:
            raise ProtocolError(
                ProtocolErrorReason.DISCONNECTED,
                "Cannot send: link is down",
                backend=self.name,
            )

        self.send_calls += 1
        await self._simulate_latency()

        if self._should_fail():
            self._connected = False
            raise TransportError(f"Simulated link failure sending {raw!r}", backend=self.name)

        command = self.parse_frame(raw)
        self.device.apply(command)
        self._sequence += 1

        ack_payload = self.format_ack(raw, self._sequence)
        logger.debug(f"{self.name} <- {raw!r} -> {ack_payload!r}")
        return Ack(
            command=self.decode_ack(ack_payload),
            payload=ack_payload,
            sequence=self._sequence,
            backend=self.name,
        )

    async def receive_data(self, timeout: float) -> RawEvent | None:
        """Read one queued device report, waiting at most ``timeout`` seconds."""
        if not self._connected:
            raise TransportError("Cannot receive: link is down", backend=self.name)

        try:
            payload = await asyncio.wait_for(self._outbox.get(), timeout)
        except asyncio.TimeoutError:
            return None

        command = self.parse_report(payload)
        return RawEvent(
            operation=command.operation,
            arguments=command.arguments,
            payload=payload,
        )

    def simulate_external_change(self, command: Command) -> str:
        """Simulate a change made at the device itself (e.g. a wall switch).

        Applies the command to the simulated device and queues the report
        frame the device would emit.

        Returns:
            The queued report frame
        """
        self.device.apply(command)
        payload = self.format_report(self.encode_command(command))
        self._outbox.put_nowait(payload)
        return payload

    def queue_report(self, payload: str) -> None:
        """Queue an arbitrary report frame (for testing malformed input)."""
        self._outbox.put_nowait(payload)

    def fail_sends(self, count: int = 1) -> None:
        """Make the next ``count`` sends fail at transport level."""
        self._failing_sends += count

    def drop_link(self) -> None:
        """Simulate the link going down without notice."""
        self._connected = False
        logger.warning(f"{self.name}: simulated link drop")

    async def _simulate_latency(self) -> None:
        """Simulate link latency."""
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000)

    def _should_fail(self) -> bool:
        """Check if this send should fail."""
        if self._failing_sends > 0:
            self._failing_sends -= 1
            return True
        if self.failure_rate <= 0:
            return False
        return random.random() < self.failure_rate

    def _malformed(self, message: str) -> ProtocolError:
        return ProtocolError(ProtocolErrorReason.MALFORMED, message, backend=self.name)

    # Wire format hooks

    @abstractmethod
    def encode_command(self, command: Command) -> RawCommand:
        """Translate a command into a wire frame."""

    @abstractmethod
    def parse_frame(self, raw: RawCommand) -> Command:
        """Parse a command frame as the device would."""

    @abstractmethod
    def format_ack(self, raw: RawCommand, sequence: int) -> str:
        """Build the device's acknowledgement frame for a command frame."""

    @abstractmethod
    def decode_ack(self, payload: str) -> Command:
        """Translate an acknowledgement frame back into a command."""

    @abstractmethod
    def format_report(self, raw: RawCommand) -> str:
        """Wrap a command frame as an unsolicited report frame."""

    @abstractmethod
    def parse_report(self, payload: str) -> Command:
        """Parse an unsolicited report frame."""
