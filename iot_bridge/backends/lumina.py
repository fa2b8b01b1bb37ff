"""Lumina light controller backend.

Lumina controllers speak an ASCII line protocol:

    PWR ON        switch on
    PWR OFF       switch off
    DIM <0-100>   set brightness percentage

The controller acknowledges with ``OK <frame>`` and reports changes
made at the fixture with ``EVT <frame>``.
"""

from __future__ import annotations

from iot_bridge.backends.simulated import SimulatedBackend
from iot_bridge.core.models import BackendKind, Command, Operation, RawCommand

ACK_PREFIX = "OK "
REPORT_PREFIX = "EVT "


class LuminaBackend(SimulatedBackend):
    """Simulated Lumina light controller."""

    KIND = BackendKind.LUMINA

    def encode_command(self, command: Command) -> RawCommand:
        """Translate a command into a Lumina frame."""
        if command.operation is Operation.TURN_ON:
            return "PWR ON"
        if command.operation is Operation.TURN_OFF:
            return "PWR OFF"
        if command.operation is Operation.SET_BRIGHTNESS:
            level = command.argument(0)
            if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= 100:
                raise self._malformed(f"DIM needs an integer 0-100, got {level!r}")
            return f"DIM {level}"
        raise self._malformed(f"No Lumina frame for {command.operation.value}")

    def parse_frame(self, raw: RawCommand) -> Command:
        """Parse a Lumina command frame."""
        verb, _, argument = raw.strip().partition(" ")
        if verb == "PWR" and argument == "ON":
            return Command.of(Operation.TURN_ON)
        if verb == "PWR" and argument == "OFF":
            return Command.of(Operation.TURN_OFF)
        if verb == "DIM":
            try:
                level = int(argument)
            except ValueError:
                raise self._malformed(f"DIM needs an integer, got {argument!r}") from None
            if not argument.isascii() or not 0 <= level <= 100:
                raise self._malformed(f"DIM needs a level 0-100, got {argument!r}")
            return Command.of(Operation.SET_BRIGHTNESS, level)
        raise self._malformed(f"Unrecognized Lumina frame: {raw!r}")

    def format_ack(self, raw: RawCommand, sequence: int) -> str:
        return f"{ACK_PREFIX}{raw}"

    def decode_ack(self, payload: str) -> Command:
        """Translate ``OK <frame>`` back into a command."""
        if not payload.startswith(ACK_PREFIX):
            raise self._malformed(f"Not a Lumina ack: {payload!r}")
        return self.parse_frame(payload[len(ACK_PREFIX):])

    def format_report(self, raw: RawCommand) -> str:
        return f"{REPORT_PREFIX}{raw}"

    def parse_report(self, payload: str) -> Command:
        if not payload.startswith(REPORT_PREFIX):
            raise self._malformed(f"Not a Lumina report: {payload!r}")
        return self.parse_frame(payload[len(REPORT_PREFIX):])
