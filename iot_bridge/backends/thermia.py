"""Thermia thermostat backend.

Thermia thermostats exchange compact JSON frames:

    {"cmd":"setpoint","value":22.5}
    {"cmd":"power","value":true}
    {"cmd":"mode","value":"heat"}

Acknowledgements wrap the frame as ``{"ack":<frame>,"seq":<n>}``;
unsolicited reports as ``{"evt":<frame>}``.
"""

from __future__ import annotations

import json
from typing import Any

from iot_bridge.backends.simulated import SimulatedBackend
from iot_bridge.core.models import BackendKind, Command, Operation, RawCommand


def _dumps(frame: dict[str, Any]) -> str:
    return json.dumps(frame, separators=(",", ":"), sort_keys=True)


class ThermiaBackend(SimulatedBackend):
    """Simulated Thermia thermostat."""

    KIND = BackendKind.THERMIA

    def encode_command(self, command: Command) -> RawCommand:
        """Translate a command into a Thermia JSON frame."""
        return _dumps(self._to_frame(command))

    def parse_frame(self, raw: RawCommand) -> Command:
        return self._from_frame(self._load(raw))

    def format_ack(self, raw: RawCommand, sequence: int) -> str:
        return _dumps({"ack": self._load(raw), "seq": sequence})

    def decode_ack(self, payload: str) -> Command:
        """Translate ``{"ack": <frame>, ...}`` back into a command."""
        message = self._load(payload)
        if "ack" not in message:
            raise self._malformed(f"Not a Thermia ack: {payload!r}")
        return self._from_frame(message["ack"])

    def format_report(self, raw: RawCommand) -> str:
        return _dumps({"evt": self._load(raw)})

    def parse_report(self, payload: str) -> Command:
        message = self._load(payload)
        if "evt" not in message:
            raise self._malformed(f"Not a Thermia report: {payload!r}")
        return self._from_frame(message["evt"])

    def _to_frame(self, command: Command) -> dict[str, Any]:
        operation = command.operation
        value = command.argument(0)

        if operation in (Operation.TURN_ON, Operation.TURN_OFF):
            return {"cmd": "power", "value": operation is Operation.TURN_ON}
        if operation is Operation.SET_TEMPERATURE:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise self._malformed(f"setpoint needs a number, got {value!r}")
            return {"cmd": "setpoint", "value": value}
        if operation is Operation.SET_MODE:
            if not isinstance(value, str):
                raise self._malformed(f"mode needs a string, got {value!r}")
            return {"cmd": "mode", "value": value}
        raise self._malformed(f"No Thermia frame for {operation.value}")

    def _from_frame(self, frame: Any) -> Command:
        if not isinstance(frame, dict) or "cmd" not in frame:
            raise self._malformed(f"Invalid Thermia frame: {frame!r}")

        cmd = frame["cmd"]
        value = frame.get("value")
        if cmd == "power" and isinstance(value, bool):
            return Command.of(Operation.TURN_ON if value else Operation.TURN_OFF)
        if cmd == "setpoint" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return Command.of(Operation.SET_TEMPERATURE, value)
        if cmd == "mode" and isinstance(value, str):
            return Command.of(Operation.SET_MODE, value)
        raise self._malformed(f"Unrecognized Thermia frame: {frame!r}")

    def _load(self, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise self._malformed(f"Invalid JSON: {e}") from e
