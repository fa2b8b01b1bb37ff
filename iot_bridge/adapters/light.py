"""Light adapter."""

from __future__ import annotations

from typing import Any

from iot_bridge.adapters.base import DeviceAdapter
from iot_bridge.core.errors import CommandValidationError, ValidationErrorReason
from iot_bridge.core.models import (
    Command,
    DeviceCategory,
    Operation,
    RawEvent,
    StatusEvent,
)

POWER_ON = "ON"
POWER_OFF = "OFF"


class LightAdapter(DeviceAdapter):
    """Adapter for switchable, dimmable lights.

    Raises ``power`` events with "ON"/"OFF" and ``brightness`` events
    with a 0-100 percentage.
    """

    category = DeviceCategory.LIGHT

    async def turn_on(self) -> StatusEvent:
        """Switch the light on."""
        return await self._execute(Command.of(Operation.TURN_ON), "power", POWER_ON)

    async def turn_off(self) -> StatusEvent:
        """Switch the light off."""
        return await self._execute(Command.of(Operation.TURN_OFF), "power", POWER_OFF)

    async def set_brightness(self, level: int) -> StatusEvent:
        """Set brightness as a percentage.

        Args:
            level: Brightness 0-100

        Raises:
            CommandValidationError: If level is not an integer in 0-100
        """
        if isinstance(level, bool) or not isinstance(level, int):
            raise CommandValidationError(
                ValidationErrorReason.INVALID_VALUE,
                f"Brightness must be an integer, got {level!r}",
                value=level,
            )
        if not 0 <= level <= 100:
            raise CommandValidationError(
                ValidationErrorReason.OUT_OF_RANGE,
                f"Brightness {level} outside 0-100",
                value=level,
            )
        return await self._execute(
            Command.of(Operation.SET_BRIGHTNESS, level), "brightness", level
        )

    def _status_from_report(self, raw: RawEvent) -> tuple[str, Any] | None:
        if raw.operation is Operation.TURN_ON:
            return "power", POWER_ON
        if raw.operation is Operation.TURN_OFF:
            return "power", POWER_OFF
        if raw.operation is Operation.SET_BRIGHTNESS and raw.arguments:
            return "brightness", raw.arguments[0]
        return None
