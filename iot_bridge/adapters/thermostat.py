"""Thermostat adapter."""

from __future__ import annotations

import math
from typing import Any

from iot_bridge.adapters.base import DeviceAdapter
from iot_bridge.bridge.communication_bridge import CommunicationBridge
from iot_bridge.core.errors import CommandValidationError, ValidationErrorReason
from iot_bridge.core.models import (
    Command,
    DeviceCategory,
    Operation,
    RawEvent,
    StatusEvent,
)

HVAC_MODES = ("off", "heat", "cool", "auto")


class ThermostatAdapter(DeviceAdapter):
    """Adapter for thermostats.

    Raises ``temperature`` events with the setpoint in degrees Celsius
    and ``mode`` events with one of HVAC_MODES. Setpoints outside the
    admissible range are rejected before anything is sent.

    Attributes:
        min_temperature: Lowest admissible setpoint
        max_temperature: Highest admissible setpoint
    """

    category = DeviceCategory.THERMOSTAT

    def __init__(
        self,
        device_id: str,
        bridge: CommunicationBridge,
        *,
        min_temperature: float = 5.0,
        max_temperature: float = 35.0,
        **kwargs: Any,
    ) -> None:
        """Initialize thermostat adapter.

        Args:
            device_id: Device identifier
            bridge: Bridge owned by this adapter
            min_temperature: Lowest admissible setpoint
            max_temperature: Highest admissible setpoint
            **kwargs: Passed through to DeviceAdapter
        """
        if min_temperature > max_temperature:
            raise ValueError("min_temperature must not exceed max_temperature")
        super().__init__(device_id, bridge, **kwargs)
        self.min_temperature = min_temperature
        self.max_temperature = max_temperature

    async def set_temperature(self, value: float) -> StatusEvent:
        """Set the target temperature.

        Args:
            value: Setpoint in degrees Celsius

        Raises:
            CommandValidationError: INVALID_VALUE for non-numbers,
                OUT_OF_RANGE outside [min_temperature, max_temperature]
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise CommandValidationError(
                ValidationErrorReason.INVALID_VALUE,
                f"Temperature must be a number, got {value!r}",
                value=value,
            )
        if not self.min_temperature <= value <= self.max_temperature:
            raise CommandValidationError(
                ValidationErrorReason.OUT_OF_RANGE,
                f"Temperature {value} outside "
                f"{self.min_temperature}-{self.max_temperature}",
                value=value,
            )
        return await self._execute(
            Command.of(Operation.SET_TEMPERATURE, value), "temperature", value
        )

    async def set_mode(self, mode: str) -> StatusEvent:
        """Set the HVAC mode.

        Raises:
            CommandValidationError: If mode is not one of HVAC_MODES
        """
        if mode not in HVAC_MODES:
            raise CommandValidationError(
                ValidationErrorReason.INVALID_VALUE,
                f"Unknown mode {mode!r}, expected one of {', '.join(HVAC_MODES)}",
                value=mode,
            )
        return await self._execute(Command.of(Operation.SET_MODE, mode), "mode", mode)

    def _status_from_report(self, raw: RawEvent) -> tuple[str, Any] | None:
        if raw.operation is Operation.SET_TEMPERATURE and raw.arguments:
            return "temperature", raw.arguments[0]
        if raw.operation is Operation.SET_MODE and raw.arguments:
            return "mode", raw.arguments[0]
        if raw.operation is Operation.TURN_OFF:
            return "mode", "off"
        return None
