"""Per-category device adapters."""

from iot_bridge.adapters.base import DeviceAdapter, StatusListener
from iot_bridge.adapters.light import LightAdapter
from iot_bridge.adapters.thermostat import ThermostatAdapter
from iot_bridge.core.models import DeviceCategory

ADAPTERS: dict[DeviceCategory, type[DeviceAdapter]] = {
    DeviceCategory.LIGHT: LightAdapter,
    DeviceCategory.THERMOSTAT: ThermostatAdapter,
}

__all__ = [
    "ADAPTERS",
    "DeviceAdapter",
    "LightAdapter",
    "StatusListener",
    "ThermostatAdapter",
]
