"""Uniform command/status integration for heterogeneous IoT devices.

Three layers:
    backends + bridge: how to talk to a device
    adapters: what the device does
    hub: who learns about state changes
"""

from iot_bridge.adapters import DeviceAdapter, LightAdapter, ThermostatAdapter
from iot_bridge.bridge import CommunicationBridge
from iot_bridge.config import Config, DeviceDefinition
from iot_bridge.core.models import (
    BackendKind,
    Command,
    DeviceCategory,
    Operation,
    StatusEvent,
)
from iot_bridge.hub import NotificationHub

__all__ = [
    "BackendKind",
    "Command",
    "CommunicationBridge",
    "Config",
    "DeviceAdapter",
    "DeviceCategory",
    "DeviceDefinition",
    "LightAdapter",
    "NotificationHub",
    "Operation",
    "StatusEvent",
    "ThermostatAdapter",
]
