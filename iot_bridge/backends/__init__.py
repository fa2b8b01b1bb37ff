"""Manufacturer backends.

Usage:
    >>> from iot_bridge.backends import register
    >>> from iot_bridge.core.registry import BackendRegistry
    >>>
    >>> register()
    >>> backend = BackendRegistry.create("lumina", {"latency_ms": 10})
"""

from iot_bridge.backends.lumina import LuminaBackend
from iot_bridge.backends.mqtt import MqttBackend
from iot_bridge.backends.simulated import SimulatedBackend, SimulatedDevice
from iot_bridge.backends.thermia import ThermiaBackend
from iot_bridge.core.models import BackendKind
from iot_bridge.core.registry import BackendRegistry


def register() -> None:
    """Register the built-in backends with the registry."""
    BackendRegistry.register(BackendKind.LUMINA, LuminaBackend)
    BackendRegistry.register(BackendKind.THERMIA, ThermiaBackend)
    BackendRegistry.register(BackendKind.MQTT, MqttBackend)


__all__ = [
    "LuminaBackend",
    "MqttBackend",
    "SimulatedBackend",
    "SimulatedDevice",
    "ThermiaBackend",
    "register",
]
