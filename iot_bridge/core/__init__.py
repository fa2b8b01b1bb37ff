"""Core abstractions for the integration pipeline.

Modules:
    interfaces: Protocol definition for manufacturer backends
    models: Protocol-neutral data models (Command, RawEvent, StatusEvent, ...)
    registry: Backend registration
    errors: Error taxonomy
"""

from iot_bridge.core.interfaces import ProtocolBackend
from iot_bridge.core.models import (
    Ack,
    BackendKind,
    Command,
    ConnectionState,
    DeviceCategory,
    Operation,
    RawEvent,
    StatusEvent,
)

__all__ = [
    "ProtocolBackend",
    "Ack",
    "BackendKind",
    "Command",
    "ConnectionState",
    "DeviceCategory",
    "Operation",
    "RawEvent",
    "StatusEvent",
]
