"""Protocol-neutral data models.

These models are the common language between device adapters,
communication bridges and manufacturer backends.
"""

from iot_bridge.core.models.command import (
    Ack,
    ArgumentValue,
    Command,
    Operation,
    RawCommand,
    RawEvent,
)
from iot_bridge.core.models.connection import (
    BackendKind,
    ConnectionResult,
    ConnectionState,
    ProtocolBinding,
)
from iot_bridge.core.models.device import (
    DeviceCategory,
    DeviceStateSnapshot,
    StatusEvent,
)

__all__ = [
    "Ack",
    "ArgumentValue",
    "BackendKind",
    "Command",
    "ConnectionResult",
    "ConnectionState",
    "DeviceCategory",
    "DeviceStateSnapshot",
    "Operation",
    "ProtocolBinding",
    "RawCommand",
    "RawEvent",
    "StatusEvent",
]
