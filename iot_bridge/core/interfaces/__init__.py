"""Protocol definitions for manufacturer backends."""

from iot_bridge.core.interfaces.backend import ProtocolBackend

__all__ = ["ProtocolBackend"]
