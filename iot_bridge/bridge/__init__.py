"""Communication bridge."""

from iot_bridge.bridge.communication_bridge import CommunicationBridge

__all__ = ["CommunicationBridge"]
