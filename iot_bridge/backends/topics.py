"""MQTT topic configuration with versioning support.

Topic layout: {version}/{base_prefix}/device/{address}/{set|ack|state}
"""

from dataclasses import dataclass
import os


@dataclass
class MqttTopicConfig:
    """Configuration for MQTT device topics."""

    version: str = "v1"
    base_prefix: str = "iot_bridge"

    def __post_init__(self):
        # Load from environment
        self.version = os.getenv("IOT_BRIDGE_MQTT_TOPIC_VERSION", self.version)
        self.base_prefix = os.getenv("IOT_BRIDGE_MQTT_BASE_PREFIX", self.base_prefix)

    def _base(self, address: str) -> str:
        """Build base topic path."""
        return f"{self.version}/{self.base_prefix}/device/{address}"

    def command(self, address: str) -> str:
        """Commands published to the device."""
        return f"{self._base(address)}/set"

    def ack(self, address: str) -> str:
        """Acknowledgements published by the device."""
        return f"{self._base(address)}/ack"

    def state(self, address: str) -> str:
        """Unsolicited state reports published by the device."""
        return f"{self._base(address)}/state"
