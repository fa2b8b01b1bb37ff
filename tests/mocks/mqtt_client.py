"""Mock paho MQTT client for testing without a live broker.

Mimics the parts of ``paho.mqtt.client.Client`` the MQTT backend uses:
callback attributes, connect/loop/subscribe/publish, and topic
wildcard matching for subscriptions. A simulated device can
auto-acknowledge every command published to a ``.../set`` topic.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class MockMessage:
    """Minimal stand-in for paho's MQTTMessage."""

    topic: str
    payload: bytes


@dataclass
class MockPublishResult:
    """Minimal stand-in for paho's MQTTMessageInfo."""

    rc: int = 0


class MockMQTTClient:
    """Mock MQTT client that simulates broker behavior without network connection."""

    def __init__(self, auto_ack: bool = True, connect_rc: int = 0):
        """
        Initialize mock client.

        Args:
            auto_ack: Echo every command on ``.../set`` back on ``.../ack``
            connect_rc: Reason code passed to on_connect (0 = accepted)
        """
        self.auto_ack = auto_ack
        self.connect_rc = connect_rc
        self.published_messages: List[Dict[str, Any]] = []
        self.subscriptions: List[str] = []
        self.connect_calls = 0
        self.loop_running = False
        self.loop_running_at_disconnect: Optional[bool] = None
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> int:
        """Simulate connection to MQTT broker."""
        self.connect_calls += 1
        self.host = host
        self.port = port
        if self.on_connect is not None:
            self.on_connect(self, None, {}, self.connect_rc, None)
        return 0

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        """Simulate disconnection from MQTT broker."""
        self.loop_running_at_disconnect = self.loop_running
        self.subscriptions.clear()

    def subscribe(self, topic: Any, qos: int = 0) -> None:
        """
        Simulate subscribing to a topic or a list of (topic, qos) pairs.
        """
        topics = [t for t, _ in topic] if isinstance(topic, list) else [topic]
        self.subscriptions.extend(topics)

    def publish(self, topic: str, payload: str, qos: int = 0) -> MockPublishResult:
        """
        Simulate publishing a message.

        Args:
            topic: MQTT topic string
            payload: Message payload (typically JSON string)
            qos: Quality of Service level (0, 1, 2)
        """
        self.published_messages.append({
            "topic": topic,
            "payload": payload,
            "qos": qos
        })

        if self.auto_ack and topic.endswith("/set"):
            self.simulate_message(topic[: -len("/set")] + "/ack", payload)
        return MockPublishResult()

    def simulate_message(self, topic: str, payload: str) -> None:
        """
        Simulate receiving a message from the broker.

        Args:
            topic: MQTT topic string
            payload: Message payload
        """
        if self.on_message is None:
            return
        if any(self._topic_matches(topic, pattern) for pattern in self.subscriptions):
            self.on_message(self, None, MockMessage(topic, payload.encode("utf-8")))

    def simulate_disconnect(self, reason_code: int = 7) -> None:
        """Simulate the broker dropping the session."""
        if self.on_disconnect is not None:
            self.on_disconnect(self, None, {}, reason_code, None)

    def get_published_to(self, topic_pattern: str) -> List[Dict[str, Any]]:
        """
        Get all messages published to topics matching the pattern.
        """
        return [
            msg for msg in self.published_messages
            if self._topic_matches(msg["topic"], topic_pattern)
        ]

    def _topic_matches(self, topic: str, pattern: str) -> bool:
        """
        Check if topic matches MQTT subscription pattern.

        Supports MQTT wildcards:
        - + matches single level
        - # matches multiple levels
        """
        pattern_regex = pattern.replace('+', '[^/]+').replace('#', '.*')
        pattern_regex = '^' + pattern_regex + '$'
        return bool(re.match(pattern_regex, topic))
