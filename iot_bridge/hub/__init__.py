"""Device registry and state notification hub."""

from iot_bridge.hub.notification_hub import Device, NotificationHub

__all__ = ["Device", "NotificationHub"]
