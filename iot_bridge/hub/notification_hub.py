"""Central device registry with push-based state tracking.

The hub keeps one DeviceStateSnapshot per registered device and
subscribes to each device adapter so snapshots change as soon as an
adapter raises a status event. Snapshots are replaced wholesale under a
lock, so readers never observe a partially applied update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from iot_bridge.adapters.base import DeviceAdapter, StatusListener
from iot_bridge.core.errors import RegistrationError, RegistrationErrorReason
from iot_bridge.core.models import DeviceCategory, DeviceStateSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Device:
    """A registered device.

    Attributes:
        device_id: Globally unique identifier
        category: Device category
        adapter: Adapter driving the device
        listener: Subscription the hub holds on the adapter
    """

    device_id: str
    category: DeviceCategory
    adapter: DeviceAdapter
    listener: StatusListener = field(repr=False, compare=False)


class NotificationHub:
    """Registry of known devices and their last-known state.

    Example:
        >>> hub = NotificationHub()
        >>> hub.register_device(light, "light1", DeviceCategory.LIGHT)
        >>> await light.turn_on()
        >>> hub.get_snapshot("light1").get("power")
        'ON'
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}
        self._snapshots: dict[str, DeviceStateSnapshot] = {}
        self._lock = threading.RLock()
        self._dropped_events = 0

    @property
    def dropped_events(self) -> int:
        """Events dropped because their device was not registered."""
        return self._dropped_events

    def register_device(
        self,
        adapter: DeviceAdapter,
        device_id: str,
        category: DeviceCategory,
    ) -> Device:
        """Register a device and subscribe to its status events.

        Args:
            adapter: Adapter driving the device
            device_id: Globally unique identifier
            category: Device category

        Returns:
            The registered Device

        Raises:
            RegistrationError: DUPLICATE_ID if the id is taken,
                ID_MISMATCH / CATEGORY_MISMATCH if the adapter disagrees
        """
        category = DeviceCategory(category)

        with self._lock:
            # A taken id is reported as such whatever adapter was offered
            if device_id in self._devices:
                raise RegistrationError(
                    RegistrationErrorReason.DUPLICATE_ID,
                    device_id,
                    f"Device already registered: {device_id}",
                )
            if adapter.device_id != device_id:
                raise RegistrationError(
                    RegistrationErrorReason.ID_MISMATCH,
                    device_id,
                    f"Adapter reports id '{adapter.device_id}', not '{device_id}'",
                )
            if adapter.category is not category:
                raise RegistrationError(
                    RegistrationErrorReason.CATEGORY_MISMATCH,
                    device_id,
                    f"Adapter handles '{adapter.category.value}', not '{category.value}'",
                )

            device = Device(
                device_id=device_id,
                category=category,
                adapter=adapter,
                listener=self._on_status_changed,
            )
            self._devices[device_id] = device
            self._snapshots[device_id] = DeviceStateSnapshot(
                device_id=device_id,
                category=category,
            )
            adapter.subscribe(device.listener)

        logger.info(f"Registered device: {device_id} ({category.value})")
        return device

    def unregister_device(self, device_id: str) -> bool:
        """Unregister a device and drop its subscription.

        Returns:
            True if the device was removed, False if it was not registered
        """
        with self._lock:
            device = self._devices.pop(device_id, None)
            if device is None:
                return False
            self._snapshots.pop(device_id, None)
            device.adapter.unsubscribe(device.listener)

        logger.info(f"Unregistered device: {device_id}")
        return True

    def update(
        self,
        device_id: str,
        attribute: str,
        value: Any,
        timestamp: datetime | None = None,
    ) -> None:
        """Overwrite one attribute in a device's snapshot.

        Never raises for unknown devices: a device may be unregistered
        while one of its notifications is still in flight. Such events
        are dropped and counted.
        """
        with self._lock:
            snapshot = self._snapshots.get(device_id)
            if snapshot is None:
                self._dropped_events += 1
                logger.warning(
                    f"Dropping {attribute} update for unregistered device: {device_id}"
                )
                return
            self._snapshots[device_id] = snapshot.with_attribute(
                attribute,
                value,
                timestamp or datetime.now(timezone.utc),
            )

        logger.debug(f"{device_id}.{attribute} = {value!r}")

    def get_device(self, device_id: str) -> Device | None:
        """Get a registered device, or None."""
        with self._lock:
            return self._devices.get(device_id)

    def get_snapshot(self, device_id: str) -> DeviceStateSnapshot | None:
        """Get a copy of a device's snapshot, or None if not registered."""
        with self._lock:
            snapshot = self._snapshots.get(device_id)
            return snapshot.model_copy(deep=True) if snapshot else None

    def snapshots(self) -> dict[str, DeviceStateSnapshot]:
        """Get copies of all snapshots keyed by device id."""
        with self._lock:
            return {
                device_id: snapshot.model_copy(deep=True)
                for device_id, snapshot in self._snapshots.items()
            }

    def list_devices(self, category: DeviceCategory | None = None) -> list[Device]:
        """List registered devices, optionally filtered by category."""
        with self._lock:
            devices = list(self._devices.values())
        if category is None:
            return devices
        return [d for d in devices if d.category is category]

    def is_registered(self, device_id: str) -> bool:
        """Check if a device id is registered."""
        with self._lock:
            return device_id in self._devices

    def start_polling(self) -> None:
        """Start background report polling on every registered adapter."""
        for device in self.list_devices():
            device.adapter.start_polling()

    async def shutdown(self) -> None:
        """Close every registered adapter and clear the registry."""
        for device in self.list_devices():
            try:
                await device.adapter.close()
            except Exception as e:
                logger.error(f"Error closing device '{device.device_id}': {e}")
            finally:
                self.unregister_device(device.device_id)
        logger.info("Notification hub shut down")

    def _on_status_changed(
        self,
        device_id: str,
        attribute: str,
        value: Any,
        timestamp: datetime,
    ) -> None:
        self.update(device_id, attribute, value, timestamp)
