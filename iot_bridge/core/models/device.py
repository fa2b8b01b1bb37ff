"""Device, status event and snapshot models.

StatusEvent is what adapters raise when an attribute changes.
DeviceStateSnapshot is the hub's cached view of a device; a snapshot is
never mutated in place, every update produces a new one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeviceCategory(str, Enum):
    """Device categories with a dedicated adapter."""

    LIGHT = "light"
    THERMOSTAT = "thermostat"


class StatusEvent(BaseModel):
    """Notification of an attribute change for one device.

    Examples:
        >>> StatusEvent(device_id="light1", attribute="power", value="ON")
    """

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., description="Device that changed")
    attribute: str = Field(..., description="Changed attribute name")
    value: Any = Field(..., description="New attribute value")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the change was observed",
    )


class DeviceStateSnapshot(BaseModel):
    """Last-known attributes of a registered device.

    Attributes:
        device_id: Device identifier
        category: Device category
        attributes: Attribute name -> last known value
        last_updated: When any attribute last changed
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    category: DeviceCategory
    attributes: dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime | None = None

    def with_attribute(
        self,
        attribute: str,
        value: Any,
        timestamp: datetime,
    ) -> DeviceStateSnapshot:
        """Return a new snapshot with one attribute overwritten."""
        attributes = dict(self.attributes)
        attributes[attribute] = value
        return self.model_copy(
            update={"attributes": attributes, "last_updated": timestamp}
        )

    def get(self, attribute: str, default: Any = None) -> Any:
        """Get an attribute value with optional default."""
        return self.attributes.get(attribute, default)
