"""Device assembly.

Builds the backend -> bridge -> adapter chain for a DeviceDefinition.
Ownership is fixed here, once: the backend is handed to a new bridge and
the bridge to a new adapter, and neither is reassigned afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

from iot_bridge.adapters import ADAPTERS, DeviceAdapter, ThermostatAdapter
from iot_bridge.bridge import CommunicationBridge
from iot_bridge.config import Config, DeviceDefinition, load_device_definitions
from iot_bridge.core.errors import RegistrationError
from iot_bridge.core.registry import BackendRegistry
from iot_bridge.hub import NotificationHub

logger = logging.getLogger(__name__)


def build_adapter(definition: DeviceDefinition, config: Config | None = None) -> DeviceAdapter:
    """Create an adapter, its bridge and its backend for one device.

    Args:
        definition: Device to build
        config: Pipeline settings (default: read from environment)

    Returns:
        Uninitialized adapter; call initialize() before use

    Raises:
        ValueError: If the backend kind is not registered
    """
    config = config or Config()

    backend = BackendRegistry.create(definition.backend, definition.backend_config)
    bridge = CommunicationBridge.from_config(backend, config)

    adapter_class = ADAPTERS[definition.category]
    options = {
        "command_timeout_s": config.send_timeout_s,
        "poll_interval_s": config.poll_interval_s,
        "max_events_per_poll": config.max_events_per_poll,
    }
    if adapter_class is ThermostatAdapter:
        options["min_temperature"] = config.thermostat_min_c
        options["max_temperature"] = config.thermostat_max_c

    adapter = adapter_class(definition.device_id, bridge, **options)
    logger.debug(
        f"Built {definition.category.value} adapter '{definition.device_id}' "
        f"over {definition.backend.value}"
    )
    return adapter


async def register_devices(
    hub: NotificationHub,
    definitions: list[DeviceDefinition],
    config: Config | None = None,
) -> list[DeviceAdapter]:
    """Build, initialize and register a batch of devices.

    Devices whose bridge cannot be initialized, or that the hub rejects,
    are skipped and logged; a rejected device's bridge is closed again.
    The rest are registered with the hub.

    Returns:
        Adapters that were successfully registered
    """
    config = config or Config()
    registered: list[DeviceAdapter] = []

    for definition in definitions:
        adapter = build_adapter(definition, config)
        try:
            await adapter.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize device '{definition.device_id}': {e}")
            continue

        try:
            hub.register_device(adapter, definition.device_id, definition.category)
        except RegistrationError as e:
            await adapter.close()
            logger.error(f"Failed to register device '{definition.device_id}': {e}")
            continue
        registered.append(adapter)

    logger.info(f"Registered {len(registered)}/{len(definitions)} devices")
    return registered


async def register_devices_from_file(
    hub: NotificationHub,
    config_path: Path,
    config: Config | None = None,
) -> list[DeviceAdapter]:
    """Load device definitions from YAML and register them with the hub."""
    return await register_devices(hub, load_device_definitions(config_path), config)
