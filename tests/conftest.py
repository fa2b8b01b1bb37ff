"""Pytest configuration and shared fixtures for iot-bridge tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from iot_bridge.adapters import LightAdapter, ThermostatAdapter
from iot_bridge.backends import LuminaBackend, ThermiaBackend, register
from iot_bridge.bridge import CommunicationBridge
from iot_bridge.config import Config
from iot_bridge.core.registry import BackendRegistry
from iot_bridge.hub import NotificationHub


class ListenerSpy:
    """Status listener that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any, Any]] = []

    def __call__(self, device_id: str, attribute: str, value: Any, timestamp: Any) -> None:
        self.calls.append((device_id, attribute, value, timestamp))

    @property
    def changes(self) -> list[tuple[str, str, Any]]:
        """Recorded calls without timestamps."""
        return [(d, a, v) for d, a, v, _ in self.calls]


@pytest.fixture(autouse=True)
def backend_registry() -> Iterator[None]:
    """Register the built-in backends for each test."""
    register()
    yield
    BackendRegistry.reset()


@pytest.fixture
def config() -> Config:
    """Fixture providing fast test settings.

    Returns:
        Config with no backoff and short timeouts
    """
    return Config(
        retry_bound=3,
        retry_backoff_s=0.0,
        retry_backoff_max_s=0.0,
        connect_timeout_s=1.0,
        send_timeout_s=2.0,
        receive_timeout_s=0.05,
        poll_interval_s=0.01,
        max_events_per_poll=8,
        thermostat_min_c=5.0,
        thermostat_max_c=35.0,
        log_json=False,
    )


@pytest.fixture
def lumina_backend() -> LuminaBackend:
    """Fixture providing a simulated Lumina light controller."""
    return LuminaBackend({"name": "lumina-test"})


@pytest.fixture
def thermia_backend() -> ThermiaBackend:
    """Fixture providing a simulated Thermia thermostat."""
    return ThermiaBackend({"name": "thermia-test"})


@pytest.fixture
def light_bridge(lumina_backend: LuminaBackend, config: Config) -> CommunicationBridge:
    """Fixture providing an uninitialized bridge over the Lumina backend."""
    return CommunicationBridge.from_config(lumina_backend, config)


@pytest.fixture
def thermostat_bridge(thermia_backend: ThermiaBackend, config: Config) -> CommunicationBridge:
    """Fixture providing an uninitialized bridge over the Thermia backend."""
    return CommunicationBridge.from_config(thermia_backend, config)


@pytest.fixture
def light(light_bridge: CommunicationBridge, config: Config) -> LightAdapter:
    """Fixture providing an uninitialized light adapter ("light1")."""
    return LightAdapter(
        "light1",
        light_bridge,
        command_timeout_s=config.send_timeout_s,
        poll_interval_s=config.poll_interval_s,
        max_events_per_poll=config.max_events_per_poll,
    )


@pytest.fixture
def thermostat(thermostat_bridge: CommunicationBridge, config: Config) -> ThermostatAdapter:
    """Fixture providing an uninitialized thermostat adapter ("thermostat1")."""
    return ThermostatAdapter(
        "thermostat1",
        thermostat_bridge,
        min_temperature=config.thermostat_min_c,
        max_temperature=config.thermostat_max_c,
        command_timeout_s=config.send_timeout_s,
        poll_interval_s=config.poll_interval_s,
        max_events_per_poll=config.max_events_per_poll,
    )


@pytest.fixture
def hub() -> NotificationHub:
    """Fixture providing an empty notification hub."""
    return NotificationHub()


@pytest.fixture
def spy() -> ListenerSpy:
    """Fixture providing a recording status listener."""
    return ListenerSpy()
