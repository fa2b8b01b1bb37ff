"""Runtime configuration.

Config holds the tunables of the integration pipeline (retry bound,
timeouts, thermostat range, logging) and is read from ``IOT_BRIDGE_*``
environment variables. DeviceDefinition describes one device to wire
up; a list of them can be loaded from a YAML file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from iot_bridge.core.models import BackendKind, DeviceCategory

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """Integration pipeline settings.

    Examples:
        >>> Config()  # defaults, overridden by IOT_BRIDGE_* variables

        >>> Config(retry_bound=5, send_timeout_s=2.0)
    """

    model_config = SettingsConfigDict(env_prefix="IOT_BRIDGE_")

    log_level: str = Field(default="INFO", description="Root log level")

    log_json: bool = Field(default=True, description="Emit JSON log lines")

    retry_bound: int = Field(
        default=3,
        ge=1,
        description="Consecutive connection failures before a bridge gives up",
    )

    retry_backoff_s: float = Field(
        default=0.1,
        ge=0.0,
        description="Initial delay between reconnect attempts (doubles each time)",
    )

    retry_backoff_max_s: float = Field(
        default=2.0,
        ge=0.0,
        description="Upper bound for the reconnect delay",
    )

    connect_timeout_s: float = Field(
        default=5.0,
        gt=0.0,
        description="Max time for a single backend connect()",
    )

    send_timeout_s: float = Field(
        default=5.0,
        gt=0.0,
        description="Default deadline for a command, retries included",
    )

    receive_timeout_s: float = Field(
        default=0.5,
        gt=0.0,
        description="Max wait for one device report",
    )

    poll_interval_s: float = Field(
        default=1.0,
        gt=0.0,
        description="Delay between background report polls",
    )

    max_events_per_poll: int = Field(
        default=32,
        ge=1,
        description="Max reports drained in a single poll",
    )

    thermostat_min_c: float = Field(default=5.0, description="Lowest admissible setpoint")

    thermostat_max_c: float = Field(default=35.0, description="Highest admissible setpoint")

    @model_validator(mode="after")
    def check_thermostat_range(self) -> Config:
        """Validate the thermostat range is not inverted."""
        if self.thermostat_min_c > self.thermostat_max_c:
            raise ValueError("thermostat_min_c must not exceed thermostat_max_c")
        return self


class DeviceDefinition(BaseModel):
    """Declarative description of one device.

    Attributes:
        device_id: Globally unique device identifier
        category: Device category (selects the adapter)
        backend: Backend kind (selects the manufacturer protocol)
        backend_config: Backend-specific configuration

    Examples:
        >>> DeviceDefinition(
        ...     device_id="light1",
        ...     category="light",
        ...     backend="lumina",
        ...     backend_config={"latency_ms": 20},
        ... )
    """

    device_id: str = Field(..., min_length=1, description="Unique device identifier")

    category: DeviceCategory = Field(..., description="Device category")

    backend: BackendKind = Field(..., description="Backend kind")

    backend_config: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend-specific configuration",
    )


def load_device_definitions(config_path: Path) -> list[DeviceDefinition]:
    """Load device definitions from a YAML file.

    The file holds a top-level ``devices`` list:

        devices:
          - device_id: light1
            category: light
            backend: lumina

    Args:
        config_path: Path to the YAML file

    Returns:
        Parsed device definitions (empty if the file lists none)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If an entry is invalid
    """
    logger.info(f"Loading device definitions from: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    definitions = [DeviceDefinition(**entry) for entry in data.get("devices", [])]
    logger.info(f"Loaded {len(definitions)} device definitions")
    return definitions
