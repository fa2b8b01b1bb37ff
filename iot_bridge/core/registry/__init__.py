"""Backend registry."""

from iot_bridge.core.registry.backend_registry import BackendRegistry

__all__ = ["BackendRegistry"]
