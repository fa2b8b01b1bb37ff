"""Central registry for manufacturer backends.

Maps a backend kind to the class implementing it and creates
configured instances on demand. Every bridge gets its own backend
instance; the registry never shares or caches instances.
"""

from __future__ import annotations

import logging
from typing import Any

from iot_bridge.core.interfaces.backend import ProtocolBackend
from iot_bridge.core.models import BackendKind

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Central registry for manufacturer backend classes.

    Class Attributes:
        _backends: Mapping of backend kinds to backend classes

    Example:
        >>> BackendRegistry.register(BackendKind.LUMINA, LuminaBackend)
        >>> backend = BackendRegistry.create(BackendKind.LUMINA, {"latency_ms": 5})
    """

    _backends: dict[BackendKind, type[ProtocolBackend]] = {}

    @classmethod
    def register(cls, kind: BackendKind, backend_class: type[ProtocolBackend]) -> None:
        """Register a backend class.

        Args:
            kind: Backend kind the class implements
            backend_class: Class whose instances satisfy ProtocolBackend

        Raises:
            TypeError: If backend_class is not a class
        """
        if not isinstance(backend_class, type):
            raise TypeError(f"backend_class must be a class, got {type(backend_class)}")

        if kind in cls._backends:
            logger.warning(f"Backend '{kind.value}' already registered, overwriting")

        cls._backends[kind] = backend_class
        logger.info(f"Registered backend: {kind.value}")

    @classmethod
    def unregister(cls, kind: BackendKind) -> bool:
        """Unregister a backend class.

        Returns:
            True if backend was unregistered, False if not found
        """
        if kind in cls._backends:
            del cls._backends[kind]
            logger.info(f"Unregistered backend: {kind.value}")
            return True
        return False

    @classmethod
    def list_backends(cls) -> list[BackendKind]:
        """List all registered backend kinds."""
        return list(cls._backends.keys())

    @classmethod
    def is_registered(cls, kind: BackendKind) -> bool:
        """Check if a backend kind is registered."""
        return kind in cls._backends

    @classmethod
    def create(
        cls,
        kind: BackendKind | str,
        config: dict[str, Any] | None = None,
    ) -> ProtocolBackend:
        """Create a new, unconnected backend instance.

        Args:
            kind: Registered backend kind (enum member or its value)
            config: Backend-specific configuration

        Returns:
            Backend instance; the owning bridge is responsible for connecting it

        Raises:
            ValueError: If the kind is unknown or not registered
        """
        kind = BackendKind(kind)
        if kind not in cls._backends:
            available = ", ".join(k.value for k in cls._backends) or "none"
            raise ValueError(
                f"Unknown backend: '{kind.value}'. Available backends: {available}"
            )

        backend = cls._backends[kind](config or {})
        logger.debug(f"Created backend instance: {backend.name}")
        return backend

    @classmethod
    def reset(cls) -> None:
        """Reset the registry (for testing)."""
        cls._backends.clear()
        logger.debug("Backend registry reset")
