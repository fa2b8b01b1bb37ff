"""Error taxonomy for the integration pipeline.

Every error carries a machine-readable ``reason`` so callers can branch
on the failure kind without parsing messages:

- TransportError: link-level failure inside a backend (retryable)
- BridgeConnectionError: connection could not be (re)established
- ProtocolError: a frame could not be encoded/decoded or the link is down
- BridgeError: the bridge refused the request (not initialized, busy, timeout)
- CommandValidationError: caller supplied an out-of-domain value
- RegistrationError: the hub refused a device registration
"""

from __future__ import annotations

from enum import Enum


class ConnectionErrorReason(str, Enum):
    """Why a bridge connection failed."""

    FAILED = "failed"
    EXHAUSTED = "exhausted"


class ProtocolErrorReason(str, Enum):
    """Why a backend rejected a frame."""

    DISCONNECTED = "disconnected"
    MALFORMED = "malformed"


class BridgeErrorReason(str, Enum):
    """Why a bridge refused a command."""

    NOT_INITIALIZED = "not_initialized"
    BUSY = "busy"
    TIMEOUT = "timeout"


class ValidationErrorReason(str, Enum):
    """Why a domain value was rejected."""

    OUT_OF_RANGE = "out_of_range"
    INVALID_VALUE = "invalid_value"


class RegistrationErrorReason(str, Enum):
    """Why a device registration was rejected."""

    DUPLICATE_ID = "duplicate_id"
    CATEGORY_MISMATCH = "category_mismatch"
    ID_MISMATCH = "id_mismatch"


class IntegrationError(Exception):
    """Base exception for integration errors."""

    def __init__(self, message: str, backend: str | None = None) -> None:
        """Initialize integration error.

        Args:
            message: Error description
            backend: Backend name (optional)
        """
        self.backend = backend
        super().__init__(f"[{backend}] {message}" if backend else message)


class TransportError(IntegrationError):
    """Raised by a backend when the underlying link fails."""

    pass


class BridgeConnectionError(IntegrationError):
    """Raised when a bridge cannot establish its connection."""

    def __init__(
        self,
        reason: ConnectionErrorReason,
        message: str,
        backend: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, backend)


class ProtocolError(IntegrationError):
    """Raised when a backend cannot encode, decode or deliver a frame."""

    def __init__(
        self,
        reason: ProtocolErrorReason,
        message: str,
        backend: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, backend)


class BridgeError(IntegrationError):
    """Raised when a bridge refuses or abandons a command."""

    def __init__(
        self,
        reason: BridgeErrorReason,
        message: str,
        backend: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, backend)


class CommandValidationError(IntegrationError):
    """Raised when a domain operation receives an inadmissible value.

    Always raised before any I/O takes place.
    """

    def __init__(
        self,
        reason: ValidationErrorReason,
        message: str,
        value: object = None,
    ) -> None:
        self.reason = reason
        self.value = value
        super().__init__(message)


class RegistrationError(IntegrationError):
    """Raised when the hub rejects a device registration."""

    def __init__(
        self,
        reason: RegistrationErrorReason,
        device_id: str,
        message: str,
    ) -> None:
        self.reason = reason
        self.device_id = device_id
        super().__init__(message)
