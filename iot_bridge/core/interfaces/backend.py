"""Manufacturer backend protocol definition.

Defines the capability set every manufacturer backend must satisfy.
A backend is the only component that performs real I/O; everything
above it works on protocol-neutral Command and RawEvent values.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from iot_bridge.core.models import (
    Ack,
    BackendKind,
    Command,
    ConnectionResult,
    RawCommand,
    RawEvent,
)


@runtime_checkable
class ProtocolBackend(Protocol):
    """Protocol for manufacturer backends.

    Using Protocol allows for structural subtyping - any class that
    implements these methods is considered compatible.

    Lifecycle:
        1. Create instance with configuration
        2. Call connect() to establish the link
        3. encode_command() / send_command() / receive_data()
        4. Call disconnect() when done

    Each backend owns the translation table between Command and its
    manufacturer's wire syntax, in both directions.
    """

    @property
    @abstractmethod
    def kind(self) -> BackendKind:
        """Backend kind this instance implements."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend instance label used in logs and errors."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the link is currently up."""
        ...

    @abstractmethod
    async def connect(self) -> ConnectionResult:
        """Establish the link to the device.

        Idempotent: when already connected, returns the current state
        without side effects.

        Returns:
            ConnectionResult describing the resulting state

        Raises:
            TransportError: If the link cannot be established
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Tear down the link. Safe to call when not connected."""
        ...

    @abstractmethod
    def encode_command(self, command: Command) -> RawCommand:
        """Translate a generic command into this manufacturer's wire frame.

        Raises:
            ProtocolError: MALFORMED if the command has no wire form
        """
        ...

    @abstractmethod
    def decode_ack(self, payload: str) -> Command:
        """Translate an acknowledgement frame back into a generic command.

        Raises:
            ProtocolError: MALFORMED if the frame cannot be parsed
        """
        ...

    @abstractmethod
    async def send_command(self, raw: RawCommand) -> Ack:
        """Deliver a wire frame and wait for the device's acknowledgement.

        Raises:
            ProtocolError: DISCONNECTED when not connected,
                MALFORMED when the frame is not understood
            TransportError: If the link fails mid-send
        """
        ...

    @abstractmethod
    async def receive_data(self, timeout: float) -> RawEvent | None:
        """Read one unsolicited device report.

        Waits at most ``timeout`` seconds. Absence of data returns None.

        Raises:
            TransportError: If the link fails while reading
        """
        ...
