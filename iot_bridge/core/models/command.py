"""Protocol-neutral command models.

Defines the generic command vocabulary shared by device adapters and
communication bridges, plus the acknowledgement and raw event values
that travel back from a backend. Nothing here knows about any
manufacturer's wire format.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

# Typed argument values a command may carry
ArgumentValue = Union[bool, int, float, str]

# Backend-specific wire frame
RawCommand = str


class Operation(str, Enum):
    """Generic command vocabulary.

    New members may be added as device categories grow; existing
    members must keep their values since backends key their
    translation tables on them.
    """

    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    SET_BRIGHTNESS = "set_brightness"
    SET_TEMPERATURE = "set_temperature"
    SET_MODE = "set_mode"


class Command(BaseModel):
    """Immutable protocol-neutral command.

    Attributes:
        operation: What the device should do
        arguments: Ordered, typed arguments for the operation

    Examples:
        >>> Command(operation=Operation.TURN_ON)

        >>> Command.of(Operation.SET_TEMPERATURE, 22.5)
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation = Field(..., description="Operation to perform")

    arguments: tuple[ArgumentValue, ...] = Field(
        default=(),
        description="Ordered operation arguments",
    )

    @classmethod
    def of(cls, operation: Operation, *arguments: ArgumentValue) -> Command:
        """Build a command from positional arguments."""
        return cls(operation=operation, arguments=arguments)

    def argument(self, index: int = 0) -> ArgumentValue | None:
        """Get an argument by position, or None if absent."""
        if index < len(self.arguments):
            return self.arguments[index]
        return None


class Ack(BaseModel):
    """Acknowledgement returned by a backend after a successful send.

    Attributes:
        command: Command decoded back from the device's ack frame
        payload: The raw ack frame as received
        sequence: Backend-assigned sequence number
        backend: Name of the backend that produced the ack
    """

    model_config = ConfigDict(frozen=True)

    command: Command
    payload: str
    sequence: int = 0
    backend: str | None = None


class RawEvent(BaseModel):
    """Unsolicited report decoded from a device.

    Carries the operation the device reported as having happened (for
    example a light switched off at the wall reports ``turn_off``). The
    adapter decides what the report means for its device category.

    Attributes:
        operation: Reported operation
        arguments: Reported arguments
        payload: The raw report frame
        received_at: When the frame was read
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation
    arguments: tuple[ArgumentValue, ...] = ()
    payload: str = ""
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def command(self) -> Command:
        """The report expressed as a Command."""
        return Command(operation=self.operation, arguments=self.arguments)
