"""Connection models shared by backends and bridges."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class BackendKind(str, Enum):
    """Known manufacturer backends."""

    LUMINA = "lumina"
    THERMIA = "thermia"
    MQTT = "mqtt"


class ConnectionState(str, Enum):
    """Per-bridge connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionResult(BaseModel):
    """Outcome of ProtocolBackend.connect().

    Attributes:
        state: Backend connection state after the attempt
        detail: Optional human-readable detail (e.g. why it failed)
    """

    state: ConnectionState
    detail: str | None = None

    @property
    def connected(self) -> bool:
        """Check if the attempt left the backend connected."""
        return self.state is ConnectionState.CONNECTED


class ProtocolBinding(BaseModel):
    """Connection bookkeeping owned by a CommunicationBridge.

    Attributes:
        backend_kind: Which backend the bridge talks through
        connection_state: Current connection state
        consecutive_failures: Transport failures since the last success
    """

    backend_kind: BackendKind
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    consecutive_failures: int = Field(default=0, ge=0)
