"""Communication bridge between device adapters and manufacturer backends.

The bridge is the single seam between protocol-neutral commands and a
manufacturer's wire format. It owns exactly one backend, injected at
construction, and is the only writer of that backend's ProtocolBinding.

Connection state machine:
    DISCONNECTED -> CONNECTING -> CONNECTED
    CONNECTED -> DISCONNECTED on transport failure

Transport failures (failed connects, failed sends) are retried
transparently with exponential backoff. The consecutive failure counter
only resets when initialize() succeeds, a command is acknowledged or a
device report is decoded. Once it reaches ``retry_bound`` the bridge is
exhausted and refuses all further work with BridgeConnectionError(EXHAUSTED).

The receive path reconnects a dropped link with one attempt per call,
so a device that is only polled keeps reporting after a link drop.
"""

from __future__ import annotations

import asyncio
import logging

from iot_bridge.config import Config
from iot_bridge.core.errors import (
    BridgeConnectionError,
    BridgeError,
    BridgeErrorReason,
    ConnectionErrorReason,
    ProtocolError,
    ProtocolErrorReason,
    TransportError,
)
from iot_bridge.core.interfaces.backend import ProtocolBackend
from iot_bridge.core.models import (
    Ack,
    Command,
    ConnectionState,
    ProtocolBinding,
    RawEvent,
)

logger = logging.getLogger(__name__)

# Extra time granted on top of the backend's own receive timeout
RECEIVE_GRACE_S = 0.5


class CommunicationBridge:
    """Protocol-neutral command/response surface over one backend.

    Usage:
        bridge = CommunicationBridge(LuminaBackend({}))
        await bridge.initialize()
        ack = await bridge.send(Command.of(Operation.TURN_ON))
        event = await bridge.receive()
    """

    def __init__(
        self,
        backend: ProtocolBackend,
        *,
        retry_bound: int = 3,
        retry_backoff_s: float = 0.1,
        retry_backoff_max_s: float = 2.0,
        connect_timeout_s: float = 5.0,
        send_timeout_s: float = 5.0,
        receive_timeout_s: float = 0.5,
    ) -> None:
        """Initialize communication bridge.

        Args:
            backend: Manufacturer backend; owned by this bridge for its lifetime
            retry_bound: Consecutive failures tolerated before giving up
            retry_backoff_s: Initial reconnect delay
            retry_backoff_max_s: Maximum reconnect delay
            connect_timeout_s: Bound for one backend connect()
            send_timeout_s: Default deadline for send(), retries included
            receive_timeout_s: Bound for one backend read
        """
        if retry_bound < 1:
            raise ValueError("retry_bound must be at least 1")

        self._backend = backend
        self._binding = ProtocolBinding(backend_kind=backend.kind)
        self._state_lock = asyncio.Lock()
        self._initialized = False
        self._last_failure: str | None = None

        self.retry_bound = retry_bound
        self.retry_backoff_s = retry_backoff_s
        self.retry_backoff_max_s = retry_backoff_max_s
        self.connect_timeout_s = connect_timeout_s
        self.send_timeout_s = send_timeout_s
        self.receive_timeout_s = receive_timeout_s

        self.malformed_reports = 0

    @classmethod
    def from_config(cls, backend: ProtocolBackend, config: Config) -> CommunicationBridge:
        """Create a bridge using the tunables from a Config."""
        return cls(
            backend,
            retry_bound=config.retry_bound,
            retry_backoff_s=config.retry_backoff_s,
            retry_backoff_max_s=config.retry_backoff_max_s,
            connect_timeout_s=config.connect_timeout_s,
            send_timeout_s=config.send_timeout_s,
            receive_timeout_s=config.receive_timeout_s,
        )

    @property
    def backend(self) -> ProtocolBackend:
        """The backend this bridge owns."""
        return self._backend

    @property
    def binding(self) -> ProtocolBinding:
        """Copy of the current protocol binding."""
        return self._binding.model_copy()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._binding.connection_state

    @property
    def is_initialized(self) -> bool:
        """Whether initialize() has succeeded."""
        return self._initialized

    @property
    def is_exhausted(self) -> bool:
        """Whether the retry bound has been reached."""
        return self._binding.consecutive_failures >= self.retry_bound

    async def initialize(self) -> None:
        """Connect the backend, retrying up to the configured bound.

        Raises:
            BridgeConnectionError: EXHAUSTED when the retry bound is reached
        """
        self._raise_if_exhausted()
        async with self._state_lock:
            await self._connect_with_retry()
            self._clear_failures("initialized")
        self._initialized = True
        logger.info(f"Bridge initialized over {self._backend.name}")

    async def send(self, command: Command, timeout: float | None = None) -> Ack:
        """Send a command and wait for its acknowledgement.

        Args:
            command: Protocol-neutral command
            timeout: Deadline in seconds covering retries (default: send_timeout_s)

        Returns:
            Ack from the backend

        Raises:
            BridgeError: NOT_INITIALIZED before initialize(), TIMEOUT past the deadline
            BridgeConnectionError: EXHAUSTED when the retry bound is reached
            ProtocolError: MALFORMED when the backend cannot encode the command
        """
        self._raise_if_exhausted()
        if not self._initialized:
            raise BridgeError(
                BridgeErrorReason.NOT_INITIALIZED,
                "send() called before a successful initialize()",
                backend=self._backend.name,
            )

        raw = self._backend.encode_command(command)
        deadline = self.send_timeout_s if timeout is None else timeout

        try:
            return await asyncio.wait_for(self._send_with_retry(raw), deadline)
        except asyncio.TimeoutError:
            logger.warning(
                f"{self._backend.name}: {command.operation.value} exceeded {deadline}s deadline"
            )
            await self._abandon_link("send deadline exceeded")
            raise BridgeError(
                BridgeErrorReason.TIMEOUT,
                f"No acknowledgement within {deadline}s",
                backend=self._backend.name,
            ) from None

    async def receive(self) -> RawEvent | None:
        """Read one unsolicited device report, if any.

        Never blocks beyond the receive timeout. A link found down is
        re-established with a single connect attempt first; a failed
        attempt counts towards the retry bound. Returns None when there
        is nothing to read, when the link is down or being re-established
        by another caller, and when a report cannot be decoded.
        """
        if not self._initialized or self.is_exhausted:
            return None
        if self._state_lock.locked():
            return None

        if not self._link_up():
            async with self._state_lock:
                if not await self._try_connect():
                    return None

        try:
            event = await asyncio.wait_for(
                self._backend.receive_data(self.receive_timeout_s),
                self.receive_timeout_s + RECEIVE_GRACE_S,
            )
        except asyncio.TimeoutError:
            return None
        except ProtocolError as e:
            self.malformed_reports += 1
            logger.warning(f"Dropping undecodable report: {e}")
            return None
        except TransportError as e:
            async with self._state_lock:
                await self._record_failure(str(e))
            return None

        if event is not None and self._binding.consecutive_failures:
            async with self._state_lock:
                self._clear_failures("report received")
        return event

    async def close(self) -> None:
        """Disconnect the backend. The bridge must be re-initialized before use."""
        async with self._state_lock:
            await self._disconnect_backend()
            self._set_state(ConnectionState.DISCONNECTED)
        self._initialized = False
        logger.info(f"Bridge over {self._backend.name} closed")

    async def _send_with_retry(self, raw: str) -> Ack:
        while True:
            async with self._state_lock:
                if not self._link_up():
                    await self._connect_with_retry()

            try:
                ack = await self._backend.send_command(raw)
            except TransportError as e:
                await self._fail_and_back_off(str(e))
                continue
            except ProtocolError as e:
                if e.reason is not ProtocolErrorReason.DISCONNECTED:
                    raise
                await self._fail_and_back_off(str(e))
                continue

            if self._binding.consecutive_failures:
                async with self._state_lock:
                    self._clear_failures("command acknowledged")
            return ack

    async def _connect_with_retry(self) -> None:
        # caller holds _state_lock
        while not self._link_up():
            if await self._try_connect():
                return
            self._raise_if_exhausted()
            await asyncio.sleep(self._backoff_delay())

    async def _try_connect(self) -> bool:
        """Make one connect attempt, recording a failure if it does not succeed."""
        # caller holds _state_lock
        self._set_state(ConnectionState.CONNECTING)
        try:
            result = await asyncio.wait_for(self._backend.connect(), self.connect_timeout_s)
            detail = result.detail
            connected = result.connected
        except TransportError as e:
            detail, connected = str(e), False
        except asyncio.TimeoutError:
            detail, connected = f"connect timed out after {self.connect_timeout_s}s", False

        if connected:
            self._set_state(ConnectionState.CONNECTED)
            return True

        await self._record_failure(detail or "connect failed")
        return False

    async def _fail_and_back_off(self, detail: str) -> None:
        async with self._state_lock:
            await self._record_failure(detail)
        self._raise_if_exhausted()
        await asyncio.sleep(self._backoff_delay())

    async def _record_failure(self, detail: str) -> None:
        # caller holds _state_lock
        await self._disconnect_backend()
        self._set_state(ConnectionState.DISCONNECTED)
        self._binding.consecutive_failures += 1
        failures = self._binding.consecutive_failures

        self._last_failure = detail

        logger.warning(
            f"{self._backend.name}: failure {failures}/{self.retry_bound}: {detail}"
        )
        if failures >= self.retry_bound:
            logger.error(f"{self._backend.name}: retry bound reached, giving up")

    def _clear_failures(self, reason: str) -> None:
        # caller holds _state_lock
        if self._binding.consecutive_failures:
            logger.info(
                f"{self._backend.name}: {reason} after "
                f"{self._binding.consecutive_failures} failures"
            )
        self._binding.consecutive_failures = 0

    async def _abandon_link(self, detail: str) -> None:
        async with self._state_lock:
            await self._disconnect_backend()
            self._set_state(ConnectionState.DISCONNECTED)
        logger.info(f"{self._backend.name}: link reset ({detail})")

    async def _disconnect_backend(self) -> None:
        try:
            await self._backend.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting backend '{self._backend.name}': {e}")

    def _raise_if_exhausted(self) -> None:
        if self.is_exhausted:
            raise BridgeConnectionError(
                ConnectionErrorReason.EXHAUSTED,
                f"{self._binding.consecutive_failures} consecutive connection failures "
                f"(last: {self._last_failure})",
                backend=self._backend.name,
            )

    def _link_up(self) -> bool:
        return (
            self._binding.connection_state is ConnectionState.CONNECTED
            and self._backend.is_connected
        )

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._binding.connection_state:
            logger.debug(
                f"{self._backend.name}: {self._binding.connection_state.value} -> {state.value}"
            )
            self._binding.connection_state = state

    def _backoff_delay(self) -> float:
        failures = max(self._binding.consecutive_failures, 1)
        return min(self.retry_backoff_s * 2 ** (failures - 1), self.retry_backoff_max_s)
