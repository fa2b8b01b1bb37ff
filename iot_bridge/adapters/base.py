"""Device adapter base class.

A device adapter turns domain operations (turn a light on, set a
thermostat) into protocol-neutral commands, sends them through the one
CommunicationBridge it owns, and raises status events for listeners
once the bridge confirms delivery.

Command execution is serialized per adapter: one send is in flight at a
time, later calls queue on the adapter lock for at most
``command_timeout_s`` seconds and then fail with BridgeError(BUSY).
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Callable, ClassVar

from iot_bridge.bridge.communication_bridge import CommunicationBridge
from iot_bridge.core.errors import BridgeError, BridgeErrorReason
from iot_bridge.core.models import (
    Ack,
    Command,
    DeviceCategory,
    RawEvent,
    StatusEvent,
)

logger = logging.getLogger(__name__)

# listener(device_id, attribute, value, timestamp)
StatusListener = Callable[[str, str, Any, datetime], None]


class DeviceAdapter(ABC):
    """Base class for per-category device adapters.

    Subclasses add the category's domain operations and map device
    reports to status attributes.

    Attributes:
        category: Device category this adapter handles
    """

    category: ClassVar[DeviceCategory]

    def __init__(
        self,
        device_id: str,
        bridge: CommunicationBridge,
        *,
        command_timeout_s: float = 5.0,
        poll_interval_s: float = 1.0,
        max_events_per_poll: int = 32,
    ) -> None:
        """Initialize device adapter.

        Args:
            device_id: Identifier reported in every status event
            bridge: Bridge owned by this adapter for its whole lifetime
            command_timeout_s: Bound on queueing plus sending one command
            poll_interval_s: Delay between background report polls
            max_events_per_poll: Max reports drained per poll
        """
        self._device_id = device_id
        self._bridge = bridge
        self.command_timeout_s = command_timeout_s
        self.poll_interval_s = poll_interval_s
        self.max_events_per_poll = max_events_per_poll

        self._command_lock = asyncio.Lock()
        self._listeners: list[StatusListener] = []
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def device_id(self) -> str:
        """Device identifier."""
        return self._device_id

    @property
    def bridge(self) -> CommunicationBridge:
        """The bridge this adapter owns."""
        return self._bridge

    @property
    def is_polling(self) -> bool:
        """Whether the background poll task is running."""
        return self._poll_task is not None and not self._poll_task.done()

    async def initialize(self) -> None:
        """Initialize the underlying bridge."""
        await self._bridge.initialize()

    async def close(self) -> None:
        """Stop polling and close the underlying bridge."""
        await self.stop_polling()
        await self._bridge.close()

    def subscribe(self, listener: StatusListener) -> None:
        """Add a status listener. Adding the same listener twice is a no-op."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StatusListener) -> bool:
        """Remove a status listener.

        Returns:
            True if the listener was removed, False if it was not subscribed
        """
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    @property
    def listener_count(self) -> int:
        """Number of subscribed listeners."""
        return len(self._listeners)

    async def poll_once(self) -> list[StatusEvent]:
        """Drain pending device reports and raise events for them.

        Returns:
            Events raised for out-of-band changes
        """
        events: list[StatusEvent] = []
        for _ in range(self.max_events_per_poll):
            raw = await self._bridge.receive()
            if raw is None:
                break

            change = self._status_from_report(raw)
            if change is None:
                logger.debug(f"{self.device_id}: ignoring report {raw.operation.value}")
                continue

            attribute, value = change
            events.append(self._emit(attribute, value, raw.received_at))
        return events

    def start_polling(self) -> None:
        """Start draining device reports on a timer.

        Must be called from a running event loop. Calling it while
        already polling is a no-op.
        """
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"poll-{self.device_id}"
        )
        logger.info(f"{self.device_id}: polling every {self.poll_interval_s}s")

    async def stop_polling(self) -> None:
        """Stop the background poll task, if running."""
        task, self._poll_task = self._poll_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"{self.device_id}: polling stopped")

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"{self.device_id}: poll failed: {e}")
            await asyncio.sleep(self.poll_interval_s)

    async def _execute(self, command: Command, attribute: str, value: Any) -> StatusEvent:
        """Send a command and raise the resulting status event.

        The event is raised only after the bridge acknowledges the command.
        """
        ack = await self._send(command)
        logger.info(
            f"{self.device_id}: {command.operation.value} acknowledged (seq={ack.sequence})"
        )
        return self._emit(attribute, value)

    async def _send(self, command: Command) -> Ack:
        started = monotonic()

        try:
            await asyncio.wait_for(self._command_lock.acquire(), self.command_timeout_s)
        except asyncio.TimeoutError:
            raise self._busy() from None

        try:
            # Waiting for the lock may use up the whole bound
            remaining = self.command_timeout_s - (monotonic() - started)
            if remaining <= 0:
                raise self._busy()
            return await self._bridge.send(command, timeout=remaining)
        finally:
            self._command_lock.release()

    def _busy(self) -> BridgeError:
        return BridgeError(
            BridgeErrorReason.BUSY,
            f"{self.device_id}: another command did not finish within "
            f"{self.command_timeout_s}s",
            backend=self._bridge.backend.name,
        )

    def _emit(
        self,
        attribute: str,
        value: Any,
        timestamp: datetime | None = None,
    ) -> StatusEvent:
        event = StatusEvent(
            device_id=self.device_id,
            attribute=attribute,
            value=value,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        for listener in list(self._listeners):
            try:
                listener(event.device_id, event.attribute, event.value, event.timestamp)
            except Exception as e:
                logger.error(f"{self.device_id}: status listener failed: {e}")
        return event

    @abstractmethod
    def _status_from_report(self, raw: RawEvent) -> tuple[str, Any] | None:
        """Map a device report to (attribute, value), or None to ignore it."""
