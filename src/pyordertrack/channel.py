"""Per-order push channel client.

The client keeps one logical connection to the update channel, joins the
room of a single order and turns inbound messages into typed updates.
Unexpected disconnects are retried with exponential backoff; once the
attempts run out the client stays :attr:`ConnectionStatus.OFFLINE` until
the consumer connects again.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any, Protocol

from pydantic import ValidationError

from pyordertrack._constants import (
    EVENT_AGENT_LOCATION_UPDATE,
    EVENT_JOIN_ORDER,
    EVENT_LEAVE_ORDER,
    EVENT_ORDER_STATUS_UPDATE,
    EVENT_ORDER_UPDATE,
)
from pyordertrack._hooks import Hook
from pyordertrack._mqtt import ChannelMessage
from pyordertrack.config import TrackConfig
from pyordertrack.exceptions import TrackChannelError
from pyordertrack.models.order import Order
from pyordertrack.models.updates import AgentLocationUpdate, OrderStatusUpdate

_logger = logging.getLogger(__name__)


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    OFFLINE = "offline"
    ERROR = "error"


class ChannelTransport(Protocol):
    """Structural interface of the underlying message transport."""

    @property
    def is_open(self) -> bool:
        ...

    async def open(
        self,
        order_id: str,
        *,
        on_message: Callable[[ChannelMessage], None],
        on_close: Callable[[], None],
    ) -> None:
        ...

    async def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        ...

    async def close(self) -> None:
        ...


@dataclasses.dataclass
class ReconnectPolicy:
    """Exponential backoff schedule: ``base_delay * 2**attempt``."""

    base_delay: float = 1.0
    max_attempts: int = 5
    attempts: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def next_delay(self) -> float | None:
        """Delay before the next attempt, or ``None`` when out of attempts."""
        if self.exhausted:
            return None
        delay = self.base_delay * (2**self.attempts)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0


class UpdateChannelClient:
    """Subscribe to live location and status updates for one order.

    Parameters
    ----------
    transport
        Message transport (MQTT in production).
    config
        Reconnect schedule (``reconnect_base_delay``,
        ``max_reconnect_attempts``).
    sleep
        Awaitable sleep used between reconnect attempts (injectable for
        tests).
    """

    def __init__(
        self,
        transport: ChannelTransport,
        *,
        config: TrackConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._sleep = sleep
        self._policy = ReconnectPolicy(
            base_delay=config.reconnect_base_delay,
            max_attempts=config.max_reconnect_attempts,
        )
        self._order_id: str | None = None
        self._closing = False
        self._reconnect_task: asyncio.Task[None] | None = None
        self._status = ConnectionStatus.DISCONNECTED

        self.on_connect: Hook[[]] = Hook("on_connect")
        self.on_disconnect: Hook[[]] = Hook("on_disconnect")
        self.on_order_update: Hook[[Order]] = Hook("on_order_update")
        self.on_agent_location_update: Hook[[AgentLocationUpdate]] = Hook("on_agent_location_update")
        self.on_order_status_update: Hook[[OrderStatusUpdate]] = Hook("on_order_status_update")
        self.on_status_changed: Hook[[ConnectionStatus]] = Hook("on_status_changed")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED

    @property
    def order_id(self) -> str | None:
        return self._order_id

    @property
    def reconnect_attempts(self) -> int:
        return self._policy.attempts

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        _logger.debug("Channel status %s -> %s order=%s", self._status, status, self._order_id)
        self._status = status
        self.on_status_changed.emit(status)

    def _reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, order_id: str) -> None:
        """Join the room of *order_id*.

        A no-op while already connected (or connecting) to the same order,
        so one connection always sends exactly one join. Connecting to a
        different order leaves the current room first.
        """
        if not order_id:
            raise ValueError("order_id must be non-empty")
        if order_id == self._order_id and (
            self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED) or self._reconnecting()
        ):
            return
        if self._order_id is not None:
            await self.disconnect()

        self._order_id = order_id
        self._closing = False
        self._policy.reset()
        if not await self._open(order_id):
            self._schedule_reconnect()

    async def disconnect(self) -> None:
        """Leave the room, cancel pending reconnects and close the transport.

        Safe to call when already disconnected.
        """
        self._closing = True
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        order_id = self._order_id
        self._order_id = None
        was_connected = self._status == ConnectionStatus.CONNECTED
        if order_id is not None and self._transport.is_open:
            try:
                await self._transport.publish(EVENT_LEAVE_ORDER, {"orderId": order_id})
            except TrackChannelError:
                _logger.debug("Leave for order %s not delivered", order_id, exc_info=True)
        await self._transport.close()

        self._set_status(ConnectionStatus.DISCONNECTED)
        if was_connected:
            self.on_disconnect.emit()

    async def send(self, event: str, payload: Mapping[str, Any]) -> bool:
        """Publish a client event; returns ``False`` when not connected or on failure."""
        if not self.is_connected:
            _logger.debug("Dropping %s: channel not connected", event)
            return False
        try:
            await self._transport.publish(event, payload)
        except TrackChannelError:
            _logger.debug("Sending %s failed", event, exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self, order_id: str) -> bool:
        self._set_status(ConnectionStatus.CONNECTING)
        try:
            await self._transport.open(order_id, on_message=self._handle_message, on_close=self._handle_close)
            await self._transport.publish(EVENT_JOIN_ORDER, {"orderId": order_id})
        except TrackChannelError as exc:
            _logger.debug("Channel connect failed order=%s: %s", order_id, exc)
            await self._transport.close()
            self._set_status(ConnectionStatus.ERROR)
            return False

        if self._closing or order_id != self._order_id:
            await self._transport.close()
            return False

        _logger.debug("Joined order room %s", order_id)
        self._policy.reset()
        self._set_status(ConnectionStatus.CONNECTED)
        self.on_connect.emit()
        return True

    def _schedule_reconnect(self) -> None:
        if self._closing or self._reconnecting():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while True:
            order_id = self._order_id
            if order_id is None:
                return
            delay = self._policy.next_delay()
            if delay is None:
                _logger.warning(
                    "Channel reconnect gave up after %d attempts order=%s",
                    self._policy.max_attempts,
                    order_id,
                )
                self._set_status(ConnectionStatus.OFFLINE)
                return
            _logger.debug(
                "Channel reconnect attempt %d/%d in %.1fs",
                self._policy.attempts,
                self._policy.max_attempts,
                delay,
            )
            await self._sleep(delay)
            if await self._open(order_id):
                return

    def _handle_close(self) -> None:
        if self._closing:
            return
        was_connected = self._status == ConnectionStatus.CONNECTED
        self._set_status(ConnectionStatus.DISCONNECTED)
        if was_connected:
            self.on_disconnect.emit()
        self._schedule_reconnect()

    def _handle_message(self, message: ChannelMessage) -> None:
        if message.order_id is not None and message.order_id != self._order_id:
            _logger.debug("Ignoring message for order %s (joined %s)", message.order_id, self._order_id)
            return

        try:
            if message.event == EVENT_ORDER_UPDATE:
                order = Order.model_validate(message.payload)
            elif message.event == EVENT_AGENT_LOCATION_UPDATE:
                self.on_agent_location_update.emit(AgentLocationUpdate.model_validate(message.payload))
                return
            elif message.event == EVENT_ORDER_STATUS_UPDATE:
                self.on_order_status_update.emit(OrderStatusUpdate.model_validate(message.payload))
                return
            else:
                _logger.debug("Ignoring unknown channel event %r", message.event)
                return
        except ValidationError:
            _logger.debug("Invalid %s payload on %s", message.event, message.topic, exc_info=True)
            return

        self.on_order_update.emit(order)
        location = AgentLocationUpdate.from_order(order)
        if location is not None:
            self.on_agent_location_update.emit(location)
        self.on_order_status_update.emit(OrderStatusUpdate.from_order(order))
