"""Simulated agent movement along the store to customer line.

Used for demos and testing without a moving device. Each move reports the
new position through the generic order mutation endpoint; the simulator
also implements the geolocation provider interface so it can drive a
:class:`~pyordertrack.sampler.PositionSampler` directly.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import time
from collections.abc import Awaitable, Callable

from pyordertrack._api import orders as _orders_api
from pyordertrack._transport import Transport
from pyordertrack.config import PositionOptions
from pyordertrack.exceptions import TrackError
from pyordertrack.geo import distance_m, interpolate
from pyordertrack.models.position import GeoPoint, PositionSample

_logger = logging.getLogger(__name__)

#: Full width of the per-axis jitter box, in degrees (about 10 m).
JITTER_DEG = 0.0001


class RouteSimulator:
    """Move a simulated agent between *store* and *customer*.

    Parameters
    ----------
    transport
        HTTP transport to the order backend.
    order_id
        Order task id.
    store, customer
        Route endpoints; progress 0 is the store, 1 the customer.
    on_location
        Called with each new simulated position.
    on_error
        Receives ``"Failed to send location update"`` when a report fails.
    rng
        Random source for the jitter (seed it in tests).
    sleep
        Awaitable sleep used by auto mode.
    """

    def __init__(
        self,
        transport: Transport,
        order_id: str,
        *,
        store: GeoPoint,
        customer: GeoPoint,
        on_location: Callable[[GeoPoint], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._order_id = order_id
        self._store = store
        self._customer = customer
        self._on_location = on_location
        self._on_error = on_error
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._auto_task: asyncio.Task[None] | None = None

        self.progress = 0.0
        self.position: GeoPoint = store
        self.is_sending = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_simulating(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    @property
    def progress_percent(self) -> int:
        return round(self.progress * 100)

    @property
    def distance_from_store_km(self) -> float:
        return distance_m(self._store, self.position) / 1000.0

    @property
    def distance_to_customer_km(self) -> float:
        return distance_m(self.position, self._customer) / 1000.0

    def position_at(self, progress: float) -> GeoPoint:
        """Jittered point at *progress* along the straight route."""
        base = interpolate(self._store, self._customer, progress)
        return GeoPoint(
            latitude=base.latitude + (self._rng.random() - 0.5) * JITTER_DEG,
            longitude=base.longitude + (self._rng.random() - 0.5) * JITTER_DEG,
        )

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    async def move_forward(self, step: float = 0.05) -> GeoPoint:
        return await self._move_to(min(self.progress + step, 1.0))

    async def move_backward(self, step: float = 0.05) -> GeoPoint:
        return await self._move_to(max(self.progress - step, 0.0))

    async def jump_to(self, progress: float) -> GeoPoint:
        return await self._move_to(min(max(progress, 0.0), 1.0))

    async def reset_to_store(self) -> GeoPoint:
        await self.stop_auto()
        self.progress = 0.0
        return await self._report(self._store)

    async def start_auto(self, *, interval: float = 2.0, step: float = 0.02, max_duration: float = 100.0) -> None:
        """Advance by *step* every *interval* seconds until the customer is reached."""
        if self.is_simulating:
            return
        self._auto_task = asyncio.get_running_loop().create_task(self._auto(interval, step, max_duration))

    async def stop_auto(self) -> None:
        task = self._auto_task
        self._auto_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ------------------------------------------------------------------
    # Geolocation provider
    # ------------------------------------------------------------------

    async def get_current_position(self, options: PositionOptions) -> PositionSample:
        return PositionSample(latitude=self.position.latitude, longitude=self.position.longitude, accuracy=5.0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _auto(self, interval: float, step: float, max_duration: float) -> None:
        started = self._clock()
        while self.progress < 1.0:
            if self._clock() - started >= max_duration:
                _logger.debug("Auto simulation stopped after %.0fs", max_duration)
                return
            await self._sleep(interval)
            await self.move_forward(step)
        _logger.debug("Auto simulation reached the customer")

    async def _move_to(self, progress: float) -> GeoPoint:
        self.progress = progress
        point = await self._report(self.position_at(progress))
        _logger.debug("Simulated agent at %d%% of route", self.progress_percent)
        return point

    async def _report(self, point: GeoPoint) -> GeoPoint:
        self.position = point
        if self._on_location is not None:
            try:
                self._on_location(point)
            except Exception:
                _logger.debug("on_location callback failed", exc_info=True)

        self.is_sending = True
        try:
            await _orders_api.update_order(self._transport, self._order_id, {"location": point.to_payload()})
        except TrackError as exc:
            _logger.error("Failed to send simulated location order=%s: %s", self._order_id, exc)
            if self._on_error is not None:
                try:
                    self._on_error("Failed to send location update")
                except Exception:
                    _logger.debug("on_error callback failed", exc_info=True)
        finally:
            self.is_sending = False
        return point
