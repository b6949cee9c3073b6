"""Periodic device position sampling with movement filtering.

The sampler acquires a first fix (with a relaxed fallback), then
re-samples on a fixed interval. A sample is *accepted* only when it is at
least ``min_displacement_m`` away from the previously accepted one; every
accepted sample is handed to the local callback and submitted through the
:class:`~pyordertrack.gateway.LocationGateway` without waiting for the
request to finish.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from pyordertrack.config import PositionOptions, TrackConfig
from pyordertrack.exceptions import (
    TrackGeolocationError,
    TrackLocationTimeoutError,
    TrackPermissionDeniedError,
    TrackPositionUnavailableError,
    TrackUnsupportedError,
)
from pyordertrack.gateway import LocationGateway
from pyordertrack.geo import distance_m
from pyordertrack.models.position import PositionSample

_logger = logging.getLogger(__name__)


class GeolocationProvider(Protocol):
    """Platform geolocation capability.

    Implementations raise :class:`TrackPermissionDeniedError`,
    :class:`TrackPositionUnavailableError` or
    :class:`TrackLocationTimeoutError`.
    """

    async def get_current_position(self, options: PositionOptions) -> PositionSample:
        ...


class PositionSampler:
    """Acquire, filter and forward agent positions for one order at a time.

    Parameters
    ----------
    provider
        Geolocation capability, or ``None`` when the platform has none.
    config
        Sampling interval, displacement threshold and acquisition policy.
    gateway
        Where accepted samples are submitted. ``None`` disables submission.
    on_sample
        Called with each accepted sample (local display).
    on_error
        Called with user-facing error messages.
    sleep
        Awaitable sleep used between ticks (injectable for tests).
    """

    def __init__(
        self,
        provider: GeolocationProvider | None,
        *,
        config: TrackConfig,
        gateway: LocationGateway | None = None,
        on_sample: Callable[[PositionSample], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._config = config
        self._gateway = gateway
        self._on_sample = on_sample
        self._on_error = on_error
        self._sleep = sleep

        self._order_id: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._submissions: set[asyncio.Task[bool]] = set()
        self._start_lock = asyncio.Lock()
        self._last_accepted: PositionSample | None = None

        self.current_location: PositionSample | None = None
        self.last_update_time: float | None = None
        self.error: str | None = None
        self.permission_denied = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_supported(self) -> bool:
        return self._provider is not None

    @property
    def is_tracking(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def order_id(self) -> str | None:
        return self._order_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, order_id: str) -> bool:
        """Acquire a first fix and begin periodic sampling.

        Returns ``True`` when tracking is running. Every failure is
        reported through ``on_error`` instead of raised. Overlapping calls
        start a single loop; starting for another order stops the current
        one first.
        """
        if self._provider is None:
            self._report(str(TrackUnsupportedError("Geolocation not supported")))
            return False
        if not order_id:
            self._report("Order ID required")
            return False
        async with self._start_lock:
            if self.is_tracking:
                if self._order_id == order_id:
                    return True
                _logger.debug("Switching location tracking %s -> %s", self._order_id, order_id)
                await self.stop()
            return await self._start(order_id)

    async def _start(self, order_id: str) -> bool:
        if self.permission_denied:
            self._report(str(TrackPermissionDeniedError("Location access denied by user")))
            return False

        self._order_id = order_id
        self.error = None
        try:
            sample = await self._acquire_initial()
        except TrackPermissionDeniedError as exc:
            self._deny(exc)
            return False
        except TrackGeolocationError as exc:
            self._report(str(exc))
            return False

        self._last_accepted = None
        self._accept(sample)
        self._task = asyncio.get_running_loop().create_task(self._run())
        _logger.debug("Location tracking started order=%s", order_id)
        return True

    async def stop(self) -> None:
        """Cancel periodic sampling and any outstanding acquisition.

        Safe to call repeatedly. Submissions already in flight are left
        to complete on their own.
        """
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        _logger.debug("Location tracking stopped order=%s", self._order_id)

    async def request_one_shot(self) -> PositionSample | None:
        """Acquire and submit a single position immediately.

        Bypasses the displacement filter; the returned sample becomes the
        reference for the next periodic comparison.
        """
        if self._provider is None:
            self._report(str(TrackUnsupportedError("Geolocation not supported")))
            return None
        try:
            sample = await self._acquire(self._config.geolocation.primary)
        except TrackPermissionDeniedError as exc:
            self._deny(exc)
            return None
        except TrackGeolocationError as exc:
            self._report(f"Failed to update location: {exc}")
            return None
        self._accept(sample)
        return sample

    def reset_permission(self) -> None:
        """Clear a previous denial after the user grants access again."""
        self.permission_denied = False
        self.error = None

    async def wait_submissions(self) -> None:
        """Wait for submissions currently in flight."""
        if self._submissions:
            await asyncio.gather(*self._submissions, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _acquire(self, options: PositionOptions) -> PositionSample:
        assert self._provider is not None  # noqa: S101
        try:
            return await asyncio.wait_for(self._provider.get_current_position(options), options.timeout)
        except TimeoutError as exc:
            raise TrackLocationTimeoutError("Location request timed out") from exc

    async def _acquire_initial(self) -> PositionSample:
        policy = self._config.geolocation
        try:
            return await self._acquire(policy.primary)
        except TrackPermissionDeniedError:
            raise
        except TrackGeolocationError as first_exc:
            _logger.warning("Initial location failed, retrying with relaxed options: %s", first_exc)
            try:
                return await self._acquire(policy.fallback)
            except TrackPermissionDeniedError:
                raise
            except TrackGeolocationError as exc:
                raise TrackGeolocationError(f"Unable to get location: {first_exc}") from exc

    async def _run(self) -> None:
        while True:
            await self._sleep(self._config.sample_interval)
            if not await self._tick():
                self._task = None
                _logger.debug("Location tracking ended order=%s", self._order_id)
                return

    async def _tick(self) -> bool:
        """One periodic sample: acquire, filter, accept.

        Returns ``False`` when tracking must end (permission revoked).
        """
        try:
            sample = await self._acquire(self._config.geolocation.primary)
        except TrackLocationTimeoutError:
            _logger.warning("Location request timed out, will retry on next interval")
            return True
        except TrackPermissionDeniedError as exc:
            self._deny(exc)
            return False
        except TrackPositionUnavailableError as exc:
            _logger.warning("Periodic location unavailable: %s", exc)
            self.error = f"Location error: {exc}"
            return True
        except TrackGeolocationError as exc:
            _logger.warning("Periodic location update failed: %s", exc)
            self.error = f"Location error: {exc}"
            return True

        last = self._last_accepted
        if last is not None:
            moved = distance_m(last, sample)
            if moved < self._config.min_displacement_m:
                _logger.debug("Dropping sample %.1fm from last accepted", moved)
                return True
        self._accept(sample)
        return True

    def _accept(self, sample: PositionSample) -> None:
        self._last_accepted = sample
        self.current_location = sample
        self.last_update_time = time.time()
        self.error = None

        if self._on_sample is not None:
            try:
                self._on_sample(sample)
            except Exception:
                _logger.debug("on_sample callback failed", exc_info=True)

        if self._gateway is not None and self._order_id:
            task = asyncio.get_running_loop().create_task(
                self._gateway.submit(self._order_id, sample.latitude, sample.longitude)
            )
            self._submissions.add(task)
            task.add_done_callback(self._submissions.discard)

    def _deny(self, exc: TrackPermissionDeniedError) -> None:
        self.permission_denied = True
        self._report(str(exc) or "Location access denied by user")

    def _report(self, message: str) -> None:
        self.error = message
        _logger.debug("Sampler error: %s", message)
        if self._on_error is not None:
            try:
                self._on_error(message)
            except Exception:
                _logger.debug("on_error callback failed", exc_info=True)
