"""Map render state reconciler.

This is the only component allowed to change the effective agent
location and the displayed status of a tracking view.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Coroutine
from enum import StrEnum
from typing import Any

from pyordertrack._hooks import Hook
from pyordertrack.channel import ConnectionStatus, UpdateChannelClient
from pyordertrack.config import TrackConfig
from pyordertrack.directions import DirectionsProvider
from pyordertrack.exceptions import TrackError
from pyordertrack.geo import Bounds, differs_by_more_than
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.route import RouteInfo
from pyordertrack.models.status import OrderStatus
from pyordertrack.models.updates import AgentLocationUpdate, OrderStatusUpdate
from pyordertrack.tracking.events import LocationObservation, LocationSource
from pyordertrack.tracking.policy import (
    StatusBadge,
    agent_marker_visible,
    should_engage_realtime,
    status_badge,
    store_marker_visible,
)

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class TrackingViewProps:
    """Inputs of one tracking view.

    Parameters
    ----------
    order_id : str
        Order (task id) whose room is joined.
    customer_location, store_location : GeoPoint
        Destination and pickup points.
    order_status : OrderStatus
        Status known when the view is created.
    agent_location : GeoPoint or None
        Agent position known from the order projection, if any.
    enable_real_time_tracking : bool
        Join the order room on the update channel.
    show_route : bool
        Fetch and keep the driving route up to date.
    customer_address : str or None
        Label for the customer marker.
    """

    order_id: str
    customer_location: GeoPoint
    store_location: GeoPoint
    order_status: OrderStatus = OrderStatus.SCHEDULED
    agent_location: GeoPoint | None = None
    enable_real_time_tracking: bool = True
    show_route: bool = False
    customer_address: str | None = None


class MarkerKind(StrEnum):
    AGENT = "agent"
    STORE = "store"
    CUSTOMER = "customer"


@dataclasses.dataclass(frozen=True)
class Marker:
    kind: MarkerKind
    point: GeoPoint
    label: str


@dataclasses.dataclass(frozen=True)
class MarkerSet:
    """Markers currently on the map; ``None`` means hidden."""

    customer: Marker
    store: Marker | None = None
    agent: Marker | None = None

    def visible(self) -> list[Marker]:
        return [m for m in (self.agent, self.store, self.customer) if m is not None]

    def points(self) -> list[GeoPoint]:
        return [m.point for m in self.visible()]


@dataclasses.dataclass(frozen=True)
class ViewportFit:
    """Viewport request: show *bounds* with padding, never zoom past ``max_zoom``."""

    bounds: Bounds
    padding: int
    max_zoom: float


class MapReconciler:
    """Merge location and status sources into render state for one order.

    Parameters
    ----------
    props
        View inputs; change them later with :meth:`update_props`.
    config
        Location epsilon, viewport padding and zoom ceiling.
    channel
        Update channel client; ``None`` disables real-time tracking.
    directions
        Route provider; ``None`` disables route fetching.
    """

    def __init__(
        self,
        props: TrackingViewProps,
        *,
        config: TrackConfig,
        channel: UpdateChannelClient | None = None,
        directions: DirectionsProvider | None = None,
    ) -> None:
        self._props = props
        self._config = config
        self._channel = channel
        self._directions = directions

        self._mounted = False
        self._status = props.order_status
        self._location: GeoPoint | None = None
        self._location_source: LocationSource | None = None
        self._markers: MarkerSet | None = None
        self._viewport: ViewportFit | None = None
        self._route_generation = 0
        self._tasks: set[asyncio.Task[Any]] = set()
        self._unsubscribers: list[Callable[[], None]] = []

        self.route_info: RouteInfo | None = None
        self.last_observation: LocationObservation | None = None

        self.on_location_changed: Hook[[GeoPoint]] = Hook("on_location_changed")
        self.on_status_changed: Hook[[OrderStatus]] = Hook("on_status_changed")
        self.on_markers_changed: Hook[[MarkerSet]] = Hook("on_markers_changed")
        self.on_route_changed: Hook[[RouteInfo | None]] = Hook("on_route_changed")
        self.on_bounds_changed: Hook[[ViewportFit]] = Hook("on_bounds_changed")
        self.on_connection_changed: Hook[[ConnectionStatus]] = Hook("on_connection_changed")

    # ------------------------------------------------------------------
    # Render state
    # ------------------------------------------------------------------

    @property
    def props(self) -> TrackingViewProps:
        return self._props

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def badge(self) -> StatusBadge:
        return status_badge(self._status)

    @property
    def location(self) -> GeoPoint | None:
        """Effective agent location."""
        return self._location

    @property
    def location_source(self) -> LocationSource | None:
        return self._location_source

    @property
    def markers(self) -> MarkerSet:
        if self._markers is None:
            self._markers = self._compute_markers()
        return self._markers

    @property
    def viewport(self) -> ViewportFit | None:
        return self._viewport

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def connection_status(self) -> ConnectionStatus:
        if self._channel is None:
            return ConnectionStatus.DISCONNECTED
        return self._channel.status

    @property
    def route_origin(self) -> GeoPoint:
        """Agent position while its marker is shown, otherwise the store."""
        if agent_marker_visible(self._status, self._location):
            assert self._location is not None  # noqa: S101
            return self._location
        return self._props.store_location

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Render the initial state, subscribe to the channel and fetch the route."""
        if self._mounted:
            return
        self._mounted = True

        if self._props.agent_location is not None:
            self._accept(self._props.agent_location, LocationSource.PROPS)
        self._refresh_markers(force=True)

        channel = self._channel
        if channel is not None:
            self._unsubscribers = [
                channel.on_agent_location_update(self.observe_channel),
                channel.on_order_status_update(self._on_channel_status),
                channel.on_status_changed(self.on_connection_changed.emit),
            ]
        await self._sync_channel()

        if self._props.show_route:
            self._request_route()

    async def unmount(self) -> None:
        """Leave the order room and stop reacting to late results."""
        if not self._mounted:
            return
        self._mounted = False
        self._route_generation += 1
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._channel is not None:
            await self._channel.disconnect()

    async def wait_idle(self) -> None:
        """Wait until background work (route fetches, channel sync) settles."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def observe_local(self, point: GeoPoint) -> bool:
        """Feed a locally sampled agent position."""
        return self._observe(point, LocationSource.LOCAL)

    def observe_channel(self, update: AgentLocationUpdate) -> bool:
        """Feed an agent position pushed on the update channel."""
        if update.order_id != self._props.order_id:
            _logger.debug("Ignoring location for order %s", update.order_id)
            return False
        return self._observe(update.point, LocationSource.CHANNEL)

    def set_status(self, status: OrderStatus) -> None:
        """Apply an acknowledged status (channel push or committed transition)."""
        if status == self._status:
            return
        origin_before = self.route_origin
        _logger.debug("Order %s status %s -> %s", self._props.order_id, self._status, status)
        self._status = status
        self.on_status_changed.emit(status)
        self._refresh_markers()
        if self._props.show_route and self.route_origin != origin_before:
            self._request_route()
        if self._mounted:
            self._spawn(self._sync_channel())

    def update_props(self, **changes: Any) -> None:
        """Replace view inputs and react to what changed."""
        previous = self._props
        current = dataclasses.replace(previous, **changes)
        self._props = current

        if current.order_status != previous.order_status:
            self.set_status(current.order_status)

        if current.agent_location is not None and current.agent_location != previous.agent_location:
            self._observe(current.agent_location, LocationSource.PROPS)

        if current.customer_location != previous.customer_location or (
            current.store_location != previous.store_location
        ):
            self._refresh_markers()
            if current.show_route:
                self._request_route()

        if current.show_route != previous.show_route:
            if current.show_route:
                self._request_route()
            else:
                self._route_generation += 1
                self.route_info = None
                self.on_route_changed.emit(None)

        if current.enable_real_time_tracking != previous.enable_real_time_tracking and self._mounted:
            self._spawn(self._sync_channel())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_channel_status(self, update: OrderStatusUpdate) -> None:
        if update.order_id != self._props.order_id:
            return
        self.set_status(update.status)

    def _observe(self, point: GeoPoint, source: LocationSource) -> bool:
        self.last_observation = LocationObservation(point=point, source=source)
        if not self._mounted:
            return False
        if source == LocationSource.PROPS and self._channel is not None and self._channel.is_connected:
            _logger.debug("Ignoring prop location while the channel is connected")
            return False
        if not differs_by_more_than(self._location, point, self._config.location_epsilon_deg):
            return False

        origin_before = self.route_origin
        self._accept(point, source)
        self._refresh_markers()
        if self._props.show_route and (
            agent_marker_visible(self._status, self._location) or self.route_origin != origin_before
        ):
            self._request_route()
        return True

    def _accept(self, point: GeoPoint, source: LocationSource) -> None:
        self._location = point
        self._location_source = source
        self.on_location_changed.emit(point)

    def _compute_markers(self) -> MarkerSet:
        props = self._props
        agent: Marker | None = None
        store: Marker | None = None
        if agent_marker_visible(self._status, self._location):
            assert self._location is not None  # noqa: S101
            agent = Marker(MarkerKind.AGENT, self._location, "Delivery Agent")
        if store_marker_visible(self._status):
            store = Marker(MarkerKind.STORE, props.store_location, "Store")
        customer = Marker(MarkerKind.CUSTOMER, props.customer_location, props.customer_address or "Customer")
        return MarkerSet(customer=customer, store=store, agent=agent)

    def _refresh_markers(self, *, force: bool = False) -> None:
        markers = self._compute_markers()
        if markers == self._markers and not force:
            return
        self._markers = markers
        self.on_markers_changed.emit(markers)

        bounds = Bounds.around(markers.points())
        if bounds is None:
            return
        self._viewport = ViewportFit(bounds=bounds, padding=self._config.fit_padding, max_zoom=self._config.max_zoom)
        self.on_bounds_changed.emit(self._viewport)

    async def _sync_channel(self) -> None:
        channel = self._channel
        if channel is None or not self._mounted:
            return
        if should_engage_realtime(self._props.enable_real_time_tracking, self._status):
            await channel.connect(self._props.order_id)
        elif channel.order_id is not None:
            _logger.debug("Leaving order room %s (status=%s)", self._props.order_id, self._status)
            await channel.disconnect()

    def _request_route(self) -> None:
        self._route_generation += 1
        if not self._mounted:
            return
        if self._directions is None:
            _logger.debug("No directions provider, skipping route")
            return
        self._spawn(self._fetch_route(self._route_generation, self.route_origin, self._props.customer_location))

    async def _fetch_route(self, generation: int, origin: GeoPoint, destination: GeoPoint) -> None:
        assert self._directions is not None  # noqa: S101
        route: RouteInfo | None
        try:
            route = await self._directions.get_route(origin, destination)
        except TrackError as exc:
            _logger.warning("Route request failed: %s", exc)
            route = None
        except Exception:
            _logger.warning("Route request failed", exc_info=True)
            route = None
        if generation != self._route_generation or not self._mounted:
            _logger.debug("Discarding stale route result")
            return
        self.route_info = route
        self.on_route_changed.emit(route)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
