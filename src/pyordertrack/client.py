"""High-level async client for delivery order tracking."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pyordertrack._api import orders as _orders_api
from pyordertrack._mqtt import MqttChannelTransport
from pyordertrack._transport import HttpTransport, Transport
from pyordertrack.channel import ChannelTransport, UpdateChannelClient
from pyordertrack.config import TrackConfig
from pyordertrack.controls import StatusController
from pyordertrack.directions import DirectionsProvider, build_directions
from pyordertrack.exceptions import TrackError
from pyordertrack.gateway import LocationGateway
from pyordertrack.models.order import Order
from pyordertrack.models.position import GeoPoint, PositionSample
from pyordertrack.models.status import ActorRole, OrderStatus
from pyordertrack.sampler import GeolocationProvider, PositionSampler
from pyordertrack.session import SessionContext
from pyordertrack.simulator import RouteSimulator
from pyordertrack.tracking.reconciler import MapReconciler, TrackingViewProps

_logger = logging.getLogger(__name__)


class TrackClient:
    """Async client for live order tracking.

    Usage::

        async with TrackClient(config, session_context=context) as client:
            view = await client.track_order("TASK-1001", show_route=True)
            view.on_location_changed(print)

    Parameters
    ----------
    config
        Client configuration.
    session
        Existing aiohttp session to reuse; the client closes only sessions
        it created itself.
    session_context
        Auth session holder used for the ``Authorization`` header and the
        channel credentials.
    channel_transport_factory
        Builds the transport for each new update channel (MQTT by default).
    directions
        Directions provider overriding ``config.directions_provider``.
    """

    def __init__(
        self,
        config: TrackConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        session_context: SessionContext | None = None,
        channel_transport_factory: Callable[[], ChannelTransport] | None = None,
        directions: DirectionsProvider | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._context = session_context or SessionContext()
        self._channel_transport_factory = channel_transport_factory
        self._directions_override = directions
        self._directions: DirectionsProvider | None = directions
        self._transport: Transport | None = None
        self._views: list[MapReconciler] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TrackClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session, self._context)
        if self._directions_override is None:
            self._directions = build_directions(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        views = self._views
        self._views = []
        for view in views:
            await view.unmount()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    @property
    def session_context(self) -> SessionContext:
        return self._context

    @property
    def role(self) -> ActorRole:
        return self._context.role or ActorRole.CUSTOMER

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise TrackError("Client not initialized. Use 'async with TrackClient(...) as client:'")
        return self._transport

    def _build_channel_transport(self) -> ChannelTransport:
        if self._channel_transport_factory is not None:
            return self._channel_transport_factory()
        session = self._context.session
        return MqttChannelTransport(
            self._config,
            username=session.user.email if session is not None else None,
            password=session.token if session is not None else None,
        )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def get_order(self, order_id: str) -> Order:
        """Fetch the current order projection."""
        return await _orders_api.fetch_order(self._require_transport(), order_id)

    async def update_status(self, order_id: str, status: OrderStatus) -> Order | None:
        """Request a status transition without local role checks.

        Prefer :meth:`status_controller` for user-facing controls.
        """
        return await _orders_api.update_order_status(self._require_transport(), order_id, status)

    async def update_location(self, order_id: str, latitude: float, longitude: float) -> None:
        """Report an agent position, raising on failure."""
        point = GeoPoint(latitude=latitude, longitude=longitude)
        await _orders_api.update_order_location(self._require_transport(), order_id, point)

    async def update_order(self, order_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        return await _orders_api.update_order(self._require_transport(), order_id, fields)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def location_gateway(self, *, on_error: Callable[[str], None] | None = None) -> LocationGateway:
        return LocationGateway(self._require_transport(), on_error=on_error)

    def update_channel(self) -> UpdateChannelClient:
        return UpdateChannelClient(self._build_channel_transport(), config=self._config)

    def position_sampler(
        self,
        provider: GeolocationProvider | None,
        *,
        view: MapReconciler | None = None,
        on_sample: Callable[[PositionSample], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> PositionSampler:
        """Sampler whose accepted samples are submitted and, with *view*, shown locally."""

        def _on_sample(sample: PositionSample) -> None:
            if view is not None:
                view.observe_local(sample.to_point())
            if on_sample is not None:
                on_sample(sample)

        return PositionSampler(
            provider,
            config=self._config,
            gateway=self.location_gateway(on_error=on_error),
            on_sample=_on_sample,
            on_error=on_error,
        )

    def status_controller(
        self,
        order: Order,
        *,
        view: MapReconciler | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> StatusController:
        """Controller for the current user's role; committed statuses update *view*."""
        controller = StatusController(
            self._require_transport(),
            order.task_id,
            view.status if view is not None else order.status,
            role=self.role,
            on_error=on_error,
        )
        if view is not None:
            controller.on_committed(view.set_status)
            view.on_status_changed(controller.sync)
        return controller

    def route_simulator(
        self,
        order: Order,
        *,
        on_location: Callable[[GeoPoint], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> RouteSimulator:
        customer = order.customer_location
        if customer is None:
            raise TrackError(f"Order {order.task_id} has no customer location to simulate towards")
        return RouteSimulator(
            self._require_transport(),
            order.task_id,
            store=self._store_location(),
            customer=customer,
            on_location=on_location,
            on_error=on_error,
        )

    def _store_location(self) -> GeoPoint:
        return GeoPoint(latitude=self._config.store_latitude, longitude=self._config.store_longitude)

    async def track_order(
        self,
        order_id: str,
        *,
        show_route: bool = False,
        enable_real_time_tracking: bool = True,
    ) -> MapReconciler:
        """Fetch *order_id* and return a mounted tracking view for it."""
        order = await self.get_order(order_id)
        customer = order.customer_location
        if customer is None:
            raise TrackError(f"Order {order.task_id} has no customer location")
        props = TrackingViewProps(
            order_id=order.task_id,
            customer_location=customer,
            store_location=self._store_location(),
            order_status=order.status,
            agent_location=order.location,
            enable_real_time_tracking=enable_real_time_tracking,
            show_route=show_route,
            customer_address=order.customer_info.address,
        )
        view = MapReconciler(
            props,
            config=self._config,
            channel=self.update_channel(),
            directions=self._directions,
        )
        await view.mount()
        self._views.append(view)
        _logger.debug("Tracking order %s status=%s", order.task_id, order.status)
        return view
