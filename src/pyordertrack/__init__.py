"""pyordertrack - Async Python client for live delivery order tracking."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyordertrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pyordertrack.channel import ConnectionStatus, ReconnectPolicy, UpdateChannelClient
from pyordertrack.client import TrackClient
from pyordertrack.config import GeolocationPolicy, PositionOptions, TrackConfig
from pyordertrack.controls import StatusController
from pyordertrack.directions import DirectionsProvider, MapboxDirections, OsrmDirections
from pyordertrack.exceptions import (
    TrackApiError,
    TrackChannelError,
    TrackConfigError,
    TrackDirectionsError,
    TrackError,
    TrackGeolocationError,
    TrackLocationTimeoutError,
    TrackPermissionDeniedError,
    TrackPositionUnavailableError,
    TrackStatusTransitionError,
    TrackTransportError,
    TrackUnsupportedError,
)
from pyordertrack.gateway import LocationGateway
from pyordertrack.models import (
    ActorRole,
    AgentInfo,
    AgentLocationUpdate,
    CustomerInfo,
    GeoPoint,
    Order,
    OrderStatus,
    OrderStatusUpdate,
    PositionSample,
    RouteInfo,
)
from pyordertrack.sampler import GeolocationProvider, PositionSampler
from pyordertrack.session import Session, SessionContext, UserInfo
from pyordertrack.simulator import RouteSimulator
from pyordertrack.status import canonical_next_status, compute_next_status, should_track_location
from pyordertrack.tracking import MapReconciler, MarkerSet, TrackingViewProps, ViewportFit

__all__ = [
    "__version__",
    "ActorRole",
    "AgentInfo",
    "AgentLocationUpdate",
    "ConnectionStatus",
    "CustomerInfo",
    "DirectionsProvider",
    "GeoPoint",
    "GeolocationPolicy",
    "GeolocationProvider",
    "LocationGateway",
    "MapReconciler",
    "MapboxDirections",
    "MarkerSet",
    "Order",
    "OrderStatus",
    "OrderStatusUpdate",
    "OsrmDirections",
    "PositionOptions",
    "PositionSample",
    "PositionSampler",
    "ReconnectPolicy",
    "RouteInfo",
    "RouteSimulator",
    "Session",
    "SessionContext",
    "StatusController",
    "TrackApiError",
    "TrackChannelError",
    "TrackClient",
    "TrackConfig",
    "TrackConfigError",
    "TrackDirectionsError",
    "TrackError",
    "TrackGeolocationError",
    "TrackLocationTimeoutError",
    "TrackPermissionDeniedError",
    "TrackPositionUnavailableError",
    "TrackStatusTransitionError",
    "TrackTransportError",
    "TrackUnsupportedError",
    "TrackingViewProps",
    "UpdateChannelClient",
    "UserInfo",
    "ViewportFit",
    "canonical_next_status",
    "compute_next_status",
    "should_track_location",
]
