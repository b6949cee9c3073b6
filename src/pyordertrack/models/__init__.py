"""Data models for the order backend and push channel."""

from pyordertrack.models._base import TrackBaseModel
from pyordertrack.models.order import AgentInfo, CustomerInfo, Order
from pyordertrack.models.position import GeoPoint, PositionSample
from pyordertrack.models.route import RouteInfo
from pyordertrack.models.status import ActorRole, OrderStatus
from pyordertrack.models.updates import AgentLocationUpdate, OrderStatusUpdate

__all__ = [
    "ActorRole",
    "AgentInfo",
    "AgentLocationUpdate",
    "CustomerInfo",
    "GeoPoint",
    "Order",
    "OrderStatus",
    "OrderStatusUpdate",
    "PositionSample",
    "RouteInfo",
    "TrackBaseModel",
]
