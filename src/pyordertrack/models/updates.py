"""Push channel update models.

An ``orderUpdate`` event carries a full :class:`Order` projection. The
channel client decomposes it into the two narrower updates below.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, Field

from pyordertrack.models._base import TrackBaseModel
from pyordertrack.models.order import Order
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.status import OrderStatus


class AgentLocationUpdate(TrackBaseModel):
    """Agent position reported for an order."""

    order_id: str = Field(validation_alias=AliasChoices("orderId", "order_id", "taskId"))
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    status: OrderStatus | None = None
    timestamp: datetime | None = None
    agent_id: str | None = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_order(cls, order: Order) -> AgentLocationUpdate | None:
        """Location derivation of an order projection, ``None`` without a location."""
        if order.location is None:
            return None
        return cls(
            order_id=order.task_id,
            latitude=order.location.latitude,
            longitude=order.location.longitude,
            status=order.status,
            timestamp=order.updated_at,
            agent_id=order.agent_info.id if order.agent_info is not None else None,
            raw=order.raw,
        )


class OrderStatusUpdate(TrackBaseModel):
    """Status reported for an order."""

    order_id: str = Field(validation_alias=AliasChoices("orderId", "order_id", "taskId"))
    status: OrderStatus
    timestamp: datetime | None = None
    agent_id: str | None = None

    @classmethod
    def from_order(cls, order: Order) -> OrderStatusUpdate:
        return cls(
            order_id=order.task_id,
            status=order.status,
            timestamp=order.updated_at,
            agent_id=order.agent_info.id if order.agent_info is not None else None,
            raw=order.raw,
        )
