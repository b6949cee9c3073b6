"""Order projection model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyordertrack.models._base import TrackBaseModel
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.status import OrderStatus


class CustomerInfo(TrackBaseModel):
    """Customer contact details and drop-off position."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def location(self) -> GeoPoint | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class AgentInfo(TrackBaseModel):
    """Delivery agent assigned to the order."""

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id", "agentId"))
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class Order(TrackBaseModel):
    """Client-side projection of an order owned by the backend.

    Parameters
    ----------
    id : str or None
        Internal database id (``_id``).
    task_id : str
        Stable public order identifier, used in every endpoint path.
    customer_info : CustomerInfo
        Customer contact and drop-off location.
    delivery_item : str or None
        Free-text description of what is delivered.
    preferred_time : datetime or None
        Requested delivery time.
    status : OrderStatus
        Current lifecycle status.
    location : GeoPoint or None
        Last known agent position; ``None`` until an agent reports one.
    agent_info : AgentInfo or None
        Assigned agent, if any.
    """

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    task_id: str
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    delivery_item: str | None = None
    preferred_time: datetime | None = None
    status: OrderStatus = OrderStatus.SCHEDULED
    created_at: datetime | None = None
    updated_at: datetime | None = None
    location: GeoPoint | None = None
    agent_info: AgentInfo | None = None

    @field_validator("location", mode="before")
    @classmethod
    def _drop_incomplete_location(cls, value: Any) -> Any:
        # Backends send {"latitude": null, ...} or {} before the first report.
        if isinstance(value, dict):
            lat = value.get("latitude", value.get("lat"))
            lon = value.get("longitude", value.get("lng", value.get("lon")))
            if lat is None or lon is None:
                return None
        return value

    @property
    def customer_location(self) -> GeoPoint | None:
        return self.customer_info.location
