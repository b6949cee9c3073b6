"""Geographic point and position sample models."""

from __future__ import annotations

import time
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class GeoPoint(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    Accepts ``lat``/``lng``/``lon`` aliases since map libraries and older
    payloads use them interchangeably. Out-of-range coordinates are a
    validation error.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(
        ge=-180.0,
        le=180.0,
        validation_alias=AliasChoices("longitude", "lng", "lon"),
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> Any:
        if isinstance(value, str):
            return float(value)
        return value

    def to_payload(self) -> dict[str, float]:
        """Wire form used in ``{"location": {...}}`` request bodies."""
        return {"latitude": self.latitude, "longitude": self.longitude}

    def as_lon_lat(self) -> tuple[float, float]:
        """``(lon, lat)`` order, as expected by GeoJSON and routing services."""
        return (self.longitude, self.latitude)


class PositionSample(GeoPoint):
    """A single device geolocation fix.

    Parameters
    ----------
    latitude, longitude : float
        Position in decimal degrees.
    accuracy : float
        Horizontal accuracy radius in metres.
    timestamp : float
        Epoch seconds when the fix was taken.
    """

    accuracy: float = 0.0
    timestamp: float = Field(default_factory=time.time)

    def to_point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)
