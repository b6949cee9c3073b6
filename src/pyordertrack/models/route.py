"""Directions result model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pyordertrack.models.position import GeoPoint


class RouteInfo(BaseModel):
    """A route between two points as returned by a directions provider.

    Parameters
    ----------
    coordinates : list[GeoPoint]
        Route polyline, origin first.
    distance : float
        Driving distance in metres.
    duration : float
        Driving time in seconds.
    """

    model_config = ConfigDict(frozen=True)

    coordinates: list[GeoPoint] = Field(default_factory=list)
    distance: float = Field(ge=0.0)
    duration: float = Field(ge=0.0)

    @property
    def distance_km(self) -> float:
        return self.distance / 1000.0

    @property
    def duration_minutes(self) -> int:
        return round(self.duration / 60.0)

    def summary(self) -> str:
        """Display line such as ``"3.2 km · 9 min"``."""
        return f"{self.distance_km:.1f} km · {self.duration_minutes} min"
