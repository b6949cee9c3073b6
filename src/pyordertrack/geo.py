"""Great-circle distance and viewport helpers."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from pyordertrack._constants import EARTH_RADIUS_KM
from pyordertrack.models.position import GeoPoint


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in metres."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) * 1000.0


def differs_by_more_than(a: GeoPoint | None, b: GeoPoint | None, epsilon_deg: float) -> bool:
    """Whether *b* moved more than *epsilon_deg* from *a* on either axis.

    A cheap stand-in for a distance check (0.0001° is roughly 11 m) used
    on the render path. A missing side always counts as a change.
    """
    if a is None or b is None:
        return a is not b
    return abs(a.latitude - b.latitude) > epsilon_deg or abs(a.longitude - b.longitude) > epsilon_deg


def interpolate(a: GeoPoint, b: GeoPoint, fraction: float) -> GeoPoint:
    """Linear interpolation between two points (``fraction`` clamped to [0, 1])."""
    t = min(max(fraction, 0.0), 1.0)
    return GeoPoint(
        latitude=a.latitude + (b.latitude - a.latitude) * t,
        longitude=a.longitude + (b.longitude - a.longitude) * t,
    )


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned lat/lon bounding box."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Iterable[GeoPoint]) -> Bounds | None:
        """Smallest box containing *points*, ``None`` when there are none."""
        pts = list(points)
        if not pts:
            return None
        return cls(
            south=min(p.latitude for p in pts),
            west=min(p.longitude for p in pts),
            north=max(p.latitude for p in pts),
            east=max(p.longitude for p in pts),
        )

    @property
    def south_west(self) -> GeoPoint:
        return GeoPoint(latitude=self.south, longitude=self.west)

    @property
    def north_east(self) -> GeoPoint:
        return GeoPoint(latitude=self.north, longitude=self.east)

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(latitude=(self.south + self.north) / 2, longitude=(self.west + self.east) / 2)
