"""Driving directions providers.

Route computation is delegated to an external service. Both adapters
return a :class:`RouteInfo` (GeoJSON polyline, metres, seconds) and raise
:class:`TrackDirectionsError` on any failure.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from pyordertrack._constants import MAPBOX_DIRECTIONS_URL, OSRM_DIRECTIONS_URL
from pyordertrack._redact import redact_url
from pyordertrack.config import TrackConfig
from pyordertrack.exceptions import TrackConfigError, TrackDirectionsError
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.route import RouteInfo

_logger = logging.getLogger(__name__)


class DirectionsProvider(Protocol):
    async def get_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteInfo:
        ...


def _coordinates_path(origin: GeoPoint, destination: GeoPoint) -> str:
    return ";".join(f"{lon},{lat}" for lon, lat in (origin.as_lon_lat(), destination.as_lon_lat()))


def parse_route(body: dict[str, Any], *, source: str) -> RouteInfo:
    """Build a :class:`RouteInfo` from the first route of a directions response.

    Mapbox and OSRM share the ``routes[0].geometry.coordinates`` /
    ``distance`` / ``duration`` layout when GeoJSON geometries are
    requested.
    """
    routes = body.get("routes")
    if not isinstance(routes, list) or not routes:
        code = body.get("code") or body.get("message") or "no routes"
        raise TrackDirectionsError(f"{source} returned no route: {code}")
    route = routes[0]
    try:
        coordinates = [
            GeoPoint(latitude=lat, longitude=lon) for lon, lat, *_ in route["geometry"]["coordinates"]
        ]
        return RouteInfo(
            coordinates=coordinates,
            distance=float(route["distance"]),
            duration=float(route["duration"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TrackDirectionsError(f"{source} returned a malformed route: {exc}") from exc


class _HttpDirections:
    _source = "directions"

    def __init__(self, http_session: aiohttp.ClientSession, *, base_url: str, profile: str, timeout: float) -> None:
        self._http = http_session
        self._base_url = base_url.rstrip("/")
        self._profile = profile
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def _build_url(self, origin: GeoPoint, destination: GeoPoint) -> str:
        raise NotImplementedError

    async def get_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteInfo:
        url = self._build_url(origin, destination)
        _logger.debug("GET %s", redact_url(url))
        try:
            async with self._http.get(url, timeout=self._timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise TrackDirectionsError(f"{self._source} HTTP {resp.status}: {text[:200]}")
                body = await resp.json(content_type=None)
        except TrackDirectionsError:
            raise
        except TimeoutError as exc:
            raise TrackDirectionsError(f"{self._source} request timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise TrackDirectionsError(f"{self._source} request failed: {exc}") from exc

        if not isinstance(body, dict):
            raise TrackDirectionsError(f"{self._source} returned a non-object body")
        route = parse_route(body, source=self._source)
        _logger.debug("%s route %s (%d points)", self._source, route.summary(), len(route.coordinates))
        return route


class MapboxDirections(_HttpDirections):
    """Mapbox Directions API v5."""

    _source = "mapbox"

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        access_token: str,
        base_url: str = MAPBOX_DIRECTIONS_URL,
        profile: str = "driving",
        timeout: float = 10.0,
    ) -> None:
        if not access_token:
            raise TrackConfigError("Mapbox directions need an access token")
        super().__init__(http_session, base_url=base_url, profile=profile, timeout=timeout)
        self._access_token = access_token

    def _build_url(self, origin: GeoPoint, destination: GeoPoint) -> str:
        return (
            f"{self._base_url}/directions/v5/mapbox/{self._profile}/{_coordinates_path(origin, destination)}"
            f"?geometries=geojson&access_token={self._access_token}"
        )


class OsrmDirections(_HttpDirections):
    """OSRM ``route`` service (public demo server by default)."""

    _source = "osrm"

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        base_url: str = OSRM_DIRECTIONS_URL,
        profile: str = "driving",
        timeout: float = 10.0,
    ) -> None:
        super().__init__(http_session, base_url=base_url, profile=profile, timeout=timeout)

    def _build_url(self, origin: GeoPoint, destination: GeoPoint) -> str:
        return (
            f"{self._base_url}/route/v1/{self._profile}/{_coordinates_path(origin, destination)}"
            "?overview=full&geometries=geojson"
        )


def build_directions(config: TrackConfig, http_session: aiohttp.ClientSession) -> DirectionsProvider | None:
    """Directions provider selected by ``config.directions_provider``.

    Returns ``None`` for ``"none"`` and for Mapbox without a token (routes
    are then simply not drawn).
    """
    provider = config.directions_provider
    if provider == "osrm":
        return OsrmDirections(
            http_session,
            base_url=config.directions_base_url or OSRM_DIRECTIONS_URL,
            profile=config.directions_profile,
            timeout=config.http_timeout,
        )
    if provider == "mapbox":
        if not config.directions_token:
            _logger.debug("Mapbox directions selected without a token, routes disabled")
            return None
        return MapboxDirections(
            http_session,
            access_token=config.directions_token,
            base_url=config.directions_base_url or MAPBOX_DIRECTIONS_URL,
            profile=config.directions_profile,
            timeout=config.http_timeout,
        )
    return None
