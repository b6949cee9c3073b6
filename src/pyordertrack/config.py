"""Client configuration for pyordertrack."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyordertrack._constants import BASE_URL, DEFAULT_STORE_LATITUDE, DEFAULT_STORE_LONGITUDE
from pyordertrack.exceptions import TrackConfigError

_DIRECTIONS_PROVIDERS = frozenset({"mapbox", "osrm", "none"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[float] | type[int]) -> float | int:
    try:
        return cast(value)
    except ValueError as exc:
        raise TrackConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class PositionOptions:
    """Options for a single geolocation acquisition.

    ``timeout`` and ``maximum_age`` are in seconds.
    """

    high_accuracy: bool = False
    timeout: float = 10.0
    maximum_age: float = 120.0


@dataclasses.dataclass(frozen=True)
class GeolocationPolicy:
    """Acquisition policy used by the position sampler.

    The primary attempt favours a fast, low-accuracy fix and accepts a
    cached position up to two minutes old. The fallback attempt is shorter
    but tolerates a five minute old fix.
    """

    primary: PositionOptions = dataclasses.field(default_factory=PositionOptions)
    fallback: PositionOptions = dataclasses.field(
        default_factory=lambda: PositionOptions(high_accuracy=False, timeout=5.0, maximum_age=300.0)
    )


@dataclasses.dataclass(frozen=True)
class TrackConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Order backend base URL (including the ``/api/v1`` prefix).
    http_timeout : float
        Total client-side timeout for a single HTTP request, in seconds.
    channel_host : str
        Push channel (MQTT broker) host name.
    channel_port : int
        Push channel port.
    channel_tls : bool
        Enable TLS on the push channel connection.
    channel_keepalive : int
        Push channel keepalive in seconds.
    channel_topic_prefix : str
        Prefix for order room topics and client event topics.
    channel_connect_timeout : float
        Seconds to wait for the broker to acknowledge a connection.
    reconnect_base_delay : float
        First reconnect delay in seconds; doubled on each attempt.
    max_reconnect_attempts : int
        Automatic reconnect attempts before the channel goes offline.
    sample_interval : float
        Seconds between periodic position samples.
    min_displacement_m : float
        Samples closer than this to the last accepted one are dropped.
    geolocation : GeolocationPolicy
        Primary and fallback acquisition options.
    location_epsilon_deg : float
        Per-axis change (degrees) needed before the effective location on
        the map is replaced.
    fit_padding : int
        Viewport padding (pixels) when fitting bounds to visible markers.
    max_zoom : float
        Zoom ceiling when fitting bounds.
    store_latitude, store_longitude : float
        Default store (pickup origin) position.
    directions_provider : str
        ``"mapbox"``, ``"osrm"`` or ``"none"``.
    directions_base_url : str or None
        Override for the directions service URL.
    directions_token : str or None
        Access token for the directions service (Mapbox).
    directions_profile : str
        Routing profile (e.g. ``"driving"``).
    """

    base_url: str = BASE_URL
    http_timeout: float = 10.0
    channel_host: str = "localhost"
    channel_port: int = 1883
    channel_tls: bool = False
    channel_keepalive: int = 60
    channel_topic_prefix: str = "delivery"
    channel_connect_timeout: float = 10.0
    reconnect_base_delay: float = 1.0
    max_reconnect_attempts: int = 5
    sample_interval: float = 10.0
    min_displacement_m: float = 10.0
    geolocation: GeolocationPolicy = dataclasses.field(default_factory=GeolocationPolicy)
    location_epsilon_deg: float = 0.0001
    fit_padding: int = 50
    max_zoom: float = 15.0
    store_latitude: float = DEFAULT_STORE_LATITUDE
    store_longitude: float = DEFAULT_STORE_LONGITUDE
    directions_provider: str = "mapbox"
    directions_base_url: str | None = None
    directions_token: str | None = None
    directions_profile: str = "driving"

    def __post_init__(self) -> None:
        if self.directions_provider not in _DIRECTIONS_PROVIDERS:
            raise TrackConfigError(
                f"directions_provider must be one of {sorted(_DIRECTIONS_PROVIDERS)}, got {self.directions_provider!r}"
            )
        if self.sample_interval <= 0:
            raise TrackConfigError("sample_interval must be positive")
        if self.max_reconnect_attempts < 0:
            raise TrackConfigError("max_reconnect_attempts must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackConfig:
        """Create configuration from environment variables.

        Reads optional ``TRACK_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TrackConfig
            Populated configuration.

        Raises
        ------
        TrackConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TRACK_BASE_URL": "base_url",
            "TRACK_CHANNEL_HOST": "channel_host",
            "TRACK_CHANNEL_TOPIC_PREFIX": "channel_topic_prefix",
            "TRACK_DIRECTIONS_PROVIDER": "directions_provider",
            "TRACK_DIRECTIONS_BASE_URL": "directions_base_url",
            "TRACK_DIRECTIONS_TOKEN": "directions_token",
            "TRACK_DIRECTIONS_PROFILE": "directions_profile",
        }
        _ENV_FLOAT_MAP = {
            "TRACK_HTTP_TIMEOUT": "http_timeout",
            "TRACK_CHANNEL_CONNECT_TIMEOUT": "channel_connect_timeout",
            "TRACK_RECONNECT_BASE_DELAY": "reconnect_base_delay",
            "TRACK_SAMPLE_INTERVAL": "sample_interval",
            "TRACK_MIN_DISPLACEMENT_M": "min_displacement_m",
            "TRACK_STORE_LATITUDE": "store_latitude",
            "TRACK_STORE_LONGITUDE": "store_longitude",
            "TRACK_MAX_ZOOM": "max_zoom",
        }
        _ENV_INT_MAP = {
            "TRACK_CHANNEL_PORT": "channel_port",
            "TRACK_CHANNEL_KEEPALIVE": "channel_keepalive",
            "TRACK_MAX_RECONNECT_ATTEMPTS": "max_reconnect_attempts",
            "TRACK_FIT_PADDING": "fit_padding",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)

        if "channel_tls" not in overrides:
            config_kwargs["channel_tls"] = _env_bool(env.get("TRACK_CHANNEL_TLS"), False)

        # Allow overriding the geolocation policy via a nested dict
        policy_overrides = overrides.pop("geolocation", None)
        if isinstance(policy_overrides, GeolocationPolicy):
            config_kwargs["geolocation"] = policy_overrides
        elif isinstance(policy_overrides, dict):
            config_kwargs["geolocation"] = GeolocationPolicy(
                **{
                    key: value if isinstance(value, PositionOptions) else PositionOptions(**value)
                    for key, value in policy_overrides.items()
                }
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
