"""Custom exception hierarchy for pyordertrack."""

from __future__ import annotations


class TrackError(Exception):
    """Base exception for all pyordertrack errors."""


class TrackConfigError(TrackError):
    """Invalid or missing configuration."""


class TrackTransportError(TrackError):
    """HTTP-level failure (network, timeout, non-2xx, invalid JSON).

    ``server_message`` carries the backend-provided ``message`` field when
    the error response had one, so callers can show it verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        server_message: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.server_message = server_message
        super().__init__(message)


class TrackApiError(TrackError):
    """Well-formed response that signals failure or lacks expected data."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        server_message: str | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.server_message = server_message
        super().__init__(message)


class TrackStatusTransitionError(TrackError):
    """A status transition that the actor is not allowed to request."""

    def __init__(
        self,
        message: str,
        *,
        current: str = "",
        requested: str | None = None,
        role: str = "",
    ) -> None:
        self.current = current
        self.requested = requested
        self.role = role
        super().__init__(message)


class TrackChannelError(TrackError):
    """Push channel connect or publish failure."""


class TrackDirectionsError(TrackError):
    """Directions provider request failed or returned no route."""


class TrackGeolocationError(TrackError):
    """Base for geolocation acquisition failures."""


class TrackUnsupportedError(TrackGeolocationError):
    """The platform exposes no geolocation capability."""


class TrackPermissionDeniedError(TrackGeolocationError):
    """Location access denied by the user.

    Terminal for the current session: tracking cannot resume until the user
    explicitly grants access again.
    """


class TrackPositionUnavailableError(TrackGeolocationError):
    """Location information unavailable."""


class TrackLocationTimeoutError(TrackGeolocationError):
    """Location request timed out."""


def error_message(exc: BaseException, default: str) -> str:
    """Return the backend-provided message of *exc*, or *default*."""
    server_message = getattr(exc, "server_message", None)
    if isinstance(server_message, str) and server_message.strip():
        return server_message
    return default
