"""Location submission gateway.

Pushes accepted position samples to the backend of record over HTTP,
independent of the live channel. One request per sample: a failed
submission is reported and then superseded by the next sample.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pyordertrack._api import orders as _orders_api
from pyordertrack._transport import Transport
from pyordertrack.exceptions import TrackError, error_message
from pyordertrack.models.position import GeoPoint

_logger = logging.getLogger(__name__)


def submission_error_message(exc: TrackError) -> str:
    """User-facing message for a failed submission.

    Prefers the backend-provided message, else names the status code or
    a network error.
    """
    status_code = getattr(exc, "status_code", None)
    return error_message(exc, f"Failed to update location ({status_code or 'Network Error'})")


class LocationGateway:
    """Submit agent positions for an order.

    Parameters
    ----------
    transport
        HTTP transport to the order backend.
    on_error
        Error channel shared with the position sampler; receives a
        human-readable message for every failed submission.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._transport = transport
        self._on_error = on_error
        self.last_update_time: float | None = None
        self.last_error: str | None = None

    async def submit(self, order_id: str, latitude: float, longitude: float) -> bool:
        """Send one position; returns ``True`` on success.

        Never raises for backend or network failures.
        """
        point = GeoPoint(latitude=latitude, longitude=longitude)
        try:
            await _orders_api.update_order_location(self._transport, order_id, point)
        except TrackError as exc:
            message = submission_error_message(exc)
            _logger.error(
                "Location update failed order=%s lat=%.6f lon=%.6f: %s",
                order_id,
                latitude,
                longitude,
                exc,
            )
            self.last_error = message
            if self._on_error is not None:
                try:
                    self._on_error(message)
                except Exception:
                    _logger.debug("on_error callback failed", exc_info=True)
            return False

        _logger.debug("Location update sent order=%s lat=%.6f lon=%.6f", order_id, latitude, longitude)
        self.last_update_time = time.time()
        self.last_error = None
        return True
