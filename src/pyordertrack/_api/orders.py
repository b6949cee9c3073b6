"""Order endpoints.

Endpoints:
  - GET   /orders/{id}            (fetch projection)
  - PATCH /orders/{id}/status     (status transition)
  - PATCH /orders/{id}/location   (agent position, sampler path)
  - PATCH /orders/{id}            (generic mutation, simulator path)
"""

from __future__ import annotations

import logging
from typing import Any

from pyordertrack._api._common import order_path, request_data, request_json
from pyordertrack._transport import Transport
from pyordertrack.models.order import Order
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.status import OrderStatus

_logger = logging.getLogger(__name__)


async def fetch_order(transport: Transport, order_id: str) -> Order:
    """Fetch the full order projection."""
    data = await request_data(transport, "GET", order_path(order_id))
    return Order.model_validate(data)


async def update_order_status(transport: Transport, order_id: str, status: OrderStatus) -> Order | None:
    """Request a status transition.

    Returns the updated order when the backend echoes it, otherwise
    ``None`` (the acknowledgement alone still means success).
    """
    endpoint = order_path(order_id, "/status")
    body = await request_json(transport, "PATCH", endpoint, json_body={"status": status.value})
    data = body.get("data")
    if isinstance(data, dict) and data.get("taskId"):
        return Order.model_validate(data)
    _logger.debug("%s acknowledged without an order body", endpoint)
    return None


async def update_order_location(transport: Transport, order_id: str, point: GeoPoint) -> dict[str, Any]:
    """Report the agent position for an order."""
    return await request_json(
        transport,
        "PATCH",
        order_path(order_id, "/location"),
        json_body={"location": point.to_payload()},
    )


async def update_order(transport: Transport, order_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Generic order mutation (used by the route simulator for location)."""
    return await request_json(transport, "PATCH", order_path(order_id), json_body=fields)
