"""Shared helpers for order backend endpoint modules.

This module centralizes the repeated patterns:
- building order-scoped endpoint paths
- unwrapping the ``{"data": ...}`` response envelope
- mapping ``success: false`` bodies to :class:`TrackApiError`

It is internal to pyordertrack and may change at any time.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from pyordertrack._transport import Transport
from pyordertrack.exceptions import TrackApiError


def order_path(order_id: str, suffix: str = "") -> str:
    """``/orders/{order_id}{suffix}`` with the id safely quoted."""
    order_id = order_id.strip()
    if not order_id:
        raise ValueError("order_id must be non-empty")
    return f"/orders/{quote(order_id, safe='')}{suffix}"


def _raise_for_body(endpoint: str, body: dict[str, Any]) -> None:
    if body.get("success") is False:
        message = body.get("message")
        server_message = message if isinstance(message, str) and message.strip() else None
        raise TrackApiError(
            f"{endpoint} failed: {server_message or 'success=false'}",
            endpoint=endpoint,
            server_message=server_message,
        )


async def request_json(
    transport: Transport,
    method: str,
    endpoint: str,
    *,
    json_body: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Send a request and return the full body after failure checks."""
    body = await transport.request(method, endpoint, json_body=json_body)
    _raise_for_body(endpoint, body)
    return body


async def request_data(
    transport: Transport,
    method: str,
    endpoint: str,
    *,
    json_body: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Send a request and return the ``data`` object of the response."""
    body = await request_json(transport, method, endpoint, json_body=json_body)
    data = body.get("data")
    if not isinstance(data, dict):
        raise TrackApiError(f"{endpoint} response missing 'data' object", endpoint=endpoint)
    return data
