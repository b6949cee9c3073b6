from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from pyordertrack._api import orders as orders_api
from pyordertrack._api._common import order_path
from pyordertrack._transport import _extract_message
from pyordertrack.exceptions import TrackApiError
from pyordertrack.models.position import GeoPoint
from pyordertrack.models.status import OrderStatus


class _StaticTransport:
    def __init__(self, body: dict[str, Any]) -> None:
        self._body = body
        self.calls: list[tuple[str, str, Mapping[str, Any] | None]] = []

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.calls.append((method, endpoint, json_body))
        return self._body


def test_order_path_quotes_ids() -> None:
    assert order_path("TASK-1001") == "/orders/TASK-1001"
    assert order_path("a/b", "/status") == "/orders/a%2Fb/status"
    with pytest.raises(ValueError):
        order_path("  ")


@pytest.mark.asyncio
async def test_fetch_order_unwraps_data() -> None:
    transport = _StaticTransport({"success": True, "data": {"taskId": "TASK-1", "status": "Picked Up"}})

    order = await orders_api.fetch_order(transport, "TASK-1")

    assert order.task_id == "TASK-1"
    assert order.status == OrderStatus.PICKED_UP
    assert transport.calls == [("GET", "/orders/TASK-1", None)]


@pytest.mark.asyncio
async def test_success_false_raises_api_error_with_server_message() -> None:
    transport = _StaticTransport({"success": False, "message": "Order not found"})

    with pytest.raises(TrackApiError) as exc_info:
        await orders_api.fetch_order(transport, "TASK-404")

    assert exc_info.value.server_message == "Order not found"
    assert exc_info.value.endpoint == "/orders/TASK-404"


@pytest.mark.asyncio
async def test_missing_data_raises_api_error() -> None:
    with pytest.raises(TrackApiError):
        await orders_api.fetch_order(_StaticTransport({"success": True}), "TASK-1")


@pytest.mark.asyncio
async def test_update_status_returns_echoed_order() -> None:
    transport = _StaticTransport({"data": {"taskId": "TASK-1", "status": "Out for Delivery"}})

    order = await orders_api.update_order_status(transport, "TASK-1", OrderStatus.OUT_FOR_DELIVERY)

    assert order is not None
    assert order.status == OrderStatus.OUT_FOR_DELIVERY
    assert transport.calls == [("PATCH", "/orders/TASK-1/status", {"status": "Out for Delivery"})]


@pytest.mark.asyncio
async def test_update_status_without_order_body_returns_none() -> None:
    transport = _StaticTransport({"success": True, "message": "Status updated"})
    assert await orders_api.update_order_status(transport, "TASK-1", OrderStatus.DELIVERED) is None


@pytest.mark.asyncio
async def test_location_and_generic_updates_use_separate_endpoints() -> None:
    transport = _StaticTransport({"success": True})
    point = GeoPoint(latitude=20.2961, longitude=85.8245)

    await orders_api.update_order_location(transport, "TASK-1", point)
    await orders_api.update_order(transport, "TASK-1", {"location": point.to_payload()})

    body = {"location": {"latitude": 20.2961, "longitude": 85.8245}}
    assert transport.calls == [
        ("PATCH", "/orders/TASK-1/location", body),
        ("PATCH", "/orders/TASK-1", body),
    ]


def test_extract_message_from_error_body() -> None:
    assert _extract_message('{"message": " Invalid status transition "}') == "Invalid status transition"
    assert _extract_message('{"error": "Unauthorized"}') == "Unauthorized"
    assert _extract_message("<html>502</html>") is None
    assert _extract_message('["not", "an", "object"]') is None
