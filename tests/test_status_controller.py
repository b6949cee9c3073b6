from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from pyordertrack.controls import StatusController
from pyordertrack.exceptions import TrackStatusTransitionError, TrackTransportError
from pyordertrack.models.status import ActorRole, OrderStatus


class _StatusTransport:
    def __init__(self, *, error: Exception | None = None, echo: bool = True) -> None:
        self._error = error
        self._echo = echo
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str, Mapping[str, Any] | None]] = []

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.calls.append((method, endpoint, json_body))
        if self.gate is not None:
            await self.gate.wait()
        if self._error is not None:
            raise self._error
        if not self._echo:
            return {"success": True}
        assert json_body is not None
        return {"success": True, "data": {"taskId": "TASK-1", "status": json_body["status"]}}


@pytest.mark.asyncio
async def test_agent_advances_picked_up_order() -> None:
    transport = _StatusTransport()
    controller = StatusController(transport, "TASK-1", OrderStatus.PICKED_UP, role=ActorRole.AGENT)
    committed: list[OrderStatus] = []
    controller.on_committed(committed.append)

    assert controller.next_status == OrderStatus.OUT_FOR_DELIVERY
    assert await controller.advance() is True

    assert controller.status == OrderStatus.OUT_FOR_DELIVERY
    assert committed == [OrderStatus.OUT_FOR_DELIVERY]
    assert transport.calls == [("PATCH", "/orders/TASK-1/status", {"status": "Out for Delivery"})]


@pytest.mark.asyncio
async def test_requested_status_is_pending_until_acknowledged() -> None:
    transport = _StatusTransport(echo=False)
    transport.gate = asyncio.Event()
    controller = StatusController(transport, "TASK-1", OrderStatus.OUT_FOR_DELIVERY, role=ActorRole.AGENT)

    request = asyncio.create_task(controller.advance())
    await asyncio.sleep(0)

    assert controller.pending_status == OrderStatus.DELIVERED
    assert controller.displayed_status == OrderStatus.DELIVERED
    assert controller.status == OrderStatus.OUT_FOR_DELIVERY
    assert not controller.can_update
    # A second request while one is in flight is ignored.
    assert await controller.advance() is False

    transport.gate.set()
    assert await request is True
    assert controller.pending_status is None
    assert controller.status == OrderStatus.DELIVERED
    assert controller.is_completed
    assert not controller.can_update


@pytest.mark.asyncio
async def test_rejected_request_keeps_status_and_reports_backend_message() -> None:
    errors: list[str] = []
    error = TrackTransportError("HTTP 400", status_code=400, server_message="Invalid status transition")
    controller = StatusController(
        _StatusTransport(error=error),
        "TASK-1",
        OrderStatus.PICKED_UP,
        role=ActorRole.AGENT,
        on_error=errors.append,
    )

    assert await controller.advance() is False

    assert controller.status == OrderStatus.PICKED_UP
    assert controller.pending_status is None
    assert errors == ["Invalid status transition"]


@pytest.mark.asyncio
async def test_rejected_request_without_message_uses_fallback() -> None:
    errors: list[str] = []
    controller = StatusController(
        _StatusTransport(error=TrackTransportError("timed out")),
        "TASK-1",
        OrderStatus.PICKED_UP,
        role=ActorRole.AGENT,
        on_error=errors.append,
    )
    await controller.advance()
    assert errors == ["Failed to update status"]


@pytest.mark.asyncio
async def test_customer_cannot_advance() -> None:
    transport = _StatusTransport()
    controller = StatusController(transport, "TASK-1", OrderStatus.PICKED_UP, role=ActorRole.CUSTOMER)

    assert controller.next_status is None
    with pytest.raises(TrackStatusTransitionError) as exc_info:
        await controller.advance()
    assert exc_info.value.role == ActorRole.CUSTOMER
    assert transport.calls == []


@pytest.mark.asyncio
async def test_move_to_is_reserved_for_admins() -> None:
    agent = StatusController(_StatusTransport(), "TASK-1", OrderStatus.SCHEDULED, role=ActorRole.AGENT)
    with pytest.raises(TrackStatusTransitionError):
        await agent.move_to(OrderStatus.PICKED_UP)

    admin = StatusController(_StatusTransport(), "TASK-1", OrderStatus.SCHEDULED, role=ActorRole.ADMIN)
    assert await admin.move_to(OrderStatus.PICKED_UP) is True
    assert admin.status == OrderStatus.PICKED_UP


def test_sync_adopts_pushed_status() -> None:
    controller = StatusController(_StatusTransport(), "TASK-1", OrderStatus.PICKED_UP, role=ActorRole.AGENT)
    controller.sync(OrderStatus.OUT_FOR_DELIVERY)
    assert controller.status == OrderStatus.OUT_FOR_DELIVERY
    assert controller.next_status == OrderStatus.DELIVERED
