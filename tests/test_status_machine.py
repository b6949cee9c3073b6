from __future__ import annotations

import pytest

from pyordertrack.models.status import ActorRole, OrderStatus
from pyordertrack.status import (
    AGENT_ALLOWED_TRANSITIONS,
    STATUS_FLOW,
    canonical_next_status,
    compute_next_status,
    is_before,
    is_terminal,
    should_track_location,
    status_index,
)


def test_flow_is_the_declared_order() -> None:
    assert [s.value for s in STATUS_FLOW] == [
        "Scheduled",
        "Reached Store",
        "Picked Up",
        "Out for Delivery",
        "Delivered",
    ]
    assert status_index(OrderStatus.SCHEDULED) == 0
    assert is_before(OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY)
    assert not is_before(OrderStatus.DELIVERED, OrderStatus.DELIVERED)


def test_agent_transitions() -> None:
    assert compute_next_status(OrderStatus.PICKED_UP, ActorRole.AGENT) == OrderStatus.OUT_FOR_DELIVERY
    assert compute_next_status(OrderStatus.OUT_FOR_DELIVERY, ActorRole.AGENT) == OrderStatus.DELIVERED


@pytest.mark.parametrize("role", list(ActorRole))
@pytest.mark.parametrize("status", list(OrderStatus))
def test_every_other_pair_has_no_transition(status: OrderStatus, role: ActorRole) -> None:
    if role == ActorRole.AGENT and status in AGENT_ALLOWED_TRANSITIONS:
        pytest.skip("covered by test_agent_transitions")
    assert compute_next_status(status, role) is None


@pytest.mark.parametrize("role", list(ActorRole))
def test_delivered_is_terminal_for_every_role(role: ActorRole) -> None:
    assert is_terminal(OrderStatus.DELIVERED)
    assert compute_next_status(OrderStatus.DELIVERED, role) is None


def test_canonical_next_status_walks_the_flow() -> None:
    assert canonical_next_status(OrderStatus.SCHEDULED) == OrderStatus.REACHED_STORE
    assert canonical_next_status(OrderStatus.REACHED_STORE) == OrderStatus.PICKED_UP
    assert canonical_next_status(OrderStatus.DELIVERED) is None


def test_location_tracking_only_while_carrying_the_order() -> None:
    tracked = {s for s in OrderStatus if should_track_location(s)}
    assert tracked == {OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY}
