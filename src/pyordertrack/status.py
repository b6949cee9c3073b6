"""Order status state machine.

The five statuses form a total order. Only agents may advance an order
once it has been picked up; the earlier steps belong to dispatchers and
the backend itself.
"""

from __future__ import annotations

from pyordertrack.models.status import ActorRole, OrderStatus

STATUS_FLOW: tuple[OrderStatus, ...] = tuple(OrderStatus)

#: Transitions an agent may trigger, keyed by current status.
AGENT_ALLOWED_TRANSITIONS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PICKED_UP: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}

_ROLE_TRANSITIONS: dict[ActorRole, dict[OrderStatus, OrderStatus]] = {
    ActorRole.AGENT: AGENT_ALLOWED_TRANSITIONS,
}

#: Statuses during which the agent position is worth sampling.
TRACKABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY})


def status_index(status: OrderStatus) -> int:
    """Position of *status* in the canonical flow (0 = Scheduled)."""
    return STATUS_FLOW.index(status)


def is_before(status: OrderStatus, other: OrderStatus) -> bool:
    """Whether *status* comes strictly before *other* in the flow."""
    return status_index(status) < status_index(other)


def is_terminal(status: OrderStatus) -> bool:
    return status == OrderStatus.DELIVERED


def compute_next_status(current: OrderStatus, role: ActorRole) -> OrderStatus | None:
    """Return the single status *role* may move *current* to, or ``None``.

    ``None`` means either the order is delivered or the role has no
    transition from this status.
    """
    if is_terminal(current):
        return None
    return _ROLE_TRANSITIONS.get(role, {}).get(current)


def canonical_next_status(current: OrderStatus) -> OrderStatus | None:
    """Next status in the forward flow regardless of role (dispatcher tooling)."""
    index = status_index(current)
    if index + 1 >= len(STATUS_FLOW):
        return None
    return STATUS_FLOW[index + 1]


def should_track_location(status: OrderStatus) -> bool:
    return status in TRACKABLE_STATUSES
