"""Deterministic visibility and presentation policy.

Pure functions of the order status (and the known agent location); the
reconciler consults them after every change.
"""

from __future__ import annotations

from dataclasses import dataclass

from pyordertrack.models.position import GeoPoint
from pyordertrack.models.status import OrderStatus
from pyordertrack.status import is_before


@dataclass(frozen=True)
class StatusBadge:
    label: str
    color: str


_BADGE_COLORS: dict[OrderStatus, str] = {
    OrderStatus.SCHEDULED: "blue",
    OrderStatus.REACHED_STORE: "yellow",
    OrderStatus.PICKED_UP: "orange",
    OrderStatus.OUT_FOR_DELIVERY: "purple",
    OrderStatus.DELIVERED: "green",
}


def agent_marker_visible(status: OrderStatus, location: GeoPoint | None) -> bool:
    """Agent is drawn until delivery, as soon as a position is known."""
    return status != OrderStatus.DELIVERED and location is not None


def store_marker_visible(status: OrderStatus) -> bool:
    """Store is drawn while the agent has not yet left with the order."""
    return is_before(status, OrderStatus.OUT_FOR_DELIVERY)


def should_engage_realtime(enabled: bool, status: OrderStatus) -> bool:
    return enabled and status != OrderStatus.DELIVERED


def status_badge(status: OrderStatus | str) -> StatusBadge:
    """Label and color for *status*; unknown values render gray."""
    try:
        known = OrderStatus(status)
    except ValueError:
        return StatusBadge(label=str(status), color="gray")
    return StatusBadge(label=known.value, color=_BADGE_COLORS.get(known, "gray"))
