"""Order status and actor role enums."""

from __future__ import annotations

import enum


class OrderStatus(enum.StrEnum):
    """Order lifecycle status.

    Values are the strings the backend sends and displays. Declaration
    order is the canonical forward progression.
    """

    SCHEDULED = "Scheduled"
    REACHED_STORE = "Reached Store"
    PICKED_UP = "Picked Up"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"


class ActorRole(enum.StrEnum):
    """Who is asking for a status transition."""

    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"
    SYSTEM = "system"
