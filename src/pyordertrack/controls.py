"""Two-phase status transition requests.

A requested status is shown as *pending* while the request is in flight
and becomes the committed status only once the backend acknowledges it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pyordertrack._api import orders as _orders_api
from pyordertrack._hooks import Hook
from pyordertrack._transport import Transport
from pyordertrack.exceptions import TrackError, TrackStatusTransitionError, error_message
from pyordertrack.models.status import ActorRole, OrderStatus
from pyordertrack.status import compute_next_status, is_terminal

_logger = logging.getLogger(__name__)

_FREE_TRANSITION_ROLES = frozenset({ActorRole.ADMIN, ActorRole.SYSTEM})


class StatusController:
    """Request status transitions for one order on behalf of one actor.

    Parameters
    ----------
    transport
        HTTP transport to the order backend.
    order_id
        Order task id.
    status
        Status currently known for the order.
    role
        Actor requesting transitions.
    on_error
        Receives a human-readable message when a request is rejected.
    """

    def __init__(
        self,
        transport: Transport,
        order_id: str,
        status: OrderStatus,
        *,
        role: ActorRole,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._transport = transport
        self._order_id = order_id
        self._role = role
        self._on_error = on_error
        self.status = status
        self.pending_status: OrderStatus | None = None
        self.error: str | None = None
        self.on_committed: Hook[[OrderStatus]] = Hook("on_committed")

    @property
    def role(self) -> ActorRole:
        return self._role

    @property
    def displayed_status(self) -> OrderStatus:
        """Pending status while a request is in flight, else the committed one."""
        return self.pending_status or self.status

    @property
    def next_status(self) -> OrderStatus | None:
        return compute_next_status(self.status, self._role)

    @property
    def is_completed(self) -> bool:
        return is_terminal(self.status)

    @property
    def can_update(self) -> bool:
        return self.pending_status is None and self.next_status is not None

    def sync(self, status: OrderStatus) -> None:
        """Adopt a status learned elsewhere (e.g. a channel push)."""
        if self.pending_status is None:
            self.status = status

    async def advance(self) -> bool:
        """Request the single transition this role may perform.

        Returns ``True`` once the backend acknowledged it. An actor with no
        transition from the current status is refused locally.
        """
        target = self.next_status
        if target is None:
            raise TrackStatusTransitionError(
                f"{self._role} cannot advance an order that is {self.status}",
                current=self.status,
                role=self._role,
            )
        return await self._request(target)

    async def move_to(self, status: OrderStatus) -> bool:
        """Request an arbitrary status (board drag and drop).

        Only admins and the system may skip or rewind steps.
        """
        if self._role not in _FREE_TRANSITION_ROLES:
            raise TrackStatusTransitionError(
                f"{self._role} cannot move an order to {status}",
                current=self.status,
                requested=status,
                role=self._role,
            )
        if status == self.status:
            return True
        return await self._request(status)

    async def _request(self, target: OrderStatus) -> bool:
        if self.pending_status is not None:
            _logger.debug("Transition to %s already pending, ignoring %s", self.pending_status, target)
            return False

        self.pending_status = target
        self.error = None
        try:
            order = await _orders_api.update_order_status(self._transport, self._order_id, target)
        except TrackError as exc:
            message = error_message(exc, "Failed to update status")
            _logger.warning("Status update to %s failed order=%s: %s", target, self._order_id, exc)
            self.error = message
            if self._on_error is not None:
                try:
                    self._on_error(message)
                except Exception:
                    _logger.debug("on_error callback failed", exc_info=True)
            return False
        finally:
            self.pending_status = None

        committed = order.status if order is not None else target
        _logger.debug("Order %s status committed %s -> %s", self._order_id, self.status, committed)
        self.status = committed
        self.on_committed.emit(committed)
        return True
