"""
Order lifecycle: new -> accepted -> printing -> ready -> completed.

``advance`` is the only operation that changes an order's status. The status
and the timeline entry are written together through
``store.update_order_status``, guarded by the status the order had when it
was read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from errors import NoTransitionError, NotOrderOwnerError, OrderNotFoundError, StaleStatusError
from schemas import Order, OrderStatus

logger = logging.getLogger(__name__)

STATUS_FLOW: List[OrderStatus] = [
    OrderStatus.NEW,
    OrderStatus.ACCEPTED,
    OrderStatus.PRINTING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
]

NEXT_ACTIONS: Dict[OrderStatus, str] = {
    OrderStatus.NEW: "Accept Order",
    OrderStatus.ACCEPTED: "Start Printing",
    OrderStatus.PRINTING: "Mark as Ready",
    OrderStatus.READY: "Complete",
}

Listener = Callable[[Order], None]


@dataclass(frozen=True, slots=True)
class VendorSession:
    """The vendor operating on orders, passed explicitly to every call."""

    vendor_id: str


@dataclass
class OrderEvents:
    """Extension points for presentation side effects (toasts, notifications)."""

    created: List[Listener] = field(default_factory=list)
    changed: List[Listener] = field(default_factory=list)
    ready: List[Listener] = field(default_factory=list)

    def order_created(self, order: Order) -> None:
        self._fire("created", self.created, order)

    def status_changed(self, order: Order) -> None:
        self._fire("changed", self.changed, order)

    def order_ready(self, order: Order) -> None:
        self._fire("ready", self.ready, order)

    def _fire(self, name: str, listeners: List[Listener], order: Order) -> None:
        for listener in listeners:
            try:
                listener(order)
            except Exception:
                # the write already happened; a failing listener must not mask it
                logger.exception("[order=%s] %s listener %r failed", order.id, name, listener)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def successor(status: OrderStatus) -> Optional[OrderStatus]:
    idx = STATUS_FLOW.index(status)
    return STATUS_FLOW[idx + 1] if idx < len(STATUS_FLOW) - 1 else None


def next_action(status: OrderStatus) -> Optional[str]:
    return NEXT_ACTIONS.get(status)


def reconcile_status(order: Order) -> Order:
    """Return the order with ``status`` taken from its latest timeline entry.

    The two only disagree when a store wrote one half of a transition; the
    timeline is the record of what happened, so it wins.
    """
    if not order.timeline:
        return order
    latest = order.timeline[-1].status
    if latest == order.status:
        return order
    logger.warning("[order=%s] status %s disagrees with timeline %s, using timeline", order.id, order.status.value, latest.value)
    return order.model_copy(update={"status": latest})


def plan_transition(order: Order, session: VendorSession) -> OrderStatus:
    if order.vendor_id != session.vendor_id:
        raise NotOrderOwnerError(f"Order {order.id} belongs to another vendor")
    nxt = successor(order.status)
    if nxt is None:
        raise NoTransitionError(f"Order {order.id} is {order.status.value}; no further action is possible")
    return nxt


async def advance(
    store,
    session: VendorSession,
    order_id: str,
    events: Optional[OrderEvents] = None,
    now: Optional[datetime] = None,
) -> Order:
    """Move the order one step forward and return it as stored.

    Not idempotent: a replayed call after success advances again.
    """
    stored = await store.get_order(order_id)
    if stored is None:
        raise OrderNotFoundError(f"Order {order_id} not found")

    order = reconcile_status(stored)
    nxt = plan_transition(order, session)

    at = as_utc(now) if now is not None else datetime.now(timezone.utc)
    if order.timeline and at < as_utc(order.timeline[-1].timestamp):
        at = as_utc(order.timeline[-1].timestamp)

    updated = await store.update_order_status(order.id, session.vendor_id, stored.status, nxt, at)
    if updated is None:
        raise StaleStatusError(f"Order {order.id} changed while updating, reload and try again")
    logger.info("[order=%s] %s -> %s by vendor=%s", order.id, order.status.value, nxt.value, session.vendor_id)

    if events is not None:
        events.status_changed(updated)
        if nxt is OrderStatus.READY:
            events.order_ready(updated)
    return updated
