"""Cart -> order -> live viewers.

The coordinator owns the sequencing rules around an order:

* ``submit`` freezes a cart into an order and clears the cart only once the
  order is stored. A failed write leaves the cart untouched so the customer can
  retry. A write that succeeded but was reported as failed can still produce a
  duplicate on retry; nothing here deduplicates.
* ``advance`` moves an order one step along the pipeline and refuses terminal
  statuses. The write is conditional on the status the caller saw, so two staff
  members pressing the same button cannot push an order two steps.
* ``subscribe`` hands out cancellable subscriptions to full order-set snapshots.
"""
import logging
from typing import Callable, Optional

from qrdine.models.common import utcnow
from qrdine.models.core import OrderStatus
from qrdine.schemas.orders import OrderOut
from qrdine.services.cart import Cart, StorageError
from qrdine.services.feed import Subscription
from qrdine.services.order_status import next_status, cancel_target
from qrdine.services.order_store import OrderStore, StoreUnavailable
from qrdine.services.pricing import order_totals, PricingError
from qrdine.services.results import Outcome, Result, WriteStatus

logger = logging.getLogger(__name__)

_WRITE_OUTCOME = {
    WriteStatus.OK: Outcome.OK,
    WriteStatus.NOT_FOUND: Outcome.NOT_FOUND,
    WriteStatus.CONFLICT: Outcome.STALE,
    WriteStatus.FAILED: Outcome.FAILED,
}

# statuses that share a successor are interchangeable as the "seen" status
_EQUIVALENT = {
    OrderStatus.PENDING: (OrderStatus.PENDING, OrderStatus.ACCEPTED),
    OrderStatus.ACCEPTED: (OrderStatus.PENDING, OrderStatus.ACCEPTED),
}


class OrderLifecycle:
    def __init__(self, store: OrderStore):
        self.store = store

    # ---------- checkout ----------

    def submit(
        self,
        cart: Cart,
        payment_method: str,
        table_id: Optional[str] = None,
        **contact,
    ) -> Result:
        if cart.is_empty():
            return Result(Outcome.EMPTY_CART, detail="cart is empty")

        items = cart.items  # deep copies; later cart edits cannot reach the order
        try:
            totals = order_totals(items)
        except PricingError as e:
            return Result(Outcome.INVALID, detail=str(e))

        now = utcnow()
        fields = dict(
            table_id=table_id if table_id is not None else cart.table_id,
            items=[i.model_dump(mode="json") for i in items],
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
            **totals,
            **{k: v for k, v in contact.items() if v is not None},
        )
        order = self.store.create(fields)
        if order is None:
            logger.warning("order submission failed for table %s; cart kept", cart.table_id)
            return Result(Outcome.FAILED, detail="could not place order, please try again")

        try:
            cart.clear()
        except StorageError:
            # the order exists; a stale cart is the lesser problem
            logger.warning("order %s placed but cart for table %s was not cleared", order.id, cart.table_id)
        return Result(Outcome.OK, order)

    # ---------- status ----------

    def advance(
        self,
        order_id: str,
        current_status: Optional[OrderStatus | str] = None,
        actor: Optional[str] = None,
    ) -> Result:
        if current_status is None:
            try:
                order = self.store.get(order_id)
            except StoreUnavailable as e:
                return Result(Outcome.FAILED, detail=str(e))
            if order is None:
                return Result(Outcome.NOT_FOUND, detail="order not found")
            current_status = order.status

        current = OrderStatus(current_status)
        target = next_status(current)
        if target is None:
            return Result(Outcome.NO_TRANSITION, detail=f"no transition from '{current.value}'")

        expected = _EQUIVALENT.get(current, (current,))
        ws, order = self.store.update_status(order_id, target, expected=expected, actor=actor, action="ADVANCE")
        return self._status_result(ws, order, current, target)

    def cancel(self, order_id: str, actor: Optional[str] = None, reason: Optional[str] = None) -> Result:
        try:
            order = self.store.get(order_id)
        except StoreUnavailable as e:
            return Result(Outcome.FAILED, detail=str(e))
        if order is None:
            return Result(Outcome.NOT_FOUND, detail="order not found")
        current = OrderStatus(order.status)
        if cancel_target(current) is None:
            return Result(Outcome.NO_TRANSITION, detail=f"cannot cancel a '{current.value}' order")

        ws, out = self.store.update_status(
            order_id, OrderStatus.CANCELLED, expected=(current,), actor=actor, action="CANCEL", reason=reason,
        )
        return self._status_result(ws, out, current, OrderStatus.CANCELLED)

    def override_status(self, order_id: str, status: OrderStatus | str, actor: Optional[str] = None,
                        reason: Optional[str] = None) -> Result:
        """Privileged: set any status, skipping the transition table."""
        ws, out = self.store.update_status(
            order_id, OrderStatus(status), expected=None, actor=actor, action="OVERRIDE", reason=reason,
        )
        return Result(_WRITE_OUTCOME[ws], out, None if ws is WriteStatus.OK else ws.value)

    def _status_result(self, ws: WriteStatus, order: Optional[OrderOut], seen: OrderStatus,
                       target: OrderStatus) -> Result:
        if ws is WriteStatus.CONFLICT:
            return Result(Outcome.STALE, order,
                          f"order moved on from '{seen.value}' to '{order.status}'")
        if ws is WriteStatus.OK:
            return Result(Outcome.OK, order)
        return Result(_WRITE_OUTCOME[ws], order,
                      "order not found" if ws is WriteStatus.NOT_FOUND else f"could not set '{target.value}'")

    # ---------- other writes ----------

    def leave_feedback(self, order_id: str, rating: int, comment: str = "") -> Result:
        fb = {"rating": rating, "comment": comment, "created_at": utcnow().isoformat()}
        ws, out = self.store.update_fields(order_id, {"feedback": fb})
        return Result(_WRITE_OUTCOME[ws], out)

    def delete(self, order_id: str, actor: Optional[str] = None) -> Result:
        return Result(_WRITE_OUTCOME[self.store.delete(order_id, actor=actor)])

    # ---------- live view ----------

    def subscribe(self, callback: Callable[[list[OrderOut]], None]) -> Subscription:
        return self.store.subscribe(callback)
