"""Order persistence plus change notification.

Every successful write re-reads the whole order set (newest first) and pushes it
to the feed, so subscribers always see a complete collection.
"""
import logging
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from qrdine.models.common import as_utc, utcnow
from qrdine.models.core import Order, OrderStatus
from qrdine.schemas.orders import OrderOut
from qrdine.services.feed import OrderFeed, Subscription
from qrdine.services.results import WriteStatus
from qrdine.util.audit import audit

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    pass


def order_out(o: Order) -> OrderOut:
    fb = o.feedback
    return OrderOut(
        id=o.id,
        table_id=o.table_id,
        customer_name=o.customer_name,
        phone=o.phone,
        address=o.address,
        city=o.city,
        street_address=o.street_address,
        latitude=o.latitude,
        longitude=o.longitude,
        items=o.items or [],
        status=getattr(o.status, "value", o.status),
        payment_method=o.payment_method,
        created_at=as_utc(o.created_at),
        updated_at=as_utc(o.updated_at),
        subtotal=float(o.subtotal or 0),
        tax=float(o.tax or 0),
        total=float(o.total or 0),
        special_instructions=o.special_instructions,
        feedback=fb or None,
    )


class OrderStore:
    def __init__(self, session_factory, feed: Optional[OrderFeed] = None):
        self._session_factory = session_factory
        self.feed = feed or OrderFeed()

    # ---------- reads ----------

    def list_orders(self, status: Optional[Iterable[OrderStatus]] = None) -> list[OrderOut]:
        try:
            with self._session_factory() as db:
                q = db.query(Order)
                if status:
                    q = q.filter(Order.status.in_(list(status)))
                rows = q.order_by(Order.created_at.desc(), Order.id.desc()).all()
                return [order_out(o) for o in rows]
        except SQLAlchemyError as e:
            logger.exception("listing orders failed")
            raise StoreUnavailable("order store unavailable") from e

    def get(self, order_id: str) -> Optional[OrderOut]:
        try:
            with self._session_factory() as db:
                o = db.get(Order, order_id)
                return order_out(o) if o else None
        except SQLAlchemyError as e:
            logger.exception("loading order %s failed", order_id)
            raise StoreUnavailable("order store unavailable") from e

    # ---------- writes ----------

    def create(self, fields: dict) -> Optional[OrderOut]:
        try:
            with self._session_factory() as db:
                o = Order(**fields)
                db.add(o)
                db.commit()
                db.refresh(o)
                out = order_out(o)
        except SQLAlchemyError:
            logger.exception("creating order failed")
            return None
        logger.info("order %s created for table %s total=%s", out.id, out.table_id, out.total)
        self._notify()
        return out

    def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        expected: Optional[Iterable[OrderStatus]] = None,
        actor: Optional[str] = None,
        action: str = "STATUS",
        reason: Optional[str] = None,
    ) -> tuple[WriteStatus, Optional[OrderOut]]:
        """Set ``status`` if the stored status is one of ``expected`` (any, if None)."""
        try:
            with self._session_factory() as db:
                o = db.get(Order, order_id)
                if not o:
                    return WriteStatus.NOT_FOUND, None
                before = o.status
                q = db.query(Order).filter(Order.id == order_id)
                if expected is not None:
                    q = q.filter(Order.status.in_(list(expected)))
                changed = q.update(
                    {Order.status: new_status, Order.updated_at: utcnow(), Order.version: Order.version + 1},
                    synchronize_session=False,
                )
                if not changed:
                    seen = order_out(o)
                    db.rollback()
                    return WriteStatus.CONFLICT, seen
                audit(db, actor, "order", order_id, action,
                      before={"status": before.value}, after={"status": new_status.value}, reason=reason)
                db.commit()
                db.expire_all()
                out = order_out(db.get(Order, order_id))
        except SQLAlchemyError:
            logger.exception("status update failed for order %s", order_id)
            return WriteStatus.FAILED, None
        logger.info("order %s %s -> %s (%s)", order_id, before.value, new_status.value, action)
        self._notify()
        return WriteStatus.OK, out

    def update_fields(self, order_id: str, fields: dict) -> tuple[WriteStatus, Optional[OrderOut]]:
        try:
            with self._session_factory() as db:
                o = db.get(Order, order_id)
                if not o:
                    return WriteStatus.NOT_FOUND, None
                for k, v in fields.items():
                    setattr(o, k, v)
                o.updated_at = utcnow()
                db.commit()
                db.refresh(o)
                out = order_out(o)
        except SQLAlchemyError:
            logger.exception("updating order %s failed", order_id)
            return WriteStatus.FAILED, None
        self._notify()
        return WriteStatus.OK, out

    def delete(self, order_id: str, actor: Optional[str] = None) -> WriteStatus:
        try:
            with self._session_factory() as db:
                o = db.get(Order, order_id)
                if not o:
                    return WriteStatus.NOT_FOUND
                audit(db, actor, "order", order_id, "DELETE", before={"status": o.status.value})
                db.delete(o)
                db.commit()
        except SQLAlchemyError:
            logger.exception("deleting order %s failed", order_id)
            return WriteStatus.FAILED
        logger.info("order %s deleted", order_id)
        self._notify()
        return WriteStatus.OK

    # ---------- change notification ----------

    def subscribe(self, callback: Callable[[list[OrderOut]], None]) -> Subscription:
        """Register for full-collection snapshots; the current set is delivered first."""
        return self.feed.subscribe(callback, initial=self._snapshot())

    def _snapshot(self) -> Optional[list[OrderOut]]:
        try:
            return self.list_orders()
        except StoreUnavailable:
            return None

    def _notify(self) -> None:
        snapshot = self._snapshot()
        if snapshot is not None:
            self.feed.publish(snapshot)
