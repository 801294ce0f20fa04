from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional, Literal

from qrdine.context import AppContext
from qrdine.deps import get_ctx, require_role, raise_for_outcome
from qrdine.models.core import OrderStatus
from qrdine.schemas.orders import (
    OrderOut, StatusIn, FeedbackIn, TrackingOut, BoardColumn, OrderStatusLiteral,
)
from qrdine.services.order_store import StoreUnavailable
from qrdine.services.tracking import tracking_view, build_board

router = APIRouter(prefix="/orders", tags=["orders"])

STAFF = ("admin", "kitchen", "staff")


def _load(ctx: AppContext, order_id: str) -> OrderOut:
    try:
        o = ctx.orders.store.get(order_id)
    except StoreUnavailable as e:
        raise HTTPException(503, detail=str(e))
    if not o:
        raise HTTPException(404, detail="order not found")
    return o


def _all(ctx: AppContext, status: Optional[list[OrderStatus]] = None) -> list[OrderOut]:
    try:
        return ctx.orders.store.list_orders(status)
    except StoreUnavailable as e:
        raise HTTPException(503, detail=str(e))


@router.get("/", response_model=List[OrderOut])
def list_orders(
    status: Optional[OrderStatusLiteral] = None,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*STAFF)),
):
    """All orders, newest first."""
    return _all(ctx, [OrderStatus(status)] if status else None)


@router.get("/board/{surface}", response_model=List[BoardColumn])
def board(
    surface: Literal["kitchen", "admin"],
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*STAFF)),
):
    return build_board(_all(ctx), surface)


# customer-facing reads: the order id from checkout is the only credential
@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, ctx: AppContext = Depends(get_ctx)):
    return _load(ctx, order_id)


@router.get("/{order_id}/tracking", response_model=TrackingOut)
def track_order(order_id: str, ctx: AppContext = Depends(get_ctx)):
    return tracking_view(_load(ctx, order_id))


@router.post("/{order_id}/feedback", response_model=OrderOut)
def leave_feedback(order_id: str, body: FeedbackIn, ctx: AppContext = Depends(get_ctx)):
    result = ctx.orders.leave_feedback(order_id, body.rating, body.comment)
    raise_for_outcome(result)
    return result.value


# staff writes
@router.post("/{order_id}/advance", response_model=OrderOut)
def advance(
    order_id: str,
    from_status: Optional[OrderStatusLiteral] = None,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*STAFF)),
):
    """
    Move the order one step along the pipeline. Pass ``from_status`` (the status the
    board was showing) so a double click or a second screen cannot skip a step.
    """
    result = ctx.orders.advance(order_id, from_status, actor=sub)
    raise_for_outcome(result)
    return result.value


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel(
    order_id: str,
    reason: Optional[str] = None,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role("admin")),
):
    result = ctx.orders.cancel(order_id, actor=sub, reason=reason)
    raise_for_outcome(result)
    return result.value


@router.post("/{order_id}/status", response_model=OrderOut)
def override_status(
    order_id: str,
    body: StatusIn,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role("admin")),
):
    result = ctx.orders.override_status(order_id, body.status, actor=sub, reason=body.reason)
    raise_for_outcome(result)
    return result.value


@router.delete("/{order_id}")
def delete_order(
    order_id: str,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role("admin")),
):
    raise_for_outcome(ctx.orders.delete(order_id, actor=sub))
    return {"ok": True, "id": order_id}
