import asyncio
import logging
from typing import Awaitable, Callable, AsyncIterator, Optional

from qrdine.config import settings
from qrdine.schemas.orders import OrderOut, TrackingOut, BoardCard, BoardColumn
from qrdine.services.order_status import (
    tracking_steps, is_terminal, next_status, action_label, board_column, BOARD_COLUMNS,
)
from qrdine.models.core import OrderStatus

logger = logging.getLogger(__name__)


def tracking_view(order: OrderOut) -> TrackingOut:
    return TrackingOut(
        order=order,
        steps=tracking_steps(order.status),
        cancelled=order.status == OrderStatus.CANCELLED.value,
        poll_interval_s=settings.TRACKING_POLL_S,
    )


async def poll_order(
    fetch: Callable[[], Awaitable[Optional[OrderOut]]],
    interval: Optional[float] = None,
) -> AsyncIterator[OrderOut]:
    """Yield the order every time its status changes, stopping at a terminal status.

    For viewers that cannot hold a live feed open. A failed or empty fetch is
    retried on the next tick.
    """
    interval = settings.TRACKING_POLL_S if interval is None else interval
    last: Optional[str] = None
    while True:
        try:
            order = await fetch()
        except Exception:
            logger.warning("order poll failed; retrying in %ss", interval, exc_info=True)
            order = None
        if order is not None and order.status != last:
            last = order.status
            yield order
            if is_terminal(order.status):
                return
        await asyncio.sleep(interval)


def build_board(orders: list[OrderOut], surface: str) -> list[BoardColumn]:
    """Kanban columns for the kitchen (oldest first) or admin (newest first) board."""
    ordered = sorted(orders, key=lambda o: o.created_at, reverse=(surface == "admin"))
    columns = []
    for status, label in BOARD_COLUMNS:
        cards = []
        for o in ordered:
            if board_column(o.status) is not status:
                continue
            nxt = next_status(o.status)
            cards.append(BoardCard(
                order=o,
                next_status=nxt.value if nxt else None,
                action_label=action_label(surface, o.status),
            ))
        columns.append(BoardColumn(status=status.value, label=label, count=len(cards), cards=cards))
    return columns
