"""Order status pipeline.

    pending ─┐
             ├─> preparing -> ready -> served
    accepted ┘
    (any non-terminal) -> cancelled   (admin only)

Every non-terminal status has exactly one forward successor. The kitchen board,
the admin board and the customer tracking page all read from these tables.
"""
from typing import Optional

from qrdine.models.core import OrderStatus

NEXT_STATUS: dict[OrderStatus, Optional[OrderStatus]] = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.ACCEPTED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.SERVED,
    OrderStatus.SERVED: None,
    OrderStatus.CANCELLED: None,
}

TERMINAL = frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED})

# button text per surface
ACTION_LABELS: dict[str, dict[OrderStatus, str]] = {
    "kitchen": {
        OrderStatus.PENDING: "Start Cooking →",
        OrderStatus.ACCEPTED: "Start Cooking →",
        OrderStatus.PREPARING: "Mark Ready →",
        OrderStatus.READY: "Deliver →",
    },
    "admin": {
        OrderStatus.PENDING: "Start Preparing →",
        OrderStatus.ACCEPTED: "Start Preparing →",
        OrderStatus.PREPARING: "Mark Ready →",
        OrderStatus.READY: "Mark Served →",
    },
}

BOARD_COLUMNS: list[tuple[OrderStatus, str]] = [
    (OrderStatus.PENDING, "Pending"),
    (OrderStatus.PREPARING, "Preparing"),
    (OrderStatus.READY, "Ready"),
    (OrderStatus.SERVED, "Served"),
]

TRACKING_STEPS: list[tuple[OrderStatus, str]] = [
    (OrderStatus.PENDING, "Order Placed"),
    (OrderStatus.ACCEPTED, "Accepted"),
    (OrderStatus.PREPARING, "Preparing"),
    (OrderStatus.READY, "Ready"),
    (OrderStatus.SERVED, "Served"),
]


def next_status(current: OrderStatus | str) -> Optional[OrderStatus]:
    """The single legal successor, or None for terminal statuses."""
    return NEXT_STATUS[OrderStatus(current)]


def is_terminal(status: OrderStatus | str) -> bool:
    return OrderStatus(status) in TERMINAL


def cancel_target(current: OrderStatus | str) -> Optional[OrderStatus]:
    if is_terminal(current):
        return None
    return OrderStatus.CANCELLED


def action_label(surface: str, status: OrderStatus | str) -> Optional[str]:
    return ACTION_LABELS[surface].get(OrderStatus(status))


def board_column(status: OrderStatus | str) -> Optional[OrderStatus]:
    """Column an order sits in on a staff board; accepted shares the pending column."""
    s = OrderStatus(status)
    if s is OrderStatus.ACCEPTED:
        return OrderStatus.PENDING
    if s is OrderStatus.CANCELLED:
        return None
    return s


def tracking_steps(status: OrderStatus | str) -> list[dict]:
    s = OrderStatus(status)
    order = [st for st, _ in TRACKING_STEPS]
    reached = order.index(s) if s in order else -1
    return [
        {"status": st.value, "label": label, "done": i <= reached, "current": i == reached}
        for i, (st, label) in enumerate(TRACKING_STEPS)
    ]
