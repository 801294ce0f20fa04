# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, UserRole,

    # Identity
    User,

    # Menu
    MenuCategory, MenuItem,

    # Dining
    DiningTable,

    # Orders / carts
    Order, CartSlot,

    # Audit
    AuditLog,
)

__all__ = [
    "OrderStatus", "UserRole",
    "User",
    "MenuCategory", "MenuItem",
    "DiningTable",
    "Order", "CartSlot",
    "AuditLog",
]
