from sqlalchemy import (
    String, Boolean, Numeric, Enum, Text, DateTime, JSON, Float
)
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum as PyEnum
from datetime import datetime
from qrdine.db import Base
from qrdine.models.common import IdMixin, TSMMixin

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"

class UserRole(str, PyEnum):
    ADMIN = "admin"
    KITCHEN = "kitchen"
    STAFF = "staff"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    email: Mapped[str] = mapped_column(String(160), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.STAFF)
    pass_hash: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

# ── Menu ────────────────────────────────────────────────────────────────────
class MenuCategory(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_category"
    name: Mapped[str] = mapped_column(String(120), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(400))
    display_order: Mapped[int] = mapped_column(default=0)

class MenuItem(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_item"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str] = mapped_column(Text, default="")
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    image: Mapped[str] = mapped_column(String(400), default="")
    category_id: Mapped[str] = mapped_column(String(36))
    category_name: Mapped[str] = mapped_column(String(120))  # denormalized for display
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    is_popular: Mapped[bool] = mapped_column(Boolean, default=False)
    sizes: Mapped[list | None] = mapped_column(JSON)   # [{id, name, price_modifier}]
    extras: Mapped[list | None] = mapped_column(JSON)  # [{id, name, price}]

# ── Dining ──────────────────────────────────────────────────────────────────
class DiningTable(Base, IdMixin, TSMMixin):
    __tablename__ = "dining_table"
    name: Mapped[str] = mapped_column(String(60))
    seats: Mapped[int] = mapped_column(default=2)
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False)
    current_order_id: Mapped[str | None] = mapped_column(String(36))

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    # plain string, not a FK: deleting a table never touches its orders
    table_id: Mapped[str | None] = mapped_column(String(36), index=True)
    customer_name: Mapped[str | None] = mapped_column(String(160))
    phone: Mapped[str | None] = mapped_column(String(30))
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(80))
    street_address: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    items: Mapped[list] = mapped_column(JSON, default=list)  # frozen CartItem snapshots
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.PENDING, index=True)
    payment_method: Mapped[str] = mapped_column(String(40))
    subtotal: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    tax: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    total: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    special_instructions: Mapped[str | None] = mapped_column(Text)
    feedback: Mapped[dict | None] = mapped_column(JSON)  # {rating, comment, created_at}

# ── Cart slots (one per table) ──────────────────────────────────────────────
class CartSlot(Base, TSMMixin):
    __tablename__ = "cart_slot"
    table_id: Mapped[str] = mapped_column(String(60), primary_key=True)
    items: Mapped[list] = mapped_column(JSON, default=list)

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[str | None] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(40))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    reason: Mapped[str | None] = mapped_column(Text)
    before: Mapped[dict | None] = mapped_column(JSON)
    after: Mapped[dict | None] = mapped_column(JSON)
