from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

from qrdine.schemas.menu import MenuItemOut, Size, Extra

OrderStatusLiteral = Literal["pending", "accepted", "preparing", "ready", "served", "cancelled"]
PaymentMethodLiteral = Literal[
    "EasyPaisa", "Easypaisa", "JazzCash", "Bank Transfer", "BankTransfer",
    "Cash on Delivery", "COD", "Digital",
]


class Totals(BaseModel):
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0


class CartItem(BaseModel):
    id: str
    menu_item: MenuItemOut  # snapshot taken when the line was added
    quantity: int = Field(ge=1)
    selected_size: Optional[Size] = None
    selected_extras: list[Extra] = []
    special_instructions: Optional[str] = None


class CartAddIn(BaseModel):
    menu_item_id: str
    quantity: int = Field(1, ge=1)
    size_id: Optional[str] = None
    extra_ids: list[str] = []
    special_instructions: Optional[str] = None


class CartQtyIn(BaseModel):
    quantity: int


class CartOut(BaseModel):
    table_id: str
    items: list[CartItem]
    totals: Totals
    item_count: int


class CheckoutIn(BaseModel):
    payment_method: PaymentMethodLiteral = "Cash on Delivery"
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    street_address: Optional[str] = None
    special_instructions: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Feedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: datetime


class FeedbackIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""


class OrderOut(BaseModel):
    id: str
    table_id: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    street_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    items: list[CartItem]
    status: OrderStatusLiteral
    payment_method: str
    created_at: datetime
    updated_at: datetime
    subtotal: float
    tax: float
    total: float
    special_instructions: Optional[str] = None
    feedback: Optional[Feedback] = None


class StatusIn(BaseModel):
    status: OrderStatusLiteral
    reason: Optional[str] = None


class BoardCard(BaseModel):
    order: OrderOut
    next_status: Optional[OrderStatusLiteral] = None
    action_label: Optional[str] = None


class BoardColumn(BaseModel):
    status: OrderStatusLiteral
    label: str
    count: int
    cards: list[BoardCard]


class TrackingStep(BaseModel):
    status: OrderStatusLiteral
    label: str
    done: bool
    current: bool


class TrackingOut(BaseModel):
    order: OrderOut
    steps: list[TrackingStep]
    cancelled: bool
    poll_interval_s: float
