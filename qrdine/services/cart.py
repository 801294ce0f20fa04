"""Per-table cart.

A ``Cart`` is an ordered list of line items for one table. Every mutation is
written through to its ``CartStorage`` slot before the call returns.
"""
import logging
import threading
import time
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from qrdine.models.core import CartSlot
from qrdine.schemas.menu import MenuItemOut, Size, Extra
from qrdine.schemas.orders import CartItem
from qrdine.services.pricing import order_totals, unit_price, PricingError

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


def generate_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


# ── Storage slots ───────────────────────────────────────────────────────────

class CartStorage:
    def load(self, table_id: str) -> list[CartItem]:
        raise NotImplementedError

    def save(self, table_id: str, items: list[CartItem]) -> None:
        raise NotImplementedError

    def evict(self, table_id: str) -> None:
        raise NotImplementedError


class MemoryCartStorage(CartStorage):
    def __init__(self):
        self._slots: dict[str, list[dict]] = {}
        self._lock = threading.Lock()

    def load(self, table_id):
        with self._lock:
            raw = self._slots.get(table_id, [])
        return [CartItem.model_validate(r) for r in raw]

    def save(self, table_id, items):
        raw = [i.model_dump(mode="json") for i in items]
        with self._lock:
            self._slots[table_id] = raw

    def evict(self, table_id):
        with self._lock:
            self._slots.pop(table_id, None)


class DbCartStorage(CartStorage):
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def load(self, table_id):
        try:
            with self._session_factory() as db:
                slot = db.get(CartSlot, table_id)
                raw = list(slot.items or []) if slot else []
        except SQLAlchemyError as e:
            logger.exception("cart load failed for table %s", table_id)
            raise StorageError("cart storage unavailable") from e
        return [CartItem.model_validate(r) for r in raw]

    def save(self, table_id, items):
        raw = [i.model_dump(mode="json") for i in items]
        try:
            with self._session_factory() as db:
                slot = db.get(CartSlot, table_id)
                if not slot:
                    db.add(CartSlot(table_id=table_id, items=raw))
                else:
                    slot.items = raw
                db.commit()
        except SQLAlchemyError as e:
            logger.exception("cart save failed for table %s", table_id)
            raise StorageError("cart storage unavailable") from e

    def evict(self, table_id):
        try:
            with self._session_factory() as db:
                slot = db.get(CartSlot, table_id)
                if slot:
                    db.delete(slot)
                    db.commit()
        except SQLAlchemyError as e:
            logger.exception("cart evict failed for table %s", table_id)
            raise StorageError("cart storage unavailable") from e


# ── Cart aggregate ──────────────────────────────────────────────────────────

def _identity(menu_item_id: str, size: Optional[Size], extras: list[Extra]) -> tuple:
    return (menu_item_id, size.id if size else None, tuple(sorted(e.id for e in extras)))


class Cart:
    def __init__(self, table_id: str, storage: CartStorage):
        self.table_id = table_id
        self._storage = storage
        self._items: list[CartItem] = storage.load(table_id)

    @property
    def items(self) -> list[CartItem]:
        return [i.model_copy(deep=True) for i in self._items]

    def _persist(self) -> None:
        self._storage.save(self.table_id, self._items)

    def add_item(
        self,
        menu_item: MenuItemOut,
        quantity: int = 1,
        size: Optional[Size] = None,
        extras: Optional[list[Extra]] = None,
        instructions: Optional[str] = None,
    ) -> CartItem:
        """Add ``quantity`` units, merging into a line with the same item, size and extras.

        On merge the first line's instructions win; instructions given now are
        only kept if the existing line had none.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        # one of each extra
        unique: dict[str, Extra] = {}
        for e in extras or []:
            unique.setdefault(e.id, e)
        chosen = list(unique.values())

        if unit_price(menu_item, size, chosen) < 0:
            raise PricingError(f"'{menu_item.name}' prices below zero with the selected size")

        key = _identity(menu_item.id, size, chosen)
        for line in self._items:
            if _identity(line.menu_item.id, line.selected_size, line.selected_extras) == key:
                line.quantity += quantity
                if not line.special_instructions and instructions:
                    line.special_instructions = instructions
                self._persist()
                return line.model_copy(deep=True)

        line = CartItem(
            id=generate_id(),
            menu_item=menu_item.model_copy(deep=True),
            quantity=quantity,
            selected_size=size,
            selected_extras=chosen,
            special_instructions=instructions or None,
        )
        self._items.append(line)
        self._persist()
        return line.model_copy(deep=True)

    def remove_item(self, line_id: str) -> None:
        kept = [i for i in self._items if i.id != line_id]
        if len(kept) != len(self._items):
            self._items = kept
            self._persist()

    def update_quantity(self, line_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(line_id)
            return
        for line in self._items:
            if line.id == line_id:
                line.quantity = quantity
                self._persist()
                return

    def get_totals(self) -> dict:
        return order_totals(self._items)

    def get_item_count(self) -> int:
        return sum(i.quantity for i in self._items)

    def is_empty(self) -> bool:
        return not self._items

    def clear(self) -> None:
        self._items = []
        self._storage.evict(self.table_id)
