from dataclasses import dataclass

from qrdine.services.cart import Cart, CartStorage, DbCartStorage, MemoryCartStorage
from qrdine.services.catalog import MenuCache
from qrdine.services.feed import OrderFeed
from qrdine.services.lifecycle import OrderLifecycle
from qrdine.services.order_store import OrderStore


@dataclass
class AppContext:
    """Long-lived collaborators shared by all requests of one app instance."""
    orders: OrderLifecycle
    menu: MenuCache
    carts: CartStorage

    @classmethod
    def build(cls, session_factory, cart_backend: str = "db") -> "AppContext":
        store = OrderStore(session_factory, OrderFeed())
        carts = MemoryCartStorage() if cart_backend == "memory" else DbCartStorage(session_factory)
        return cls(orders=OrderLifecycle(store), menu=MenuCache(session_factory), carts=carts)

    def cart(self, table_id: str) -> Cart:
        return Cart(table_id, self.carts)
