"""Menu reads, writes and the in-process menu cache.

Availability is the field that changes most often (kitchen marks items sold out
mid-service), so the cache flips it locally first and rolls back if the write
does not land.
"""
import logging
import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from qrdine.models.core import MenuItem
from qrdine.schemas.menu import MenuItemOut, MenuSection
from qrdine.services.order_store import StoreUnavailable
from qrdine.services.results import WriteStatus

logger = logging.getLogger(__name__)


def item_out(m: MenuItem) -> MenuItemOut:
    return MenuItemOut(
        id=m.id,
        name=m.name,
        description=m.description or "",
        price=float(m.price or 0),
        image=m.image or "",
        category_id=m.category_id,
        category_name=m.category_name,
        is_available=bool(m.is_available),
        is_popular=bool(m.is_popular),
        sizes=m.sizes or None,
        extras=m.extras or None,
    )


def group_by_category(items: list[MenuItemOut]) -> list[MenuSection]:
    sections: dict[str, list[MenuItemOut]] = {}
    for it in items:
        sections.setdefault(it.category_name, []).append(it)
    return [MenuSection(category=c, items=rows) for c, rows in sections.items()]


class MenuCache:
    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._items: Optional[dict[str, MenuItemOut]] = None
        self._lock = threading.RLock()

    def _load(self) -> dict[str, MenuItemOut]:
        try:
            with self._session_factory() as db:
                rows = db.query(MenuItem).order_by(MenuItem.category_name.asc(), MenuItem.name.asc()).all()
                return {m.id: item_out(m) for m in rows}
        except SQLAlchemyError as e:
            logger.exception("loading menu failed")
            raise StoreUnavailable("menu store unavailable") from e

    def invalidate(self) -> None:
        with self._lock:
            self._items = None

    def _ensure(self) -> dict[str, MenuItemOut]:
        with self._lock:
            if self._items is None:
                self._items = self._load()
            return self._items

    def items(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MenuItemOut]:
        with self._lock:
            rows = list(self._ensure().values())
        if category:
            rows = [r for r in rows if r.category_name == category]
        if search:
            needle = search.lower()
            rows = [r for r in rows if needle in r.name.lower() or needle in r.description.lower()]
        if available_only:
            rows = [r for r in rows if r.is_available]
        return [r.model_copy(deep=True) for r in rows]

    def get(self, item_id: str) -> Optional[MenuItemOut]:
        with self._lock:
            it = self._ensure().get(item_id)
            return it.model_copy(deep=True) if it else None

    def write_fields(self, item_id: str, fields: dict) -> WriteStatus:
        try:
            with self._session_factory() as db:
                m = db.get(MenuItem, item_id)
                if not m:
                    return WriteStatus.NOT_FOUND
                for k, v in fields.items():
                    setattr(m, k, v)
                db.commit()
        except SQLAlchemyError:
            logger.exception("menu item %s write failed", item_id)
            return WriteStatus.FAILED
        return WriteStatus.OK

    def toggle_availability(self, item_id: str) -> tuple[WriteStatus, Optional[MenuItemOut]]:
        with self._lock:
            cached = self._ensure().get(item_id)
            if cached is None:
                return WriteStatus.NOT_FOUND, None

            previous = cached.is_available
            cached.is_available = not previous  # local first

            status = self.write_fields(item_id, {"is_available": cached.is_available})
            if status is WriteStatus.NOT_FOUND:
                self._items.pop(item_id, None)
                return status, None
            if status is not WriteStatus.OK:
                cached.is_available = previous  # roll back
                logger.warning("availability toggle for %s rolled back", item_id)
            return status, cached.model_copy(deep=True)
