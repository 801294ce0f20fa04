import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional

from qrdine.context import AppContext
from qrdine.db import get_db
from qrdine.deps import get_ctx, require_role, commit_or_503
from qrdine.models.core import MenuCategory, MenuItem
from qrdine.schemas.menu import (
    MenuCategoryIn, MenuCategoryOut, MenuItemIn, MenuItemPatch, MenuItemOut, MenuSection,
)
from qrdine.services.catalog import item_out, group_by_category
from qrdine.services.results import WriteStatus
from qrdine.services.uploads import upload_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/menu", tags=["menu"])

MENU_EDITORS = ("admin", "kitchen")


# ---------- customer menu ----------

@router.get("/customer", response_model=List[MenuSection])
def customer_menu(search: Optional[str] = None, ctx: AppContext = Depends(get_ctx)):
    """Available items grouped by category, in the order categories first appear."""
    return group_by_category(ctx.menu.items(search=search, available_only=True))


# ---------- items ----------

@router.get("/items", response_model=List[MenuItemOut])
def list_items(
    category: Optional[str] = None,
    search: Optional[str] = None,
    available_only: bool = False,
    ctx: AppContext = Depends(get_ctx),
):
    return ctx.menu.items(category=category, search=search, available_only=available_only)


@router.get("/items/{item_id}", response_model=MenuItemOut)
def get_item(item_id: str, ctx: AppContext = Depends(get_ctx)):
    it = ctx.menu.get(item_id)
    if not it:
        raise HTTPException(404, detail="menu item not found")
    return it


@router.post("/items", response_model=MenuItemOut)
def create_item(
    body: MenuItemIn,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*MENU_EDITORS)),
):
    it = MenuItem(**body.model_dump())
    db.add(it)
    commit_or_503(db, "create menu item", refresh=it)
    ctx.menu.invalidate()
    return item_out(it)


@router.patch("/items/{item_id}", response_model=MenuItemOut)
def update_item(
    item_id: str,
    body: MenuItemPatch,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*MENU_EDITORS)),
):
    it = db.get(MenuItem, item_id)
    if not it:
        raise HTTPException(404, detail="menu item not found")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(it, k, v)
    commit_or_503(db, "update menu item", refresh=it)
    ctx.menu.invalidate()
    return item_out(it)


@router.delete("/items/{item_id}")
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*MENU_EDITORS)),
):
    """
    Hard delete. Orders and carts carry their own copy of the item, so nothing
    else needs to change.
    """
    it = db.get(MenuItem, item_id)
    if not it:
        raise HTTPException(status_code=404, detail="menu item not found")
    db.delete(it)
    commit_or_503(db, "delete menu item")
    ctx.menu.invalidate()
    return {"ok": True, "id": item_id}


@router.post("/items/{item_id}/availability", response_model=MenuItemOut)
def toggle_availability(
    item_id: str,
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*MENU_EDITORS)),
):
    status, item = ctx.menu.toggle_availability(item_id)
    if status is WriteStatus.NOT_FOUND:
        raise HTTPException(404, detail="menu item not found")
    if status is not WriteStatus.OK:
        raise HTTPException(503, detail="could not update availability, please try again")
    return item


@router.post("/items/{item_id}/image", response_model=MenuItemOut)
async def upload_item_image(
    item_id: str,
    file: UploadFile = File(...),
    ctx: AppContext = Depends(get_ctx),
    sub: str = Depends(require_role(*MENU_EDITORS)),
):
    if not ctx.menu.get(item_id):
        raise HTTPException(404, detail="menu item not found")
    url = await upload_image(file, "menu-items")
    if not url:
        raise HTTPException(400, detail="image upload failed; previous image kept")
    status = ctx.menu.write_fields(item_id, {"image": url})
    ctx.menu.invalidate()
    if status is not WriteStatus.OK:
        raise HTTPException(503 if status is WriteStatus.FAILED else 404, detail="could not save image")
    return ctx.menu.get(item_id)


# ---------- categories ----------

@router.get("/categories", response_model=List[MenuCategoryOut])
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(MenuCategory).order_by(MenuCategory.display_order, MenuCategory.name).all()
    return [
        MenuCategoryOut(
            id=r.id, name=r.name, description=r.description,
            image=r.image, display_order=r.display_order,
        )
        for r in rows
    ]


@router.post("/categories", response_model=MenuCategoryOut)
def create_category(
    body: MenuCategoryIn,
    db: Session = Depends(get_db),
    sub: str = Depends(require_role("admin")),
):
    cat = MenuCategory(**body.model_dump())
    db.add(cat)
    try:
        db.commit()
        db.refresh(cat)
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="category with this name already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not create category %s", body.name)
        raise HTTPException(503, detail="could not create category, please try again")
    return MenuCategoryOut(id=cat.id, **body.model_dump())


@router.delete("/categories/{cat_id}")
def delete_category(
    cat_id: str,
    db: Session = Depends(get_db),
    sub: str = Depends(require_role("admin")),
):
    cat = db.get(MenuCategory, cat_id)
    if not cat:
        raise HTTPException(status_code=404, detail="category not found")
    db.delete(cat)
    commit_or_503(db, "delete category")
    return {"ok": True, "id": cat_id}
