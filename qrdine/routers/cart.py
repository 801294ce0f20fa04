from fastapi import APIRouter, Depends, HTTPException

from qrdine.context import AppContext
from qrdine.deps import get_ctx, raise_for_outcome
from qrdine.schemas.orders import CartAddIn, CartQtyIn, CartOut, CheckoutIn, OrderOut
from qrdine.services.cart import Cart, StorageError
from qrdine.services.pricing import PricingError

router = APIRouter(prefix="/customer/{table_id}", tags=["cart"])


def _cart(table_id: str, ctx: AppContext) -> Cart:
    try:
        return ctx.cart(table_id)
    except StorageError as e:
        raise HTTPException(503, detail=str(e))


def _view(cart: Cart) -> CartOut:
    try:
        totals = cart.get_totals()
    except PricingError as e:
        raise HTTPException(422, detail=str(e))
    return CartOut(table_id=cart.table_id, items=cart.items, totals=totals, item_count=cart.get_item_count())


@router.get("/cart", response_model=CartOut)
def view_cart(table_id: str, ctx: AppContext = Depends(get_ctx)):
    return _view(_cart(table_id, ctx))


@router.post("/cart/items", response_model=CartOut)
def add_to_cart(table_id: str, body: CartAddIn, ctx: AppContext = Depends(get_ctx)):
    item = ctx.menu.get(body.menu_item_id)
    if not item:
        raise HTTPException(404, detail="menu item not found")
    if not item.is_available:
        raise HTTPException(409, detail=f"'{item.name}' is sold out")

    size = None
    if body.size_id is not None:
        size = next((s for s in item.sizes or [] if s.id == body.size_id), None)
        if size is None:
            raise HTTPException(400, detail=f"unknown size '{body.size_id}'")
    else:
        size = item.default_size

    extras_by_id = {e.id: e for e in item.extras or []}
    unknown = [x for x in body.extra_ids if x not in extras_by_id]
    if unknown:
        raise HTTPException(400, detail=f"unknown extras: {', '.join(unknown)}")

    cart = _cart(table_id, ctx)
    try:
        cart.add_item(item, body.quantity, size, [extras_by_id[x] for x in body.extra_ids],
                      body.special_instructions)
    except PricingError as e:
        raise HTTPException(422, detail=str(e))
    except StorageError as e:
        raise HTTPException(503, detail=str(e))
    return _view(cart)


@router.patch("/cart/items/{line_id}", response_model=CartOut)
def update_quantity(table_id: str, line_id: str, body: CartQtyIn, ctx: AppContext = Depends(get_ctx)):
    cart = _cart(table_id, ctx)
    try:
        cart.update_quantity(line_id, body.quantity)
    except StorageError as e:
        raise HTTPException(503, detail=str(e))
    return _view(cart)


@router.delete("/cart/items/{line_id}", response_model=CartOut)
def remove_from_cart(table_id: str, line_id: str, ctx: AppContext = Depends(get_ctx)):
    cart = _cart(table_id, ctx)
    try:
        cart.remove_item(line_id)
    except StorageError as e:
        raise HTTPException(503, detail=str(e))
    return _view(cart)


@router.delete("/cart", response_model=CartOut)
def clear_cart(table_id: str, ctx: AppContext = Depends(get_ctx)):
    cart = _cart(table_id, ctx)
    try:
        cart.clear()
    except StorageError as e:
        raise HTTPException(503, detail=str(e))
    return _view(cart)


@router.post("/checkout", response_model=OrderOut)
def checkout(table_id: str, body: CheckoutIn, ctx: AppContext = Depends(get_ctx)):
    """Place the table's cart as an order. The cart survives any failure so the customer can retry."""
    cart = _cart(table_id, ctx)
    payload = body.model_dump()
    result = ctx.orders.submit(cart, payload.pop("payment_method"), table_id=table_id, **payload)
    raise_for_outcome(result)
    return result.value
