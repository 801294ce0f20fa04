import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool

from qrdine.db import SessionLocal
from qrdine.deps import user_from_token
from qrdine.services.order_store import OrderStore, StoreUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


def _authorize(token: Optional[str]) -> bool:
    with SessionLocal() as db:
        try:
            user_from_token(token, db)
        except HTTPException:
            return False
    return True


async def _initial(store: OrderStore):
    try:
        return await run_in_threadpool(store.list_orders)
    except StoreUnavailable:
        return None


@router.websocket("/ws/orders")
async def orders_feed(websocket: WebSocket, token: Optional[str] = None):
    """Full order set on connect and after every change (staff only)."""
    if not await run_in_threadpool(_authorize, token):
        await websocket.close(code=4401)
        return

    store = websocket.app.state.ctx.orders.store
    await websocket.accept()
    stream = store.feed.stream(initial=await _initial(store))
    try:
        async for snapshot in stream:
            await websocket.send_json(jsonable_encoder(snapshot))
    except WebSocketDisconnect:
        logger.debug("staff feed closed")
    finally:
        await stream.aclose()


@router.websocket("/ws/orders/{order_id}")
async def order_feed(websocket: WebSocket, order_id: str):
    """One order, re-sent whenever the order set changes; closes once the order is gone."""
    store = websocket.app.state.ctx.orders.store
    await websocket.accept()
    stream = store.feed.stream(initial=await _initial(store))
    try:
        async for snapshot in stream:
            match = next((o for o in snapshot if o.id == order_id), None)
            if match is None:
                await websocket.close(code=4404)
                return
            await websocket.send_json(jsonable_encoder(match))
    except WebSocketDisconnect:
        logger.debug("tracking feed for %s closed", order_id)
    finally:
        await stream.aclose()
