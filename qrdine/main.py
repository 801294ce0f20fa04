# qrdine/main.py
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from qrdine.middleware import RequestIdMiddleware
from qrdine.context import AppContext
from qrdine.db import Base, engine, SessionLocal
from qrdine.config import settings
from qrdine import models  # noqa: F401  (registers tables)

from qrdine.routers import auth, admin, menu, dining, cart, orders, live, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="QR Dine API", version="0.1.0")
app.state.ctx = AppContext.build(SessionLocal, settings.CART_BACKEND)

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(menu.router)
app.include_router(dining.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(live.router)
app.include_router(reports.router)

os.makedirs(settings.MEDIA_ROOT, exist_ok=True)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_ROOT), name="media")

@app.get("/healthz")
def healthz():
    return {"ok": True}
