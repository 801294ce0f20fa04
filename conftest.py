# conftest.py
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="qrdine-test-")
os.environ["DB_URL"] = f"sqlite:///{_TMP}/qrdine.db"
os.environ["MEDIA_ROOT"] = os.path.join(_TMP, "media")
os.environ["APP_ENV"] = "dev"
os.environ["APP_SECRET"] = "test-secret"
os.environ["CART_BACKEND"] = "db"
os.environ["TZ"] = "UTC"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from qrdine.db import Base
from qrdine import models  # noqa: F401
from qrdine.schemas.menu import MenuItemOut, Size, Extra


@pytest.fixture(scope="session")
def client():
    from qrdine.main import app
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="session")
def staff_headers(client):
    r = client.post("/admin/dev-bootstrap")
    assert r.status_code == 200, f"/admin/dev-bootstrap failed: {r.text}"
    boot = r.json()

    headers = {}
    for role, creds in boot.items():
        r = client.post("/auth/login", params={"email": creds["email"], "password": creds["password"]})
        assert r.status_code == 200, f"/auth/login ({role}) failed: {r.text}"
        headers[role] = {"Authorization": f"Bearer {r.json()['access_token']}"}
    return headers

@pytest.fixture(scope="session")
def rng_suffix():
    import random, string
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))


@pytest.fixture
def sessions():
    """A private in-memory database per test."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


class _BrokenSession:
    def __enter__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    def __exit__(self, *exc):
        return False

@pytest.fixture
def broken_sessions():
    return lambda: _BrokenSession()


@pytest.fixture
def make_item():
    def _make(
        id="burger", name="Zinger Burger", price=550, category="Burgers",
        sizes=None, extras=None, available=True,
    ) -> MenuItemOut:
        return MenuItemOut(
            id=id, name=name, description=f"{name} from the grill", price=price,
            image="", category_id=f"cat-{category.lower()}", category_name=category,
            is_available=available, is_popular=False,
            sizes=[Size(**s) for s in sizes] if sizes else None,
            extras=[Extra(**e) for e in extras] if extras else None,
        )
    return _make


@pytest.fixture
def burger(make_item):
    return make_item(
        sizes=[
            {"id": "regular", "name": "Regular", "price_modifier": 0},
            {"id": "large", "name": "Large", "price_modifier": 150},
        ],
        extras=[
            {"id": "cheese", "name": "Extra Cheese", "price": 80},
            {"id": "jalapeno", "name": "Jalapenos", "price": 50},
        ],
    )
