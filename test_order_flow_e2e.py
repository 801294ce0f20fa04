# test_order_flow_e2e.py
import json

import pytest


def jprint(label, r):
    try:
        body = r.json()
    except ValueError:
        body = r.text
    print(f"\n=== {label} [{r.status_code}] ===")
    print(json.dumps(body, indent=2, default=str) if not isinstance(body, str) else body)


@pytest.fixture(scope="module")
def menu_item(client, staff_headers, rng_suffix):
    admin = staff_headers["admin"]
    r = client.post("/menu/categories", json={"name": f"Burgers {rng_suffix}"}, headers=admin)
    jprint("POST /menu/categories", r)
    assert r.status_code == 200
    cat = r.json()

    r = client.post("/menu/categories", json={"name": f"Burgers {rng_suffix}"}, headers=admin)
    assert r.status_code == 409

    r = client.post("/menu/items", headers=admin, json={
        "name": f"Zinger {rng_suffix}",
        "description": "crispy fillet",
        "price": 550,
        "category_id": cat["id"],
        "category_name": cat["name"],
        "sizes": [
            {"id": "regular", "name": "Regular", "price_modifier": 0},
            {"id": "large", "name": "Large", "price_modifier": 150},
        ],
        "extras": [
            {"id": "cheese", "name": "Extra Cheese", "price": 80},
            {"id": "jalapeno", "name": "Jalapenos", "price": 50},
        ],
    })
    jprint("POST /menu/items", r)
    assert r.status_code == 200
    return r.json()


@pytest.fixture(scope="module")
def table(client, staff_headers, rng_suffix):
    r = client.post("/dining/tables", json={"name": f"T-{rng_suffix}", "seats": 4}, headers=staff_headers["admin"])
    jprint("POST /dining/tables", r)
    assert r.status_code == 200
    return r.json()


def _fill_cart(client, table_id, item_id):
    r = client.post(f"/customer/{table_id}/cart/items", json={
        "menu_item_id": item_id, "quantity": 1, "extra_ids": ["cheese", "jalapeno"],
        "special_instructions": "no onions",
    })
    assert r.status_code == 200, r.text
    r = client.post(f"/customer/{table_id}/cart/items", json={
        "menu_item_id": item_id, "quantity": 1, "extra_ids": ["jalapeno", "cheese"],
    })
    assert r.status_code == 200, r.text
    return r.json()


def _checkout(client, table_id, item_id):
    _fill_cart(client, table_id, item_id)
    r = client.post(f"/customer/{table_id}/checkout", json={"customer_name": "Bilal"})
    assert r.status_code == 200, r.text
    return r.json()


def test_menu_and_table_are_public(client, menu_item, table):
    r = client.get("/menu/customer")
    assert r.status_code == 200
    sections = {s["category"]: s["items"] for s in r.json()}
    assert menu_item["id"] in {i["id"] for i in sections[menu_item["category_name"]]}

    r = client.get(f"/dining/tables/{table['id']}")
    assert r.status_code == 200 and r.json()["name"] == table["name"]


def test_cart_merges_and_prices(client, menu_item, table):
    cart = _fill_cart(client, table["id"], menu_item["id"])
    jprint("cart", client.get(f"/customer/{table['id']}/cart"))
    assert len(cart["items"]) == 1
    line = cart["items"][0]
    assert line["quantity"] == 2
    assert line["selected_size"]["id"] == "regular"
    assert line["special_instructions"] == "no onions"
    assert cart["totals"] == {"subtotal": 1360, "tax": 218, "total": 1578}
    assert cart["item_count"] == 2

    r = client.patch(f"/customer/{table['id']}/cart/items/{line['id']}", json={"quantity": 0})
    assert r.status_code == 200
    assert r.json()["items"] == []


def test_cart_rejects_bad_choices(client, menu_item, table):
    base = f"/customer/{table['id']}/cart/items"
    assert client.post(base, json={"menu_item_id": "nope"}).status_code == 404
    assert client.post(base, json={"menu_item_id": menu_item["id"], "size_id": "xxl"}).status_code == 400
    assert client.post(base, json={"menu_item_id": menu_item["id"], "extra_ids": ["gold"]}).status_code == 400
    assert client.post(base, json={"menu_item_id": menu_item["id"], "quantity": 0}).status_code == 422


def test_empty_checkout_is_refused(client, rng_suffix):
    r = client.post(f"/customer/empty-{rng_suffix}/checkout", json={})
    assert r.status_code == 400


def test_sold_out_item_cannot_be_added(client, staff_headers, menu_item, rng_suffix):
    kitchen = staff_headers["kitchen"]
    r = client.post(f"/menu/items/{menu_item['id']}/availability", headers=kitchen)
    assert r.status_code == 200 and r.json()["is_available"] is False
    try:
        r = client.post(f"/customer/sold-{rng_suffix}/cart/items", json={"menu_item_id": menu_item["id"]})
        assert r.status_code == 409
        assert all(i["id"] != menu_item["id"] for s in client.get("/menu/customer").json() for i in s["items"])
    finally:
        r = client.post(f"/menu/items/{menu_item['id']}/availability", headers=kitchen)
        assert r.json()["is_available"] is True


def test_full_order_flow(client, staff_headers, menu_item, table):
    kitchen, admin = staff_headers["kitchen"], staff_headers["admin"]
    order = _checkout(client, table["id"], menu_item["id"])
    jprint("POST checkout", client.get(f"/orders/{order['id']}"))

    assert order["status"] == "pending"
    assert order["table_id"] == table["id"]
    assert order["customer_name"] == "Bilal"
    assert order["payment_method"] == "Cash on Delivery"
    assert (order["subtotal"], order["tax"], order["total"]) == (1360, 218, 1578)
    assert client.get(f"/customer/{table['id']}/cart").json()["items"] == []

    # menu edits after checkout do not reach the order
    r = client.patch(f"/menu/items/{menu_item['id']}", json={"price": 9999}, headers=admin)
    assert r.status_code == 200
    try:
        assert client.get(f"/orders/{order['id']}").json()["items"][0]["menu_item"]["price"] == 550
    finally:
        client.patch(f"/menu/items/{menu_item['id']}", json={"price": 550}, headers=admin)

    board = {c["status"]: c for c in client.get("/orders/board/kitchen", headers=kitchen).json()}
    card = next(c for c in board["pending"]["cards"] if c["order"]["id"] == order["id"])
    assert card["action_label"] == "Start Cooking →"

    r = client.post(f"/orders/{order['id']}/advance", params={"from_status": "pending"}, headers=kitchen)
    assert r.status_code == 200 and r.json()["status"] == "preparing"

    r = client.post(f"/orders/{order['id']}/advance", params={"from_status": "pending"}, headers=kitchen)
    assert r.status_code == 409

    r = client.post(f"/orders/{order['id']}/advance", headers=kitchen)
    assert r.json()["status"] == "ready"

    tracking = client.get(f"/orders/{order['id']}/tracking").json()
    assert [s["label"] for s in tracking["steps"] if s["current"]] == ["Ready"]
    assert tracking["poll_interval_s"] == 3.0

    r = client.post(f"/orders/{order['id']}/advance", headers=staff_headers["staff"])
    assert r.json()["status"] == "served"
    r = client.post(f"/orders/{order['id']}/advance", headers=kitchen)
    assert r.status_code == 409

    r = client.post(f"/orders/{order['id']}/feedback", json={"rating": 5, "comment": "perfect"})
    assert r.status_code == 200 and r.json()["feedback"]["rating"] == 5
    assert client.post(f"/orders/{order['id']}/feedback", json={"rating": 6}).status_code == 422

    dash = client.get("/reports/dashboard", headers=admin).json()
    jprint("GET /reports/dashboard", client.get("/reports/dashboard", headers=admin))
    assert dash["today_orders"] >= 1
    assert any(o["id"] == order["id"] for o in dash["reviews"])

    analytics = client.get("/reports/analytics", params={"window": "7d"}, headers=admin).json()
    assert analytics["order_count"] >= 1
    assert any(t["table_id"] == table["id"] for t in analytics["table_performance"])
    assert len(analytics["peak_hours"]) == 24

    sales = client.get("/reports/sales", params={"period": "today"}, headers=admin).json()
    assert any(t["menu_item_id"] == menu_item["id"] for t in sales["top_items"])


def test_admin_cancel_override_and_delete(client, staff_headers, menu_item, table):
    admin, kitchen = staff_headers["admin"], staff_headers["kitchen"]
    order = _checkout(client, table["id"], menu_item["id"])

    assert client.post(f"/orders/{order['id']}/cancel", headers=kitchen).status_code == 403
    r = client.post(f"/orders/{order['id']}/cancel", params={"reason": "walked out"}, headers=admin)
    assert r.status_code == 200 and r.json()["status"] == "cancelled"
    assert client.post(f"/orders/{order['id']}/cancel", headers=admin).status_code == 409

    board = client.get("/orders/board/admin", headers=admin).json()
    assert all(c["order"]["id"] != order["id"] for col in board for c in col["cards"])

    r = client.post(f"/orders/{order['id']}/status", json={"status": "preparing", "reason": "came back"},
                    headers=admin)
    assert r.status_code == 200 and r.json()["status"] == "preparing"

    r = client.get("/orders/", params={"status": "preparing"}, headers=kitchen)
    assert order["id"] in {o["id"] for o in r.json()}

    assert client.delete(f"/orders/{order['id']}", headers=admin).status_code == 200
    assert client.get(f"/orders/{order['id']}").status_code == 404
    assert client.delete(f"/orders/{order['id']}", headers=admin).status_code == 404


def test_order_websocket_follows_status(client, staff_headers, menu_item, table):
    order = _checkout(client, table["id"], menu_item["id"])

    with client.websocket_connect(f"/ws/orders/{order['id']}") as ws:
        first = ws.receive_json()
        assert first["id"] == order["id"] and first["status"] == "pending"

        client.post(f"/orders/{order['id']}/advance", headers=staff_headers["kitchen"])
        update = ws.receive_json()
        assert update["status"] == "preparing"
        assert update["total"] == order["total"]


def test_staff_websocket_requires_token(client, staff_headers):
    from starlette.websockets import WebSocketDisconnect

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/orders") as ws:
            ws.receive_json()

    token = staff_headers["kitchen"]["Authorization"].split()[1]
    with client.websocket_connect(f"/ws/orders?token={token}") as ws:
        snapshot = ws.receive_json()
        assert isinstance(snapshot, list)


def test_deleting_a_table_keeps_its_orders(client, staff_headers, menu_item, rng_suffix):
    admin = staff_headers["admin"]
    t = client.post("/dining/tables", json={"name": f"Patio-{rng_suffix}"}, headers=admin).json()
    order = _checkout(client, t["id"], menu_item["id"])

    assert client.delete(f"/dining/tables/{t['id']}", headers=admin).status_code == 200
    assert client.get(f"/dining/tables/{t['id']}").status_code == 404
    kept = client.get(f"/orders/{order['id']}").json()
    assert kept["table_id"] == t["id"] and kept["status"] == "pending"


def test_menu_image_upload(client, staff_headers, menu_item):
    kitchen = staff_headers["kitchen"]
    r = client.post(f"/menu/items/{menu_item['id']}/image", headers=kitchen,
                    files={"file": ("zinger.png", b"\x89PNG\r\n\x1a\nfake", "image/png")})
    jprint("POST image", r)
    assert r.status_code == 200
    url = r.json()["image"]
    assert url.startswith("/media/menu-items/") and url.endswith("zinger.png")
    assert client.get(url).status_code == 200

    r = client.post(f"/menu/items/{menu_item['id']}/image", headers=kitchen,
                    files={"file": ("notes.txt", b"hello", "text/plain")})
    assert r.status_code == 400
    assert client.get(f"/menu/items/{menu_item['id']}").json()["image"] == url


def test_patch_rejects_null_for_required_fields(client, staff_headers, menu_item, table):
    admin = staff_headers["admin"]
    for field in ("name", "price", "category_id", "category_name", "is_available"):
        r = client.patch(f"/menu/items/{menu_item['id']}", json={field: None}, headers=admin)
        assert r.status_code == 422, f"{field}: {r.text}"
    assert client.get(f"/menu/items/{menu_item['id']}").json()["category_name"] == menu_item["category_name"]

    # extras may still be cleared
    r = client.patch(f"/menu/items/{menu_item['id']}", json={"extras": None}, headers=admin)
    assert r.status_code == 200 and r.json()["extras"] is None
    r = client.patch(f"/menu/items/{menu_item['id']}", json={"extras": menu_item["extras"]}, headers=admin)
    assert r.status_code == 200

    for field in ("name", "seats", "is_occupied"):
        r = client.patch(f"/dining/tables/{table['id']}", json={field: None}, headers=admin)
        assert r.status_code == 422, f"{field}: {r.text}"
    r = client.patch(f"/dining/tables/{table['id']}", json={"current_order_id": None}, headers=admin)
    assert r.status_code == 200


@pytest.fixture
def failing_commits(client):
    from sqlalchemy.exc import OperationalError
    from qrdine.db import SessionLocal, get_db

    def broken_db():
        db = SessionLocal()

        def fail():
            raise OperationalError("COMMIT", {}, Exception("database is down"))

        db.commit = fail
        try:
            yield db
        finally:
            db.close()

    client.app.dependency_overrides[get_db] = broken_db
    yield
    client.app.dependency_overrides.pop(get_db, None)


def test_catalog_and_table_writes_report_store_outage(client, staff_headers, menu_item, table, rng_suffix,
                                                      failing_commits):
    admin = staff_headers["admin"]
    item = {k: menu_item[k] for k in ("name", "price", "category_id", "category_name")}
    writes = [
        client.post("/menu/items", json=item, headers=admin),
        client.patch(f"/menu/items/{menu_item['id']}", json={"price": 1}, headers=admin),
        client.delete(f"/menu/items/{menu_item['id']}", headers=admin),
        client.post("/menu/categories", json={"name": f"Down {rng_suffix}"}, headers=admin),
        client.post("/dining/tables", json={"name": f"Down-{rng_suffix}"}, headers=admin),
        client.patch(f"/dining/tables/{table['id']}", json={"seats": 8}, headers=admin),
        client.delete(f"/dining/tables/{table['id']}", headers=admin),
    ]
    for r in writes:
        jprint(f"{r.request.method} {r.request.url.path}", r)
        assert r.status_code == 503

    client.app.dependency_overrides.clear()
    assert client.get(f"/menu/items/{menu_item['id']}").json()["price"] == 550
    assert client.get(f"/dining/tables/{table['id']}").json()["seats"] == 4


def test_websocket_db_reads_run_off_the_event_loop(client, staff_headers, monkeypatch):
    import asyncio
    from qrdine.routers import live

    seen = []

    def on_loop():
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    store = client.app.state.ctx.orders.store
    real_authorize, real_list = live._authorize, store.list_orders

    def authorize(token):
        seen.append(("authorize", on_loop()))
        return real_authorize(token)

    def list_orders(status=None):
        seen.append(("list_orders", on_loop()))
        return real_list(status)

    monkeypatch.setattr(live, "_authorize", authorize)
    monkeypatch.setattr(store, "list_orders", list_orders)

    token = staff_headers["kitchen"]["Authorization"].split()[1]
    with client.websocket_connect(f"/ws/orders?token={token}") as ws:
        assert isinstance(ws.receive_json(), list)

    assert ("authorize", False) in seen
    assert ("list_orders", False) in seen
    assert not any(on for _, on in seen)
