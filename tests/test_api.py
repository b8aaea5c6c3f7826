"""HTTP tests against the FastAPI app with the in-memory store."""
from pymongo.errors import ServerSelectionTimeoutError

from schemas import OrderStatus

ORDER = {
    "product_id": "tee",
    "quantity": 25,
    "size": "L",
    "color": "Black",
    "print_type": "DTF",
    "placement": "Back",
    "customer_name": "John Smith",
    "customer_phone": "+1 555-0101",
    "notes": "Please use matte finish",
}


def test_root(client):
    assert client.get("/").json() == {"message": "Print On Demand Backend Running"}


def test_products_lists_active_only(client, store, tee):
    store.add_product(id="old", name="Retired Mug", base_price=5, active=False)

    res = client.get("/products")

    assert res.status_code == 200
    assert [p["id"] for p in res.json()] == ["tee"]
    assert client.get("/products/old").json()["active"] is False
    assert client.get("/products/missing").status_code == 404


def test_vendors(client):
    assert [v["id"] for v in client.get("/vendors").json()] == ["V1", "V2"]


def test_quote(client, tee):
    res = client.post("/quote", json={"product_id": "tee", "quantity": 20, "turnaround": "24 Hours"})

    assert res.status_code == 200
    body = res.json()
    assert body["unit_price"] == 11.25
    assert body["subtotal"] == 225.0
    assert body["discount_percent"] == 10
    assert body["total"] == 202.5
    assert body["policy"] == "v2"


def test_place_order(client, store, tee):
    res = client.post("/orders", json=ORDER)

    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "new"
    assert body["vendor_id"] == "V1"
    assert body["total_price"] == 202.5
    assert body["items"][0]["placement"] == "Back"
    assert [e["status"] for e in body["timeline"]] == ["new"]
    assert body["id"] in store.orders


def test_place_order_missing_choice_is_actionable(client, tee):
    res = client.post("/orders", json={**ORDER, "size": None})

    assert res.status_code == 422
    assert res.json() == {"detail": "Please select: size"}


def test_place_order_bad_email(client, tee):
    assert client.post("/orders", json={**ORDER, "customer_email": "not-an-email"}).status_code == 422


def test_store_failure_is_generic(client, store, tee):
    async def down(product_id):
        raise ServerSelectionTimeoutError("mongo-0:27017 connection refused")

    store.get_product = down
    res = client.post("/quote", json={"product_id": "tee"})

    assert res.status_code == 503
    assert res.json() == {"detail": "Something went wrong, please try again"}


def test_vendor_orders_requires_session(client):
    assert client.get("/vendor/orders").status_code == 401


def test_vendor_orders(client, store):
    store.add_order("V1")
    store.add_order("V1", OrderStatus.COMPLETED)
    store.add_order("V2")

    res = client.get("/vendor/orders", headers={"X-Vendor-Id": "V1"})

    assert res.status_code == 200
    body = res.json()
    assert len(body["orders"]) == 2
    assert body["counts"]["new"] == 1
    assert body["counts"]["completed"] == 1
    assert body["new_count"] == 1
    actions = sorted(str(o["next_action"]) for o in body["orders"])
    assert actions == ["Accept Order", "None"]


def test_advance_messages(client, store):
    order = store.add_order("V1", OrderStatus.ACCEPTED)
    url = f"/vendor/orders/{order.id}/advance"
    headers = {"X-Vendor-Id": "V1"}

    res = client.post(url, headers=headers)
    assert res.status_code == 200
    assert res.json()["message"] == "Order marked as printing"
    assert res.json()["order"]["next_action"] == "Mark as Ready"

    res = client.post(url, headers=headers)
    assert res.json()["message"] == "Order Ready! Customer has been notified"
    assert res.json()["order"]["status"] == "ready"


def test_advance_other_vendor_forbidden(client, store):
    order = store.add_order("V1")

    res = client.post(f"/vendor/orders/{order.id}/advance", headers={"X-Vendor-Id": "V2"})

    assert res.status_code == 403
    assert store.orders[order.id].status is OrderStatus.NEW


def test_advance_completed_conflict(client, store):
    order = store.add_order("V1", OrderStatus.COMPLETED)

    res = client.post(f"/vendor/orders/{order.id}/advance", headers={"X-Vendor-Id": "V1"})

    assert res.status_code == 409
    assert "no further action" in res.json()["detail"]


def test_advance_unknown_order(client):
    assert client.post("/vendor/orders/nope/advance", headers={"X-Vendor-Id": "V1"}).status_code == 404


def test_upload_and_download_design(client):
    res = client.post(
        "/uploads",
        files={"file": ("logo.png", b"\x89PNG fake", "image/png")},
        data={"owner_id": "user-1"},
    )

    assert res.status_code == 201
    url = res.json()["url"]
    assert url.startswith("/files/")

    got = client.get(url)
    assert got.status_code == 200
    assert got.content == b"\x89PNG fake"
    assert got.headers["content-type"] == "image/png"


def test_upload_empty_file(client):
    res = client.post("/uploads", files={"file": ("empty.png", b"", "image/png")})
    assert res.status_code == 400


def test_download_missing_file(client):
    assert client.get("/files/unknown").status_code == 404
