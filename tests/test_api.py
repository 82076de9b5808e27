import inspect
import uuid


def seed(client):
    product = client.post("/api/inventory/products", json={"sku": "API-1", "name": "Widget"}).json()
    loc_a = client.post("/api/inventory/locations", json={"name": "A-01"}).json()
    loc_b = client.post("/api/inventory/locations", json={"name": "B-01"}).json()
    for loc, qty in ((loc_a, 5), (loc_b, 8)):
        resp = client.post("/api/inventory/receive", json={
            "product_id": product["id"], "location_id": loc["id"], "quantity": qty, "actor": "dock",
        })
        assert resp.status_code == 200
    return product, loc_a, loc_b


def test_health_and_status(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api/status").json()["status"] == "ok"


def test_order_to_picked_over_http(client):
    product, _, _ = seed(client)

    resp = client.post("/api/orders", params={"actor": "intake"}, json={
        "order_number": "WEB-1",
        "items": [{"product_id": product["id"], "quantity": 10, "unit_price": "3.00"}],
    })
    assert resp.status_code == 201
    order = resp.json()
    assert order["status"] == "PENDING"

    alloc = client.post(f"/api/orders/{order['id']}/allocate", json={"actor": "planner"}).json()
    assert alloc["success"] is True
    assert alloc["order_status"] == "ALLOCATED"
    assert alloc["has_back_orders"] is False
    assert [r["quantity"] for r in alloc["reservations"]] == [8, 2]

    pick_list = client.post("/api/picking/generate", json={"actor": "lead", "assign_to": "bob"}).json()
    assert pick_list["status"] == "ASSIGNED"
    for item in pick_list["items"]:
        resp = client.post(f"/api/picking/items/{item['id']}/pick", json={"action": "PICK", "actor": "bob"})
        assert resp.status_code == 200
    assert resp.json()["list_completed"] is True

    order = client.get(f"/api/orders/{order['id']}").json()
    assert order["status"] == "PICKED"
    history = client.get(f"/api/orders/{order['id']}/history").json()
    assert [h["new_status"] for h in history] == ["PENDING", "ALLOCATED", "PICKING", "PICKED"]

    summary = client.get("/api/inventory/summary", params={"product_id": product["id"]}).json()
    assert sum(row["on_hand"] for row in summary) == 3
    assert client.post("/api/reconciliation/run").json()["ok"] is True


def test_error_mapping(client):
    resp = client.get(f"/api/orders/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NOT_FOUND"

    product, _, _ = seed(client)
    order = client.post("/api/orders", params={"actor": "intake"}, json={
        "items": [{"product_id": product["id"], "quantity": 1}],
    }).json()
    resp = client.post(f"/api/orders/{order['id']}/status", json={"actor": "ops", "new_status": "SHIPPED"})
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "ILLEGAL_TRANSITION"
    assert body["details"]["from"] == "PENDING"

    resp = client.post("/api/inventory/receive", json={
        "product_id": product["id"], "location_id": str(uuid.uuid4()), "quantity": -1, "actor": "dock",
    })
    assert resp.status_code == 422
    assert resp.json()["error"] == "VALIDATION_ERROR"


def test_back_order_flow_over_http(client):
    product, loc_a, _ = seed(client)
    order = client.post("/api/orders", params={"actor": "intake"}, json={
        "items": [{"product_id": product["id"], "quantity": 20}],
    }).json()

    alloc = client.post(f"/api/orders/{order['id']}/allocate", json={"actor": "planner"}).json()
    assert alloc["order_status"] == "PENDING"
    assert len(alloc["back_order_ids"]) == 1

    check = client.post(f"/api/orders/{order['id']}/allocate",
                        json={"actor": "planner", "strategy": "check"}).json()
    assert check["success"] is False
    assert check["insufficient_items"][0]["shortage"] == 7

    receipt = client.post("/api/inventory/receive", json={
        "product_id": product["id"], "location_id": loc_a["id"], "quantity": 7, "actor": "dock",
    }).json()
    assert receipt["eligible_back_orders"] == alloc["back_order_ids"]

    back_order_id = alloc["back_order_ids"][0]
    fulfil = client.post(f"/api/backorders/{back_order_id}/fulfill", json={"actor": "supervisor"}).json()
    assert fulfil["all_allocated"] is True

    back_orders = client.get("/api/backorders", params={"order_id": order["id"]}).json()
    assert back_orders[0]["status"] == "ALLOCATED"
    assert back_orders[0]["quantity_outstanding"] == 7
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "ALLOCATED"


def test_unknown_allocation_strategy_is_a_validation_error(client):
    product, _, _ = seed(client)
    order = client.post("/api/orders", params={"actor": "intake"}, json={
        "items": [{"product_id": product["id"], "quantity": 1}],
    }).json()

    resp = client.post(f"/api/orders/{order['id']}/allocate", json={"actor": "a", "strategy": "bogus"})

    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["details"]["allowed"] == ["backorder", "check"]
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "PENDING"


def test_database_routes_run_in_threadpool():
    from fastapi.routing import APIRoute
    from main import app

    blocking = [
        route.path for route in app.routes
        if isinstance(route, APIRoute) and inspect.iscoroutinefunction(route.endpoint)
        and route.path not in ("/health", "/api/status")
    ]
    assert blocking == []
