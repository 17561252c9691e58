from conftest import line


def kitchen(client, order_id, status):
    return client.patch(f"/api/kitchen/orders/{order_id}/status", json={"status": status})


# =============================================================================
# WAITER
# =============================================================================

def test_waiter_order_is_priced_from_menu(client, staff, waiter_order):
    assert waiter_order["status"] == "PENDING"
    assert waiter_order["order_type"] == "DINE_IN"
    assert waiter_order["table_number"] == 4
    assert waiter_order["total_amount"] == 2950
    assert waiter_order["staff"]["id"] == staff["id"]

    lines = sorted(
        (i["portion"]["name"], i["quantity"], i["unit_price"], i["total_price"], i["special_requests"])
        for i in waiter_order["items"]
    )
    assert lines == [
        ("Large", 1, 1250, 1250, "Extra spicy"),
        ("Regular", 2, 850, 1700, None),
    ]


def test_waiter_order_does_not_consume_stock(client, waiter_order, menu):
    rice = client.get("/api/admin/ingredients").json()[0]
    assert rice["current_stock_quantity"] == 10


def test_waiter_order_validation(client, staff, menu):
    base = {"table_number": 1, "staff_id": staff["id"]}

    assert client.post("/api/waiter/orders", json={**base, "items": []}).status_code == 400
    assert client.post("/api/waiter/orders", json={
        **base, "items": [line(menu, quantity=0)],
    }).status_code == 400
    assert client.post("/api/waiter/orders", json={
        "table_number": 0, "staff_id": staff["id"], "items": [line(menu)],
    }).status_code == 400

    response = client.post("/api/waiter/orders", json={
        **base, "items": [{"food_item_id": menu.food_item["id"], "portion_id": "missing", "quantity": 1}],
    })
    assert response.status_code == 400
    assert "is not offered" in response.json()["error"]

    response = client.post("/api/waiter/orders", json={
        "table_number": 1, "staff_id": "missing", "items": [line(menu)],
    })
    assert response.status_code == 404


def test_deactivated_staff_cannot_order(client, staff, menu):
    client.patch(f"/api/admin/staff/{staff['id']}/toggle-status")
    response = client.post("/api/waiter/orders", json={
        "table_number": 1, "staff_id": staff["id"], "items": [line(menu)],
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Staff account is deactivated"


def test_disabled_food_item_cannot_be_ordered(client, staff, menu):
    client.put(f"/api/admin/food-items/{menu.food_item['id']}", json={"is_active": False})
    response = client.post("/api/waiter/orders", json={
        "table_number": 1, "staff_id": staff["id"], "items": [line(menu)],
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Chicken Fried Rice is currently unavailable"


def test_list_waiter_orders_filters(client, staff, menu, waiter_order):
    second = client.post("/api/waiter/orders", json={
        "table_number": 9, "staff_id": staff["id"], "items": [line(menu)],
    }).json()
    kitchen(client, second["id"], "PREPARING")

    all_orders = client.get("/api/waiter/orders", params={"staff_id": staff["id"]}).json()
    assert [o["id"] for o in all_orders] == [second["id"], waiter_order["id"]]

    pending = client.get("/api/waiter/orders", params={"status": "PENDING"}).json()
    assert [o["id"] for o in pending] == [waiter_order["id"]]

    assert client.get("/api/waiter/orders", params={"staff_id": "someone-else"}).json() == []


# =============================================================================
# KITCHEN
# =============================================================================

def test_kitchen_board_order(client, staff, menu, waiter_order):
    def place(table):
        return client.post("/api/waiter/orders", json={
            "table_number": table, "staff_id": staff["id"], "items": [line(menu)],
        }).json()["id"]

    ready = place(1)
    preparing = place(2)
    newest_pending = place(3)
    kitchen(client, ready, "PREPARING")
    kitchen(client, ready, "READY")
    kitchen(client, preparing, "PREPARING")

    board = client.get("/api/kitchen/orders").json()
    assert [o["id"] for o in board] == [waiter_order["id"], newest_pending, preparing, ready]

    only_ready = client.get("/api/kitchen/orders", params={"status": "READY"}).json()
    assert [o["id"] for o in only_ready] == [ready]


def test_kitchen_board_hides_closed_orders(client, waiter_order):
    client.post(f"/api/orders/{waiter_order['id']}/bill", json={"customer_email": "guest@example.com"})
    assert client.get("/api/kitchen/orders").json() == []

    response = client.get("/api/kitchen/orders", params={"status": "COMPLETED"})
    assert response.status_code == 400


def test_kitchen_progression(client, waiter_order):
    order_id = waiter_order["id"]

    response = kitchen(client, order_id, "PREPARING")
    assert response.status_code == 200
    assert response.json()["status"] == "PREPARING"

    response = kitchen(client, order_id, "READY")
    assert response.status_code == 200
    assert response.json()["status"] == "READY"


def test_kitchen_cannot_skip_or_go_back(client, waiter_order):
    order_id = waiter_order["id"]

    response = kitchen(client, order_id, "READY")
    assert response.status_code == 400
    assert response.json()["error"] == f"Cannot change order #{order_id} from PENDING to READY"

    kitchen(client, order_id, "PREPARING")
    kitchen(client, order_id, "READY")
    assert kitchen(client, order_id, "PREPARING").status_code == 400


def test_kitchen_cannot_complete_or_cancel(client, waiter_order):
    assert kitchen(client, waiter_order["id"], "COMPLETED").status_code == 400
    assert kitchen(client, waiter_order["id"], "CANCELLED").status_code == 400
    assert kitchen(client, waiter_order["id"], "SERVED").status_code == 400


def test_kitchen_unknown_order(client):
    response = kitchen(client, 999, "PREPARING")
    assert response.status_code == 404
    assert response.json()["error"] == "Order #999 not found"


# =============================================================================
# CANCEL / GET
# =============================================================================

def test_cancel_preparing_order(client, waiter_order):
    order_id = waiter_order["id"]
    kitchen(client, order_id, "PREPARING")

    response = client.patch(f"/api/orders/{order_id}/cancel", json={"reason": "Guest left"})
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Order cancelled successfully"
    assert data["order"]["status"] == "CANCELLED"
    assert data["order"]["notes"] == "CANCELLED: Guest left"

    # Terminal
    assert kitchen(client, order_id, "READY").status_code == 400
    assert client.patch(f"/api/orders/{order_id}/cancel").status_code == 400


def test_cancel_without_reason(client, waiter_order):
    kitchen(client, waiter_order["id"], "PREPARING")
    response = client.patch(f"/api/orders/{waiter_order['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["order"]["notes"] is None


def test_cancel_only_while_preparing(client, waiter_order):
    order_id = waiter_order["id"]
    assert client.patch(f"/api/orders/{order_id}/cancel").status_code == 400

    kitchen(client, order_id, "PREPARING")
    kitchen(client, order_id, "READY")
    assert client.patch(f"/api/orders/{order_id}/cancel").status_code == 400


def test_get_order(client, waiter_order):
    response = client.get(f"/api/orders/{waiter_order['id']}")
    assert response.status_code == 200
    assert response.json()["total_amount"] == 2950

    assert client.get("/api/orders/12345").status_code == 404
