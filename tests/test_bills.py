import re

from wokabulary.services.excel_manager import ExcelManager
from wokabulary.services.notifications.base import NotificationResult

BILL_NUMBER = re.compile(r"^BILL-\d{8}-\d{4}$")


def send(client, order_id, **payload):
    payload.setdefault("customer_email", "guest@example.com")
    return client.post(f"/api/orders/{order_id}/bill", json=payload)


def test_send_bill_completes_order(client, notifications, waiter_order):
    order_id = waiter_order["id"]

    response = send(client, order_id, customer_name="Nimal Perera", customer_phone="+94771234567")
    assert response.status_code == 200
    assert response.json() == {
        "message": "Bill sent successfully",
        "bill_url": f"http://pos.test/bill/{order_id}",
        "email_sent": True,
        "sms_sent": True,
    }

    order = client.get(f"/api/orders/{order_id}").json()
    assert order["status"] == "COMPLETED"
    assert order["customer_email"] == "guest@example.com"
    assert order["customer_name"] == "Nimal Perera"
    assert order["customer_phone"] == "+94771234567"
    assert BILL_NUMBER.match(order["bill_number"])

    email, sms = notifications.sent
    assert email["channel"] == "email"
    assert email["to"] == "guest@example.com"
    assert f"order #{order_id}" in email["subject"]
    assert "Dear Nimal Perera" in email["body"]
    assert "Chicken Fried Rice" in email["body"]
    assert "Extra spicy" in email["body"]
    assert f"http://pos.test/bill/{order_id}" in email["body"]

    assert sms["channel"] == "sms"
    assert sms["to"] == "+94771234567"
    assert "2950.00" in sms["body"]


def test_send_bill_without_phone_skips_sms(client, notifications, waiter_order):
    response = send(client, waiter_order["id"])
    assert response.status_code == 200
    assert response.json()["sms_sent"] is False
    assert [m["channel"] for m in notifications.sent] == ["email"]


def test_send_bill_from_any_open_status(client, waiter_order):
    order_id = waiter_order["id"]
    client.patch(f"/api/kitchen/orders/{order_id}/status", json={"status": "PREPARING"})
    client.patch(f"/api/kitchen/orders/{order_id}/status", json={"status": "READY"})

    assert send(client, order_id).status_code == 200
    assert client.get(f"/api/orders/{order_id}").json()["status"] == "COMPLETED"


def test_send_bill_requires_email(client, waiter_order):
    response = client.post(f"/api/orders/{waiter_order['id']}/bill", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Customer email is required"

    response = send(client, waiter_order["id"], customer_email="not-an-email")
    assert response.status_code == 400


def test_send_bill_for_cancelled_order(client, waiter_order):
    order_id = waiter_order["id"]
    client.patch(f"/api/kitchen/orders/{order_id}/status", json={"status": "PREPARING"})
    client.patch(f"/api/orders/{order_id}/cancel")

    response = send(client, order_id)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot send a bill for a cancelled order"


def test_send_bill_unknown_order(client):
    assert send(client, 404).status_code == 404


def test_email_failure_leaves_order_untouched(client, notifications, waiter_order):
    notifications.failure_rate = 1.0
    order_id = waiter_order["id"]

    response = send(client, order_id)
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Failed to send bill",
        "detail": "Simulated email failure",
    }

    order = client.get(f"/api/orders/{order_id}").json()
    assert order["status"] == "PENDING"
    assert order["customer_email"] is None
    assert order["bill_number"] is None
    assert ExcelManager.get_all_sales() == []


def test_sms_failure_does_not_fail_bill(client, notifications, waiter_order, monkeypatch):
    async def carrier_down(to_phone, message):
        return NotificationResult(success=False, error_message="Carrier down", provider="mock")

    monkeypatch.setattr(notifications, "send_sms", carrier_down)

    response = send(client, waiter_order["id"], customer_phone="+94771234567")
    assert response.status_code == 200
    assert response.json()["email_sent"] is True
    assert response.json()["sms_sent"] is False
    assert client.get(f"/api/orders/{waiter_order['id']}").json()["status"] == "COMPLETED"


def test_rebilling_completed_order(client, notifications, waiter_order):
    order_id = waiter_order["id"]
    send(client, order_id)
    bill_number = client.get(f"/api/orders/{order_id}").json()["bill_number"]

    response = send(client, order_id, customer_email="other@example.com")
    assert response.status_code == 200

    order = client.get(f"/api/orders/{order_id}").json()
    assert order["status"] == "COMPLETED"
    assert order["bill_number"] == bill_number
    assert order["customer_email"] == "other@example.com"
    assert len(notifications.sent) == 2
    assert len(ExcelManager.get_all_sales()) == 1


def test_completed_bill_is_exported_to_ledger(client, waiter_order):
    send(client, waiter_order["id"], customer_name="Nimal Perera")

    (row,) = ExcelManager.get_all_sales()
    assert row["order_id"] == waiter_order["id"]
    assert row["order_type"] == "DINE_IN"
    assert row["table_number"] == 4
    assert row["staff_name"] == "Wasantha Waiter"
    assert row["customer_name"] == "Nimal Perera"
    assert row["item_count"] == 3
    assert row["total_amount"] == 2950
    assert row["order_status"] == "COMPLETED"
    assert BILL_NUMBER.match(row["bill_number"])


def test_service_charge_applies_to_bill(client, notifications, waiter_order):
    client.put("/api/admin/settings", json={"service_charge_rate": 10})

    bill = client.get(f"/api/bill/{waiter_order['id']}").json()
    assert bill["totals"] == {
        "subtotal": 2950.0,
        "service_charge_rate": 10.0,
        "service_charge": 295.0,
        "total": 3245.0,
    }
    assert bill["bill_url"] == f"http://pos.test/bill/{waiter_order['id']}"
    assert bill["order"]["id"] == waiter_order["id"]

    send(client, waiter_order["id"])
    assert "Service charge (10%)" in notifications.sent[0]["body"]
    assert "3245.00" in notifications.sent[0]["body"]
    assert ExcelManager.get_all_sales()[0]["total_amount"] == 3245


def test_get_bill_unknown_order(client):
    assert client.get("/api/bill/77").status_code == 404


def test_bill_page(client, waiter_order):
    client.put("/api/admin/settings", json={"theme": "green"})

    response = client.get(f"/bill/{waiter_order['id']}")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "theme-green" in response.text
    assert "Chicken Fried Rice (Large)" in response.text
    assert "Table 4" in response.text

    assert client.get("/bill/999").status_code == 404
