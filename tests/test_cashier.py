import re

import pytest

from conftest import line
from wokabulary.services.excel_manager import ExcelManager

BILL_NUMBER = re.compile(r"^BILL-\d{8}-\d{4}$")


def rice_stock(client):
    (rice,) = client.get("/api/admin/ingredients").json()
    return rice["current_stock_quantity"]


@pytest.fixture()
def counter_sale(staff, menu):
    """Builds a cashier order payload."""
    def build(**overrides):
        payload = {
            "table_number": 6,
            "staff_id": staff["id"],
            "items": [line(menu, quantity=2)],
            "customer_data": {"name": "Nimal Perera", "phone": "0771234567", "email": "nimal@example.com"},
            "payment_data": {"received_amount": 2000, "balance": 300, "payment_mode": "CASH"},
        }
        payload.update(overrides)
        return payload
    return build


# =============================================================================
# CASHIER ORDERS
# =============================================================================

def test_cashier_order_is_completed_and_consumes_stock(client, counter_sale):
    response = client.post("/api/cashier/orders", json=counter_sale())
    assert response.status_code == 201, response.text
    order = response.json()

    assert order["status"] == "COMPLETED"
    assert order["order_type"] == "DINE_IN"
    assert order["table_number"] == 6
    assert order["total_amount"] == 1700
    assert BILL_NUMBER.match(order["bill_number"])

    assert order["customer"]["phone"] == "0771234567"
    assert order["customer_name"] == "Nimal Perera"
    (payment,) = order["payments"]
    assert payment["amount"] == 1700
    assert payment["received_amount"] == 2000
    assert payment["balance"] == 300
    assert payment["payment_mode"] == "CASH"

    # Two Regular portions at 0.25 kg each
    assert rice_stock(client) == 9.5


def test_cashier_order_is_exported(client, counter_sale):
    order = client.post("/api/cashier/orders", json=counter_sale()).json()

    (row,) = ExcelManager.get_all_sales()
    assert row["order_id"] == order["id"]
    assert row["payment_mode"] == "CASH"
    assert row["customer_phone"] == "0771234567"


def test_portion_without_recipe_consumes_nothing(client, counter_sale, menu):
    response = client.post("/api/cashier/orders", json=counter_sale(items=[line(menu, "large", quantity=3)]))
    assert response.status_code == 201
    assert rice_stock(client) == 10


def test_insufficient_stock_rejects_sale(client, counter_sale, menu):
    response = client.post("/api/cashier/orders", json=counter_sale(items=[line(menu, quantity=41)]))
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Insufficient stock for Basmati Rice"
    assert data["ingredient"] == "Basmati Rice"
    assert data["required"] == 10.25
    assert data["available"] == 10
    assert data["unit_of_measurement"] == "kg"

    # Nothing was written
    assert rice_stock(client) == 10
    assert client.get("/api/waiter/orders").json() == []
    assert client.get("/api/customers/search", params={"phone": "0771234567"}).json() is None


def test_lines_sharing_an_ingredient_are_summed(client, counter_sale, menu):
    # 20 + 21 Regular portions need 10.25 kg together although each line fits alone
    items = [line(menu, quantity=20), line(menu, quantity=21)]
    response = client.post("/api/cashier/orders", json=counter_sale(items=items))
    assert response.status_code == 400
    assert rice_stock(client) == 10


def test_exact_stock_can_be_sold(client, counter_sale, menu):
    response = client.post("/api/cashier/orders", json=counter_sale(items=[line(menu, quantity=40)]))
    assert response.status_code == 201
    assert rice_stock(client) == 0


def test_float_rounding_does_not_block_last_portion(client, counter_sale, menu):
    url = f"/api/admin/ingredients/{menu.rice['id']}"
    client.post(f"{url}/stock-out", json={"quantity": 9.9, "reason": "Spoiled"})
    client.post(f"{url}/add-stock", json={"quantity": 0.15})

    response = client.post("/api/cashier/orders", json=counter_sale(items=[line(menu)]))
    assert response.status_code == 201, response.text
    assert rice_stock(client) == 0


def test_duplicate_bill_number(client, counter_sale):
    first = client.post("/api/cashier/orders", json=counter_sale(bill_number="BILL-20250101-0001"))
    assert first.status_code == 201
    assert first.json()["bill_number"] == "BILL-20250101-0001"

    response = client.post("/api/cashier/orders", json=counter_sale(bill_number="BILL-20250101-0001"))
    assert response.status_code == 409
    assert response.json()["error"] == "Bill number already exists"
    assert rice_stock(client) == 9.5


def test_cashier_order_without_customer(client, counter_sale):
    response = client.post("/api/cashier/orders", json=counter_sale(customer_data=None, payment_data=None))
    assert response.status_code == 201
    order = response.json()
    assert order["customer"] is None
    assert order["payments"] == []


def test_payment_without_customer_is_recorded_for_walk_in(client, counter_sale):
    response = client.post("/api/cashier/orders", json=counter_sale(customer_data=None))
    assert response.status_code == 201, response.text
    order = response.json()

    (payment,) = order["payments"]
    assert payment["amount"] == 1700
    assert payment["received_amount"] == 2000
    assert payment["balance"] == 300
    assert order["customer"]["name"] == "Walk-in Customer"
    assert order["customer"]["phone"].startswith("WALKIN-")
    assert order["customer_phone"] is None

    # Every walk-in sale gets its own customer row
    again = client.post("/api/cashier/orders", json=counter_sale(customer_data=None)).json()
    assert again["customer"]["id"] != order["customer"]["id"]
    assert len(again["payments"]) == 1


def test_walk_in_keeps_the_name_given_without_phone(client, counter_sale):
    order = client.post("/api/cashier/orders", json=counter_sale(customer_data={"name": "Table six"})).json()
    assert order["customer"]["name"] == "Table six"
    assert order["customer_name"] == "Table six"
    assert len(order["payments"]) == 1


def test_existing_customer_is_reused(client, counter_sale):
    client.post("/api/cashier/orders", json=counter_sale())
    second = client.post("/api/cashier/orders", json=counter_sale(
        customer_data={"phone": "0771234567"},
    )).json()

    assert second["customer"]["name"] == "Nimal Perera"
    assert second["customer_name"] == "Nimal Perera"


def test_new_customer_needs_a_name(client, counter_sale):
    response = client.post("/api/cashier/orders", json=counter_sale(customer_data={"phone": "0710000000"}))
    assert response.status_code == 400
    assert response.json()["error"] == "Customer name is required"


def test_unknown_customer_id(client, counter_sale):
    response = client.post("/api/cashier/orders", json=counter_sale(customer_data={"customer_id": "missing"}))
    assert response.status_code == 404


# =============================================================================
# QUICK BILLS
# =============================================================================

def quick_bill(staff, menu, **overrides):
    payload = {
        "staff_id": staff["id"],
        "items": [line(menu)],
        "customer_data": {"name": "Kasun", "phone": "0719999999"},
        "payment_data": {"received_amount": 1000, "balance": 150, "payment_mode": "CARD"},
    }
    payload.update(overrides)
    return payload


def test_quick_bill(client, staff, menu):
    response = client.post("/api/cashier/quick-bill", json=quick_bill(staff, menu))
    assert response.status_code == 201, response.text
    order = response.json()

    assert order["status"] == "COMPLETED"
    assert order["order_type"] == "TAKEAWAY"
    assert order["table_number"] is None
    assert order["total_amount"] == 850
    assert BILL_NUMBER.match(order["bill_number"])
    assert order["payments"][0]["payment_mode"] == "CARD"
    assert rice_stock(client) == 9.75

    (row,) = ExcelManager.get_all_sales()
    assert row["order_type"] == "TAKEAWAY"
    assert row["table_number"] is None


def test_quick_bill_delivery(client, staff, menu):
    response = client.post("/api/cashier/quick-bill", json=quick_bill(staff, menu, order_type="DELIVERY"))
    assert response.status_code == 201
    assert response.json()["order_type"] == "DELIVERY"


def test_quick_bill_requires_customer_and_payment(client, staff, menu):
    payload = quick_bill(staff, menu, customer_data={"name": "Kasun"})
    assert client.post("/api/cashier/quick-bill", json=payload).status_code == 400

    payload = quick_bill(staff, menu)
    del payload["payment_data"]
    assert client.post("/api/cashier/quick-bill", json=payload).status_code == 400


def test_quick_bill_numbers_are_unique(client, staff, menu):
    numbers = {
        client.post("/api/cashier/quick-bill", json=quick_bill(staff, menu)).json()["bill_number"]
        for _ in range(3)
    }
    assert len(numbers) == 3
