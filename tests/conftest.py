import asyncio
import os
import tempfile
from types import SimpleNamespace

import pytest

# Isolated SQLite database, mock providers and in-process Celery.
# Must be set before the application settings are first loaded.
_TMP_DIR = tempfile.mkdtemp(prefix="wokabulary_test_")
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DATA_DIRECTORY"] = os.path.join(_TMP_DIR, "data")
os.environ["MOCK_FAILURE_RATE"] = "0"
os.environ["MOCK_MAX_LATENCY"] = "0"
os.environ["APP_BASE_URL"] = "http://pos.test"
os.environ["DEFAULT_SERVICE_CHARGE_RATE"] = "0"

from fastapi.testclient import TestClient

from wokabulary.database import drop_db
from wokabulary.main import app
from wokabulary.services.auth import reset_auth_service
from wokabulary.services.excel_manager import ExcelManager
from wokabulary.services.notifications import get_notification_service, reset_notification_service


@pytest.fixture()
def client():
    reset_auth_service()
    reset_notification_service()
    ExcelManager.clear_all()

    with TestClient(app) as test_client:
        yield test_client

    asyncio.run(drop_db())


@pytest.fixture()
def notifications(client):
    """The mock notification service used by the running app."""
    return get_notification_service()


@pytest.fixture()
def staff(client):
    response = client.post("/api/admin/staff", json={
        "name": "Wasantha Waiter",
        "email": "waiter@wokabulary.com",
        "role": "WAITER",
        "password": "secret123",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
def menu(client):
    """One category, two portions, one food item and a recipe on its Regular portion."""
    category = client.post("/api/admin/categories", json={"name": "Rice"}).json()
    regular = client.post("/api/admin/portions", json={"name": "Regular"}).json()
    large = client.post("/api/admin/portions", json={"name": "Large"}).json()

    rice = client.post("/api/admin/ingredients", json={
        "name": "Basmati Rice",
        "unit_of_measurement": "kg",
        "reorder_level": 1,
    }).json()
    client.post(f"/api/admin/ingredients/{rice['id']}/add-stock", json={"quantity": 10})

    response = client.post("/api/admin/food-items", json={
        "name": "Chicken Fried Rice",
        "category_id": category["id"],
        "portions": [
            {"portion_id": regular["id"], "price": 850},
            {"portion_id": large["id"], "price": 1250},
        ],
    })
    assert response.status_code == 201, response.text
    food_item = response.json()

    response = client.put(
        f"/api/admin/food-items/{food_item['id']}/portions/{regular['id']}/ingredients",
        json={"ingredients": [{"ingredient_id": rice["id"], "quantity": 0.25}]},
    )
    assert response.status_code == 200, response.text

    return SimpleNamespace(
        category=category,
        regular=regular,
        large=large,
        rice=rice,
        food_item=food_item,
    )


def line(menu, portion="regular", quantity=1, **extra):
    """Order line for the menu fixture's food item."""
    return {
        "food_item_id": menu.food_item["id"],
        "portion_id": getattr(menu, portion)["id"],
        "quantity": quantity,
        **extra,
    }


@pytest.fixture()
def waiter_order(client, staff, menu):
    response = client.post("/api/waiter/orders", json={
        "table_number": 4,
        "staff_id": staff["id"],
        "items": [line(menu, quantity=2), line(menu, "large", special_requests="Extra spicy")],
    })
    assert response.status_code == 201, response.text
    return response.json()
