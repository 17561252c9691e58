def test_create_and_search_customer(client):
    response = client.post("/api/customers", json={
        "name": "Nimal Perera",
        "phone": " 0771234567 ",
        "email": "nimal@example.com",
    })
    assert response.status_code == 201
    customer = response.json()
    assert customer["phone"] == "0771234567"

    found = client.get("/api/customers/search", params={"phone": "0771234567"}).json()
    assert found["id"] == customer["id"]
    assert found["email"] == "nimal@example.com"


def test_search_unknown_phone_returns_null(client):
    response = client.get("/api/customers/search", params={"phone": "0000000000"})
    assert response.status_code == 200
    assert response.json() is None


def test_duplicate_customer_phone(client):
    client.post("/api/customers", json={"name": "Nimal", "phone": "0771234567"})
    response = client.post("/api/customers", json={"name": "Someone", "phone": "0771234567"})
    assert response.status_code == 409
    assert response.json()["error"] == "Customer with this phone number already exists"


def test_customer_validation(client):
    assert client.post("/api/customers", json={"name": "", "phone": "0771234567"}).status_code == 400
    assert client.post("/api/customers", json={"name": "Nimal", "phone": "  "}).status_code == 400
    assert client.post("/api/customers", json={
        "name": "Nimal", "phone": "0771234567", "email": "nope",
    }).status_code == 400


def test_default_settings(client):
    data = client.get("/api/settings").json()
    assert data["service_charge_rate"] == 0
    assert data["theme"] == "blue"
    assert client.get("/api/admin/settings").json()["id"] == data["id"]


def test_update_settings(client):
    response = client.put("/api/admin/settings", json={"theme": "purple", "service_charge_rate": 12.5})
    assert response.status_code == 200
    assert response.json()["theme"] == "purple"
    assert response.json()["service_charge_rate"] == 12.5

    # Partial update keeps the other field
    client.put("/api/admin/settings", json={"theme": "red"})
    data = client.get("/api/settings").json()
    assert data["theme"] == "red"
    assert data["service_charge_rate"] == 12.5


def test_settings_validation(client):
    assert client.put("/api/admin/settings", json={"service_charge_rate": 101}).status_code == 400
    assert client.put("/api/admin/settings", json={"service_charge_rate": -1}).status_code == 400
    assert client.put("/api/admin/settings", json={"theme": "orange"}).status_code == 400
