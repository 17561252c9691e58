"""
Rush Hour Simulation Script

Seeds a demo menu over the HTTP API, then fires concurrent waiter orders,
kitchen status updates, bills and counter quick bills at a running server.
Run from project root: python scripts/simulate.py --orders 40

The server should run with ENV_MODE=development (mock auth, email and SMS).
"""

import argparse
import asyncio
import random
import sys
import time
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8000"
TOTAL_ORDERS = 40

FIRST_NAMES = ["Nimal", "Kavindi", "Ruwan", "Ishara", "Tharindu", "Dilini", "Sahan", "Nadeesha"]
LAST_NAMES = ["Perera", "Silva", "Fernando", "Jayasinghe", "Bandara", "Wickramasinghe"]

PORTIONS = ["Regular", "Large"]
INGREDIENTS = [
    {"name": "Basmati Rice", "unit_of_measurement": "kg", "reorder_level": 5, "stock": 200},
    {"name": "Egg Noodles", "unit_of_measurement": "kg", "reorder_level": 5, "stock": 150},
    {"name": "Chicken", "unit_of_measurement": "kg", "reorder_level": 3, "stock": 100},
    {"name": "Prawns", "unit_of_measurement": "kg", "reorder_level": 2, "stock": 60},
]
MENU = {
    "Rice": [
        ("Chicken Fried Rice", {"Regular": 850, "Large": 1250}, {"Basmati Rice": 0.25, "Chicken": 0.1}),
        ("Seafood Fried Rice", {"Regular": 1100, "Large": 1600}, {"Basmati Rice": 0.25, "Prawns": 0.12}),
    ],
    "Noodles": [
        ("Chicken Chopsuey Noodles", {"Regular": 900, "Large": 1300}, {"Egg Noodles": 0.2, "Chicken": 0.1}),
        ("Prawn Kottu Noodles", {"Regular": 1150, "Large": 1700}, {"Egg Noodles": 0.2, "Prawns": 0.12}),
    ],
}


def random_customer() -> dict[str, str]:
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "phone": f"+9477{random.randint(1000000, 9999999)}",
        "email": f"{first.lower()}.{last.lower()}{random.randint(1, 999)}@example.com",
    }


def random_items(menu: list[dict]) -> list[dict[str, Any]]:
    items = []
    for food_item in random.sample(menu, k=random.randint(1, min(3, len(menu)))):
        portion = random.choice(food_item["portions"])
        items.append({
            "food_item_id": food_item["id"],
            "portion_id": portion["portion_id"],
            "quantity": random.randint(1, 3),
            "special_requests": random.choice([None, None, "Less spicy", "No onions"]),
        })
    return items


# =============================================================================
# SEEDING
# =============================================================================

async def seed(client: httpx.AsyncClient) -> tuple[str, list[dict]]:
    """Create a staff member and the demo menu. Returns (staff_id, waiter menu)."""
    suffix = random.randint(1000, 9999)
    response = await client.post("/api/admin/staff", json={
        "name": f"Sim Waiter {suffix}",
        "email": f"sim.waiter{suffix}@wokabulary.com",
        "role": "WAITER",
        "password": "simulate123",
    })
    response.raise_for_status()
    staff_id = response.json()["id"]

    existing = {p["name"]: p["id"] for p in (await client.get("/api/admin/portions")).json()}
    portion_ids = {}
    for name in PORTIONS:
        if name not in existing:
            response = await client.post("/api/admin/portions", json={"name": name})
            response.raise_for_status()
            existing[name] = response.json()["id"]
        portion_ids[name] = existing[name]

    existing = {i["name"]: i["id"] for i in (await client.get("/api/admin/ingredients")).json()}
    ingredient_ids = {}
    for ingredient in INGREDIENTS:
        if ingredient["name"] not in existing:
            response = await client.post("/api/admin/ingredients", json={
                "name": ingredient["name"],
                "unit_of_measurement": ingredient["unit_of_measurement"],
                "reorder_level": ingredient["reorder_level"],
            })
            response.raise_for_status()
            existing[ingredient["name"]] = response.json()["id"]
        ingredient_ids[ingredient["name"]] = existing[ingredient["name"]]
        await client.post(
            f"/api/admin/ingredients/{existing[ingredient['name']]}/add-stock",
            json={"quantity": ingredient["stock"]},
        )

    categories = {c["name"]: c["id"] for c in (await client.get("/api/admin/categories")).json()}
    food_items = {f["name"] for f in (await client.get("/api/admin/food-items")).json()}
    for category, dishes in MENU.items():
        if category not in categories:
            response = await client.post("/api/admin/categories", json={"name": category})
            response.raise_for_status()
            categories[category] = response.json()["id"]

        for name, prices, recipe in dishes:
            if name in food_items:
                continue
            response = await client.post("/api/admin/food-items", json={
                "name": name,
                "category_id": categories[category],
                "portions": [
                    {"portion_id": portion_ids[portion], "price": price}
                    for portion, price in prices.items()
                ],
            })
            response.raise_for_status()
            food_item_id = response.json()["id"]

            for portion in prices:
                scale = 1.5 if portion == "Large" else 1.0
                await client.put(
                    f"/api/admin/food-items/{food_item_id}/portions/{portion_ids[portion]}/ingredients",
                    json={"ingredients": [
                        {"ingredient_id": ingredient_ids[ingredient], "quantity": round(quantity * scale, 3)}
                        for ingredient, quantity in recipe.items()
                    ]},
                )

    menu = (await client.get("/api/waiter/food-items")).json()
    print(f"Seeded: staff {staff_id}, {len(menu)} menu items")
    return staff_id, menu


# =============================================================================
# FLOWS
# =============================================================================

async def table_flow(client: httpx.AsyncClient, staff_id: str, menu: list[dict], num: int) -> dict[str, Any]:
    """Waiter order -> kitchen PREPARING -> READY -> bill."""
    start_time = time.time()
    try:
        response = await client.post("/api/waiter/orders", json={
            "table_number": random.randint(1, 20),
            "staff_id": staff_id,
            "items": random_items(menu),
        })
        response.raise_for_status()
        order = response.json()

        for status in ("PREPARING", "READY"):
            await asyncio.sleep(random.uniform(0, 0.2))
            response = await client.patch(f"/api/kitchen/orders/{order['id']}/status", json={"status": status})
            response.raise_for_status()

        customer = random_customer()
        response = await client.post(f"/api/orders/{order['id']}/bill", json={
            "customer_email": customer["email"],
            "customer_name": customer["name"],
            "customer_phone": customer["phone"],
        })
        response.raise_for_status()

        return {"num": num, "mode": "table", "success": True, "total": order["total_amount"],
                "time": round(time.time() - start_time, 3)}
    except httpx.HTTPError as e:
        detail = e.response.text[:100] if isinstance(e, httpx.HTTPStatusError) else str(e)[:100]
        return {"num": num, "mode": "table", "success": False, "error": detail,
                "time": round(time.time() - start_time, 3)}


async def quick_bill_flow(client: httpx.AsyncClient, staff_id: str, menu: list[dict], num: int) -> dict[str, Any]:
    """Takeaway sale at the counter."""
    start_time = time.time()
    customer = random_customer()
    try:
        response = await client.post("/api/cashier/quick-bill", json={
            "staff_id": staff_id,
            "items": random_items(menu),
            "customer_data": {"name": customer["name"], "phone": customer["phone"], "is_new_customer": True},
            "payment_data": {"received_amount": 10000, "payment_mode": random.choice(["CASH", "CARD"])},
            "order_type": random.choice(["TAKEAWAY", "DELIVERY"]),
        })
        response.raise_for_status()
        order = response.json()
        return {"num": num, "mode": "quick", "success": True, "total": order["total_amount"],
                "time": round(time.time() - start_time, 3)}
    except httpx.HTTPError as e:
        detail = e.response.text[:100] if isinstance(e, httpx.HTTPStatusError) else str(e)[:100]
        return {"num": num, "mode": "quick", "success": False, "error": detail,
                "time": round(time.time() - start_time, 3)}


async def run_simulation(num_orders: int) -> dict[str, Any]:
    print("=" * 70)
    print(f"RUSH HOUR SIMULATION: {num_orders} orders against {API_BASE_URL}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        health = (await client.get("/health")).json()
        print(f"Health: {health['status']} (database {health['database']}, redis {health['redis']})")

        staff_id, menu = await seed(client)
        if not menu:
            print("No menu items available, aborting")
            return {"total": 0, "successful": 0, "failed": 0}

        start = time.time()
        tasks = [
            (table_flow if i % 3 else quick_bill_flow)(client, staff_id, menu, i)
            for i in range(1, num_orders + 1)
        ]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("RESULTS")
    print("=" * 70)
    print(f"Successful: {len(successful)}/{num_orders}")
    print(f"Total Time: {total_time}s")
    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"Average flow time: {avg_time}s")
        print(f"Revenue (before service charge): {sum(r['total'] for r in successful):.2f}")
    if failed:
        print("\nFailed flows (first 5):")
        for f in failed[:5]:
            print(f"   #{f['num']} [{f['mode']}]: {f['error']}")

    print("\nNext: python scripts/verify.py to check the sales ledger")
    return {"total": num_orders, "successful": len(successful), "failed": len(failed)}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(0 if summary["failed"] == 0 else 1)
