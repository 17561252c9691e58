"""API routers, one per resource."""

from wokabulary.routers import (
    bills,
    categories,
    customers,
    dashboard,
    food_items,
    ingredients,
    orders,
    portions,
    settings,
    staff,
)

all_routers = [
    staff.router,
    categories.router,
    portions.router,
    food_items.router,
    ingredients.router,
    orders.router,
    bills.router,
    customers.router,
    settings.router,
    dashboard.router,
]

__all__ = ["all_routers"]
