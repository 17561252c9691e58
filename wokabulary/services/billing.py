"""
Billing

Bill totals with the restaurant's service charge, the rendered bill
email/SMS, and the row exported to the sales ledger.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.core.config import get_settings
from wokabulary.models import Order, RestaurantSettings
from wokabulary.schemas import BillTotals

logger = logging.getLogger(__name__)
settings = get_settings()

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"

jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


async def get_restaurant_settings(db: AsyncSession) -> RestaurantSettings:
    """Return the settings row, creating it with defaults on first use."""
    result = await db.execute(select(RestaurantSettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = RestaurantSettings(service_charge_rate=settings.default_service_charge_rate)
        db.add(row)
        await db.commit()
        logger.info("Settings row created with defaults")
    return row


def compute_bill_totals(subtotal: float, service_charge_rate: float) -> BillTotals:
    """Apply the service charge to an order subtotal."""
    service_charge = round(subtotal * service_charge_rate / 100, 2)
    return BillTotals(
        subtotal=round(subtotal, 2),
        service_charge_rate=service_charge_rate,
        service_charge=service_charge,
        total=round(subtotal + service_charge, 2),
    )


def bill_url(order_id: int) -> str:
    return f"{settings.app_base_url.rstrip('/')}/bill/{order_id}"


def bill_subject(order: Order) -> str:
    return f"Your bill for order #{order.id} - {settings.restaurant_name}"


def render_bill_email(order: Order, totals: BillTotals, customer_name: Optional[str] = None) -> str:
    """Render the HTML bill email."""
    template = jinja_env.get_template("emails/bill.html")
    return template.render(
        order=order,
        totals=totals,
        customer_name=customer_name or order.customer_name or "Valued Customer",
        restaurant_name=settings.restaurant_name,
        currency=settings.currency_symbol,
        bill_url=bill_url(order.id),
    )


def render_bill_text(order: Order, totals: BillTotals) -> str:
    """Plain-text alternative of the bill email."""
    currency = settings.currency_symbol
    lines = [f"{settings.restaurant_name} - Order #{order.id}"]
    for item in order.items:
        lines.append(
            f"{item.quantity} x {item.food_item.name} ({item.portion.name}) "
            f"{currency} {item.total_price:.2f}"
        )
    lines.append(f"Subtotal: {currency} {totals.subtotal:.2f}")
    if totals.service_charge:
        lines.append(f"Service charge ({totals.service_charge_rate:g}%): {currency} {totals.service_charge:.2f}")
    lines.append(f"Total: {currency} {totals.total:.2f}")
    lines.append(f"View online: {bill_url(order.id)}")
    return "\n".join(lines)


def render_bill_sms(order: Order, totals: BillTotals) -> str:
    return (
        f"Thank you for dining at {settings.restaurant_name}! "
        f"Order #{order.id} total: {settings.currency_symbol} {totals.total:.2f}. "
        f"Your bill: {bill_url(order.id)}"
    )


def sale_record(order: Order, totals: BillTotals) -> dict[str, Any]:
    """Flatten a completed order into a sales ledger row."""
    items = ", ".join(
        f"{item.quantity}x {item.food_item.name} ({item.portion.name})"
        for item in order.items
    )
    payment_mode = order.payments[0].payment_mode.value if order.payments else None

    return {
        "order_id": order.id,
        "bill_number": order.bill_number,
        "order_type": order.order_type.value,
        "table_number": order.table_number,
        "created_at": order.created_at.isoformat(),
        "staff_name": order.staff.name,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_email": order.customer_email,
        "items": items,
        "item_count": sum(item.quantity for item in order.items),
        "subtotal": totals.subtotal,
        "service_charge": totals.service_charge,
        "total_amount": totals.total,
        "payment_mode": payment_mode,
        "order_status": order.status.value,
    }
