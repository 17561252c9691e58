"""
Dashboard Routes

Aggregated figures for the admin dashboard, the sales ledger report and
the server-rendered pages (admin dashboard, kitchen board, printable bill).
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.core.config import get_settings
from wokabulary.database import get_db
from wokabulary.models import Ingredient, Order, OrderStatus
from wokabulary.services.billing import compute_bill_totals, get_restaurant_settings
from wokabulary.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)
settings = get_settings()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))

router = APIRouter(tags=["Dashboard"])


# =============================================================================
# API
# =============================================================================

@router.get("/api/admin/dashboard-data")
async def dashboard_data(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""

    # Counts per status
    status_result = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    counts = {s.value: 0 for s in OrderStatus}
    for order_status, count in status_result:
        counts[order_status.value] = count
    total_orders = sum(counts.values())

    # Today's revenue (completed orders only)
    today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    revenue_result = await db.execute(
        select(func.sum(Order.total_amount)).where(
            Order.status == OrderStatus.COMPLETED,
            Order.created_at >= today_start,
        )
    )
    today_revenue = revenue_result.scalar() or 0.0

    # Average order value
    avg_result = await db.execute(
        select(func.avg(Order.total_amount)).where(Order.status == OrderStatus.COMPLETED)
    )
    avg_order_value = avg_result.scalar() or 0.0

    # Low stock
    low_stock_result = await db.execute(
        select(func.count(Ingredient.id)).where(
            Ingredient.is_active.is_(True),
            Ingredient.current_stock_quantity <= Ingredient.reorder_level,
        )
    )
    low_stock_count = low_stock_result.scalar() or 0

    # Recent orders
    recent_result = await db.execute(
        select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(10)
    )
    recent_orders = recent_result.scalars().all()

    return {
        "total_orders": total_orders,
        "orders_by_status": counts,
        "today_revenue": round(today_revenue, 2),
        "avg_order_value": round(avg_order_value, 2),
        "low_stock_count": low_stock_count,
        "environment": settings.env_mode.value,
        "recent_orders": [
            {
                "id": o.id,
                "table_number": o.table_number,
                "order_type": o.order_type.value,
                "staff_name": o.staff.name,
                "customer_name": o.customer_name,
                "item_count": sum(item.quantity for item in o.items),
                "total_amount": o.total_amount,
                "status": o.status.value,
                "created_at": o.created_at.isoformat(),
            }
            for o in recent_orders
        ],
    }


@router.get("/api/admin/reports/sales")
async def sales_report() -> dict[str, Any]:
    """Rows of the Excel sales ledger written by the background worker."""
    sales = await run_in_threadpool(ExcelManager.get_all_sales)
    return {
        "total": len(sales),
        "revenue": round(sum(row.get("total_amount") or 0 for row in sales), 2),
        "sales": sales,
    }


# =============================================================================
# PAGES
# =============================================================================

@router.get("/admin", response_class=HTMLResponse, include_in_schema=False)
async def admin_page(request: Request) -> HTMLResponse:
    """Serve the admin dashboard UI."""
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"app_name": settings.app_name, "currency": settings.currency_symbol},
    )


@router.get("/kitchen", response_class=HTMLResponse, include_in_schema=False)
async def kitchen_page(request: Request) -> HTMLResponse:
    """Serve the kitchen board UI."""
    return templates.TemplateResponse(
        request,
        "kitchen.html",
        {"app_name": settings.app_name},
    )


@router.get("/bill/{order_id}", response_class=HTMLResponse, include_in_schema=False)
async def bill_page(
    request: Request,
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> HTMLResponse:
    """Printable bill."""
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    restaurant = await get_restaurant_settings(db)
    totals = compute_bill_totals(order.total_amount, restaurant.service_charge_rate)

    return templates.TemplateResponse(
        request,
        "bill.html",
        {
            "order": order,
            "totals": totals,
            "restaurant_name": settings.restaurant_name,
            "currency": settings.currency_symbol,
            "theme": restaurant.theme.value,
        },
    )
