"""
Order Routes

Waiter order taking, the kitchen board and order cancellation.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import KITCHEN_STATUSES, Order, OrderStatus, OrderType
from wokabulary.schemas import (
    ErrorResponse,
    OrderCancel,
    OrderCancelResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
)
from wokabulary.services.ordering import (
    KITCHEN_TARGETS,
    ensure_transition,
    get_active_staff,
    get_order_or_404,
    price_order_lines,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])


# =============================================================================
# WAITER
# =============================================================================

@router.post(
    "/api/waiter/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_waiter_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> Order:
    """
    Send a table's order to the kitchen.

    Prices come from the menu, never from the request. Stock is consumed
    when the sale is rung up at the counter, not here.
    """
    staff = await get_active_staff(db, order_data.staff_id)
    priced = await price_order_lines(db, order_data.items)

    order = Order(
        table_number=order_data.table_number,
        staff_id=staff.id,
        status=OrderStatus.PENDING,
        order_type=OrderType.DINE_IN,
        total_amount=priced.total_amount,
        notes=order_data.notes,
        items=[line.to_order_item() for line in priced.lines],
    )
    db.add(order)
    await db.commit()

    logger.info(
        f"Order #{order.id} created by {staff.name} for table {order.table_number}: "
        f"{len(priced.lines)} lines, total {order.total_amount:.2f}"
    )
    return await get_order_or_404(db, order.id)


@router.get("/api/waiter/orders", response_model=List[OrderResponse])
async def list_waiter_orders(
    staff_id: Optional[str] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[Order]:
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if staff_id:
        query = query.where(Order.staff_id == staff_id)
    if status:
        query = query.where(Order.status == status)

    result = await db.execute(query)
    return result.scalars().all()


# =============================================================================
# KITCHEN
# =============================================================================

@router.get(
    "/api/kitchen/orders",
    response_model=List[OrderResponse],
    responses={400: {"model": ErrorResponse}},
)
async def list_kitchen_orders(
    status: Optional[OrderStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[Order]:
    """Open orders, grouped PENDING, PREPARING, READY and oldest first within each group."""
    if status and status not in KITCHEN_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Kitchen status must be one of: {[s.value for s in KITCHEN_STATUSES]}",
        )

    board_position = case(
        {s: position for position, s in enumerate(KITCHEN_STATUSES)},
        value=Order.status,
    )
    statuses = [status] if status else list(KITCHEN_STATUSES)

    result = await db.execute(
        select(Order)
        .where(Order.status.in_(statuses))
        .order_by(board_position, Order.created_at.asc(), Order.id.asc())
    )
    return result.scalars().all()


@router.patch(
    "/api/kitchen/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_kitchen_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> Order:
    if status_update.status not in KITCHEN_TARGETS:
        raise HTTPException(
            status_code=400,
            detail=f"Kitchen can only set status to: {[s.value for s in KITCHEN_TARGETS]}",
        )

    order = await get_order_or_404(db, order_id)
    ensure_transition(order, status_update.status)

    previous = order.status
    order.status = status_update.status
    await db.commit()

    logger.info(f"Order #{order_id}: {previous.value} -> {order.status.value}")
    return await get_order_or_404(db, order_id)


# =============================================================================
# ORDERS
# =============================================================================

@router.patch(
    "/api/orders/{order_id}/cancel",
    response_model=OrderCancelResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def cancel_order(
    order_id: int,
    cancel_data: Optional[OrderCancel] = None,
    db: AsyncSession = Depends(get_db),
) -> OrderCancelResponse:
    """Cancel an order the kitchen is preparing."""
    order = await get_order_or_404(db, order_id)
    ensure_transition(order, OrderStatus.CANCELLED)

    reason = (cancel_data.reason or "").strip() if cancel_data else ""
    order.status = OrderStatus.CANCELLED
    if reason:
        note = f"CANCELLED: {reason}"
        order.notes = f"{order.notes}\n{note}" if order.notes else note
    await db.commit()

    logger.info(f"Order #{order_id} cancelled{': ' + reason if reason else ''}")

    return OrderCancelResponse(
        message="Order cancelled successfully",
        order=OrderResponse.model_validate(await get_order_or_404(db, order_id)),
    )


@router.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> Order:
    return await get_order_or_404(db, order_id)
