"""
Bill Routes

Bill delivery for kitchen orders, the bill view, and sales rung up at
the counter (cashier orders and quick bills).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from kombu.exceptions import OperationalError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.core.config import get_settings
from wokabulary.database import get_db
from wokabulary.models import Order, OrderStatus, OrderType
from wokabulary.schemas import (
    BillRequest,
    BillResponse,
    BillSentResponse,
    BillTotals,
    CashierOrderCreate,
    ErrorResponse,
    OrderResponse,
    QuickBillCreate,
)
from wokabulary.services.billing import (
    bill_subject,
    bill_url,
    compute_bill_totals,
    get_restaurant_settings,
    render_bill_email,
    render_bill_sms,
    render_bill_text,
    sale_record,
)
from wokabulary.services.notifications import get_notification_service
from wokabulary.services.ordering import (
    ensure_transition,
    get_order_or_404,
    place_counter_order,
    unique_bill_number,
)
from wokabulary.tasks import export_sale_to_excel

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["Bills"])


def queue_sale_export(order: Order, totals: BillTotals) -> None:
    """Queue the sales ledger row for a completed order."""
    try:
        export_sale_to_excel.delay(sale_record(order, totals))
    except OperationalError as e:
        # The sale is already committed; the ledger can be rebuilt later
        logger.error(f"Could not queue sales export for order #{order.id}: {e}")


async def _bill_totals(db: AsyncSession, order: Order) -> BillTotals:
    restaurant = await get_restaurant_settings(db)
    return compute_bill_totals(order.total_amount, restaurant.service_charge_rate)


# =============================================================================
# BILL DELIVERY
# =============================================================================

@router.post(
    "/api/orders/{order_id}/bill",
    response_model=BillSentResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def send_bill(
    order_id: int,
    bill_request: BillRequest,
    db: AsyncSession = Depends(get_db),
) -> BillSentResponse:
    """
    Email the bill to the customer and complete the order.

    An SMS notice follows when a phone number is given; its failure does
    not fail the request. If the email cannot be sent nothing is saved.
    Completed orders can be billed again without changing their status.
    """
    restaurant = await get_restaurant_settings(db)
    order = await get_order_or_404(db, order_id)

    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Cannot send a bill for a cancelled order")
    if not bill_request.customer_email:
        raise HTTPException(status_code=400, detail="Customer email is required")

    newly_completed = order.status != OrderStatus.COMPLETED
    if newly_completed:
        ensure_transition(order, OrderStatus.COMPLETED)

    order.customer_email = bill_request.customer_email
    if bill_request.customer_name:
        order.customer_name = bill_request.customer_name.strip()
    if bill_request.customer_phone:
        order.customer_phone = bill_request.customer_phone.strip()

    totals = compute_bill_totals(order.total_amount, restaurant.service_charge_rate)

    notification_service = get_notification_service()
    delivery = await notification_service.send_bill(
        to_email=order.customer_email,
        subject=bill_subject(order),
        body_html=render_bill_email(order, totals),
        body_text=render_bill_text(order, totals),
        to_phone=order.customer_phone,
        sms_message=render_bill_sms(order, totals),
    )

    if not delivery.email_sent:
        await db.rollback()
        logger.error(f"Bill email for order #{order_id} failed: {delivery.email.error_message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to send bill", "detail": delivery.email.error_message},
        )

    if delivery.sms is not None and not delivery.sms_sent:
        logger.warning(f"Bill SMS for order #{order_id} failed: {delivery.sms.error_message}")

    if newly_completed:
        order.status = OrderStatus.COMPLETED
        if not order.bill_number:
            order.bill_number = await unique_bill_number(db)
    await db.commit()

    logger.info(
        f"Bill for order #{order_id} sent to {order.customer_email} "
        f"(sms={'yes' if delivery.sms_sent else 'no'})"
    )

    if newly_completed:
        queue_sale_export(await get_order_or_404(db, order_id), totals)

    return BillSentResponse(
        message="Bill sent successfully",
        bill_url=bill_url(order_id),
        email_sent=True,
        sms_sent=delivery.sms_sent,
    )


@router.get(
    "/api/bill/{order_id}",
    response_model=BillResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_bill(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> BillResponse:
    order = await get_order_or_404(db, order_id)
    return BillResponse(
        restaurant_name=settings.restaurant_name,
        currency_symbol=settings.currency_symbol,
        bill_url=bill_url(order_id),
        order=OrderResponse.model_validate(order),
        totals=await _bill_totals(db, order),
    )


# =============================================================================
# COUNTER SALES
# =============================================================================

@router.post(
    "/api/cashier/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_cashier_order(
    order_data: CashierOrderCreate,
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Ring up a table's sale at the counter. The order is created COMPLETED."""
    if order_data.bill_number:
        taken = await db.execute(select(Order.id).where(Order.bill_number == order_data.bill_number))
        if taken.first() is not None:
            raise HTTPException(status_code=409, detail="Bill number already exists")

    order = await place_counter_order(
        db,
        staff_id=order_data.staff_id,
        items=order_data.items,
        notes=order_data.notes,
        customer_data=order_data.customer_data,
        payment_data=order_data.payment_data,
        order_type=OrderType.DINE_IN,
        table_number=order_data.table_number,
        bill_number=order_data.bill_number,
    )
    await db.commit()

    order = await get_order_or_404(db, order.id)
    logger.info(f"Cashier order #{order.id} ({order.bill_number}) total {order.total_amount:.2f}")

    queue_sale_export(order, await _bill_totals(db, order))
    return order


@router.post(
    "/api/cashier/quick-bill",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_quick_bill(
    bill_data: QuickBillCreate,
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Takeaway or delivery sale with no table, completed immediately."""
    order = await place_counter_order(
        db,
        staff_id=bill_data.staff_id,
        items=bill_data.items,
        notes=bill_data.notes,
        customer_data=bill_data.customer_data,
        payment_data=bill_data.payment_data,
        order_type=bill_data.order_type,
    )
    await db.commit()

    order = await get_order_or_404(db, order.id)
    logger.info(
        f"Quick bill #{order.id} ({order.bill_number}) for {order.customer_name}: "
        f"total {order.total_amount:.2f}"
    )

    queue_sale_export(order, await _bill_totals(db, order))
    return order
