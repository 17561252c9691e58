"""
Order Construction

Shared by waiter orders, cashier orders and quick bills:
    - pricing requested lines from the stored portion prices
    - rejecting unavailable food items and portions
    - consuming recipe ingredients from stock
    - finding or creating the customer
    - bill numbers and status transitions
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wokabulary.models import (
    Customer,
    FoodItemPortion,
    Ingredient,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    Payment,
    PortionIngredient,
    Staff,
)
from wokabulary.schemas import CustomerData, OrderItemCreate, PaymentData

logger = logging.getLogger(__name__)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.COMPLETED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

# Statuses the kitchen board is allowed to set
KITCHEN_TARGETS = (OrderStatus.PREPARING, OrderStatus.READY)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def ensure_transition(order: Order, target: OrderStatus) -> None:
    """Raise 400 unless ``order`` may move to ``target``."""
    if not can_transition(order.status, target):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change order #{order.id} from {order.status.value} to {target.value}",
        )


# =============================================================================
# BILL NUMBERS
# =============================================================================

def generate_bill_number(now: Optional[datetime] = None) -> str:
    """Return a bill number like ``BILL-20250101-0042``."""
    now = now or datetime.now()
    return f"BILL-{now.strftime('%Y%m%d')}-{random.randint(0, 9999):04d}"


async def unique_bill_number(db: AsyncSession, attempts: int = 10) -> str:
    """Generate a bill number that is not used by any order yet."""
    for _ in range(attempts):
        candidate = generate_bill_number()
        result = await db.execute(select(Order.id).where(Order.bill_number == candidate))
        if result.first() is None:
            return candidate
    raise HTTPException(status_code=500, detail="Could not allocate a bill number")


# =============================================================================
# LOOKUPS
# =============================================================================

async def get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    """Load an order with fresh relationship state."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return order


async def get_active_staff(db: AsyncSession, staff_id: str) -> Staff:
    staff = await db.get(Staff, staff_id)
    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")
    if not staff.is_active:
        raise HTTPException(status_code=400, detail="Staff account is deactivated")
    return staff


# =============================================================================
# PRICING
# =============================================================================

@dataclass
class PricedLine:
    """A requested order line matched to its stored portion price."""
    food_item_portion: FoodItemPortion
    quantity: int
    special_requests: Optional[str] = None

    @property
    def unit_price(self) -> float:
        return self.food_item_portion.price

    @property
    def total_price(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    def to_order_item(self) -> OrderItem:
        return OrderItem(
            food_item_id=self.food_item_portion.food_item_id,
            portion_id=self.food_item_portion.portion_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_price=self.total_price,
            special_requests=self.special_requests,
        )


@dataclass
class PricedOrder:
    lines: list[PricedLine] = field(default_factory=list)

    @property
    def total_amount(self) -> float:
        return round(sum(line.total_price for line in self.lines), 2)


async def price_order_lines(db: AsyncSession, items: list[OrderItemCreate]) -> PricedOrder:
    """
    Match each requested line to its FoodItemPortion.

    Raises:
        HTTPException(400): unknown food item/portion pair, or an item or
            portion that is switched off
    """
    priced = PricedOrder()

    for item in items:
        result = await db.execute(
            select(FoodItemPortion)
            .options(
                selectinload(FoodItemPortion.food_item),
                selectinload(FoodItemPortion.ingredients).selectinload(PortionIngredient.ingredient),
            )
            .where(
                FoodItemPortion.food_item_id == item.food_item_id,
                FoodItemPortion.portion_id == item.portion_id,
            )
        )
        food_item_portion = result.scalar_one_or_none()

        if not food_item_portion:
            raise HTTPException(
                status_code=400,
                detail=f"Portion {item.portion_id} is not offered for food item {item.food_item_id}",
            )
        if not food_item_portion.food_item.is_active:
            raise HTTPException(
                status_code=400,
                detail=f"{food_item_portion.food_item.name} is currently unavailable",
            )
        if not food_item_portion.portion.is_active:
            raise HTTPException(
                status_code=400,
                detail=f"{food_item_portion.portion.name} portion is currently unavailable",
            )

        priced.lines.append(
            PricedLine(
                food_item_portion=food_item_portion,
                quantity=item.quantity,
                special_requests=item.special_requests,
            )
        )

    return priced


# =============================================================================
# STOCK
# =============================================================================

# Stock is stored as float; differences below this are rounding noise
STOCK_TOLERANCE = 1e-9


def stock_decrement(quantity: float):
    """
    WHERE guard and new value for taking ``quantity`` out of an ingredient's
    stock in one UPDATE. A remainder within tolerance of zero is stored as 0.
    """
    remaining = Ingredient.current_stock_quantity - quantity
    return (
        Ingredient.current_stock_quantity + STOCK_TOLERANCE >= quantity,
        case((remaining < STOCK_TOLERANCE, 0.0), else_=remaining),
    )


@dataclass
class StockRequirement:
    ingredient: Ingredient
    required: float = 0.0


def collect_recipe_requirements(lines: list[PricedLine]) -> dict[str, StockRequirement]:
    """Sum the ingredient quantities needed by every line, keyed by ingredient id."""
    requirements: dict[str, StockRequirement] = {}
    for line in lines:
        for recipe_line in line.food_item_portion.ingredients:
            requirement = requirements.setdefault(
                recipe_line.ingredient_id,
                StockRequirement(ingredient=recipe_line.ingredient),
            )
            requirement.required = round(requirement.required + recipe_line.quantity * line.quantity, 6)
    return requirements


async def consume_stock(db: AsyncSession, requirements: dict[str, StockRequirement]) -> None:
    """
    Decrement stock for every requirement inside the caller's transaction.

    Each decrement is a conditional UPDATE, so two concurrent sales can never
    drive an ingredient below zero. The caller rolls back on error.
    """
    for ingredient_id, requirement in requirements.items():
        has_enough, remaining = stock_decrement(requirement.required)
        result = await db.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id, has_enough)
            .values(current_stock_quantity=remaining)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            ingredient = requirement.ingredient
            logger.warning(
                f"Insufficient stock for {ingredient.name}: "
                f"need {requirement.required}, have {ingredient.current_stock_quantity}"
            )
            raise HTTPException(
                status_code=400,
                detail={
                    "error": f"Insufficient stock for {ingredient.name}",
                    "ingredient": ingredient.name,
                    "required": requirement.required,
                    "available": ingredient.current_stock_quantity,
                    "unit_of_measurement": ingredient.unit_of_measurement,
                },
            )


# =============================================================================
# CUSTOMERS
# =============================================================================

async def resolve_customer(db: AsyncSession, data: Optional[CustomerData]) -> Optional[Customer]:
    """
    Find the customer an order belongs to, creating one when needed.

    An explicit ``customer_id`` wins; otherwise customers are matched by
    phone number, which is unique.
    """
    if data is None:
        return None

    if data.customer_id:
        customer = await db.get(Customer, data.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        return customer

    phone = (data.phone or "").strip()
    if not phone:
        return None

    result = await db.execute(select(Customer).where(Customer.phone == phone))
    customer = result.scalar_one_or_none()

    if customer:
        if data.email and not customer.email:
            customer.email = data.email
        return customer

    name = (data.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Customer name is required")

    customer = Customer(name=name, phone=phone, email=data.email)
    db.add(customer)
    await db.flush()
    logger.info(f"Customer created: {customer.name} ({customer.phone})")
    return customer


WALK_IN_NAME = "Walk-in Customer"
WALK_IN_PHONE_PREFIX = "WALKIN-"


async def create_walk_in_customer(db: AsyncSession, data: Optional[CustomerData]) -> Customer:
    """
    Create a customer record for an anonymous counter sale so its payment
    can be stored. Each walk-in gets its own placeholder phone number.
    """
    name = ((data.name if data else None) or "").strip() or WALK_IN_NAME
    customer = Customer(
        name=name,
        phone=f"{WALK_IN_PHONE_PREFIX}{uuid.uuid4().hex[:12]}",
        email=data.email if data else None,
    )
    db.add(customer)
    await db.flush()
    logger.info(f"Walk-in customer created for counter sale: {customer.phone}")
    return customer


# =============================================================================
# COUNTER SALES
# =============================================================================

async def place_counter_order(
    db: AsyncSession,
    *,
    staff_id: str,
    items: list[OrderItemCreate],
    notes: Optional[str],
    customer_data: Optional[CustomerData],
    payment_data: Optional[PaymentData],
    order_type: OrderType,
    table_number: Optional[int] = None,
    bill_number: Optional[str] = None,
) -> Order:
    """
    Record a sale taken at the counter.

    The order is created COMPLETED, recipe stock is consumed and the payment
    recorded. Nothing is committed here; the caller commits once.
    """
    staff = await get_active_staff(db, staff_id)
    priced = await price_order_lines(db, items)

    await consume_stock(db, collect_recipe_requirements(priced.lines))

    customer = await resolve_customer(db, customer_data)
    walk_in = customer is None and payment_data is not None
    if walk_in:
        customer = await create_walk_in_customer(db, customer_data)

    order = Order(
        table_number=table_number,
        staff_id=staff.id,
        customer_id=customer.id if customer else None,
        status=OrderStatus.COMPLETED,
        order_type=order_type,
        total_amount=priced.total_amount,
        notes=notes,
        customer_name=customer.name if customer else None,
        customer_email=customer.email if customer else None,
        customer_phone=customer.phone if customer and not walk_in else None,
        bill_number=bill_number or await unique_bill_number(db),
        items=[line.to_order_item() for line in priced.lines],
    )

    if payment_data:
        order.payments.append(
            Payment(
                customer_id=customer.id,
                amount=priced.total_amount,
                received_amount=payment_data.received_amount,
                balance=payment_data.balance,
                payment_mode=payment_data.payment_mode,
                reference_number=payment_data.reference_number,
            )
        )

    db.add(order)
    await db.flush()
    return order
