"""
SQLAlchemy Database Models

Relational schema of the point-of-sale system:
- Staff accounts linked to the hosted auth provider
- Menu: categories, portions, food items and their per-portion prices
- Recipes: ingredients consumed by each food item portion
- Orders, order lines and payments
- Customers
- A single settings row (service charge, theme)
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from wokabulary.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class StaffRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    WAITER = "WAITER"
    KITCHEN = "KITCHEN"
    CASHIER = "CASHIER"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Statuses shown on the kitchen board, in board order
KITCHEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY)

# Statuses of orders that are still open
INCOMPLETE_STATUSES = KITCHEN_STATUSES


class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"


class PaymentMode(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    OTHER = "OTHER"


class ThemeColor(str, enum.Enum):
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"
    RED = "red"
    YELLOW = "yellow"
    INDIGO = "indigo"


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# STAFF
# =============================================================================

class Staff(TimestampMixin, Base):
    """
    Restaurant employee.

    Credentials live at the auth provider; ``auth_id`` links the provider's
    user id to this row.
    """
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_id = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(Enum(StaffRole), default=StaffRole.WAITER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    orders = relationship("Order", back_populates="staff")

    def __repr__(self):
        return f"<Staff {self.email} - {self.role.value}>"


# =============================================================================
# MENU
# =============================================================================

class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    food_items = relationship("FoodItem", back_populates="category", passive_deletes=True)

    def __repr__(self):
        return f"<Category {self.name}>"


class Portion(TimestampMixin, Base):
    """Named serving size (Small, Regular, Large...)."""
    __tablename__ = "portions"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    food_item_portions = relationship("FoodItemPortion", back_populates="portion", passive_deletes=True)

    def __repr__(self):
        return f"<Portion {self.name}>"


class FoodItem(TimestampMixin, Base):
    __tablename__ = "food_items"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    category = relationship("Category", back_populates="food_items", lazy="selectin")
    portions = relationship(
        "FoodItemPortion",
        back_populates="food_item",
        cascade="all, delete-orphan",
        order_by="FoodItemPortion.price",
        lazy="selectin",
    )
    order_items = relationship("OrderItem", back_populates="food_item", passive_deletes=True)

    def __repr__(self):
        return f"<FoodItem {self.name}>"


class FoodItemPortion(Base):
    """Price of one food item in one portion size."""
    __tablename__ = "food_item_portions"
    __table_args__ = (
        UniqueConstraint("food_item_id", "portion_id", name="uq_food_item_portion"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    food_item_id = Column(String(36), ForeignKey("food_items.id", ondelete="CASCADE"), nullable=False, index=True)
    portion_id = Column(String(36), ForeignKey("portions.id"), nullable=False, index=True)
    price = Column(Float, nullable=False)

    food_item = relationship("FoodItem", back_populates="portions")
    portion = relationship("Portion", back_populates="food_item_portions", lazy="selectin")
    ingredients = relationship(
        "PortionIngredient",
        back_populates="food_item_portion",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PortionIngredient(Base):
    """Recipe line: how much of an ingredient one unit of a portion consumes."""
    __tablename__ = "portion_ingredients"
    __table_args__ = (
        UniqueConstraint("food_item_portion_id", "ingredient_id", name="uq_portion_ingredient"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    food_item_portion_id = Column(
        String(36), ForeignKey("food_item_portions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id = Column(String(36), ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = Column(Float, nullable=False)

    food_item_portion = relationship("FoodItemPortion", back_populates="ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_lines", lazy="selectin")


# =============================================================================
# INVENTORY
# =============================================================================

class Ingredient(TimestampMixin, Base):
    __tablename__ = "ingredients"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    unit_of_measurement = Column(String(20), nullable=False)
    current_stock_quantity = Column(Float, default=0.0, nullable=False)
    reorder_level = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    recipe_lines = relationship("PortionIngredient", back_populates="ingredient", passive_deletes=True)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock_quantity <= self.reorder_level

    def __repr__(self):
        return f"<Ingredient {self.name} {self.current_stock_quantity}{self.unit_of_measurement}>"


# =============================================================================
# CUSTOMERS
# =============================================================================

class Customer(TimestampMixin, Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(40), unique=True, nullable=False, index=True)

    orders = relationship("Order", back_populates="customer")

    def __repr__(self):
        return f"<Customer {self.name} {self.phone}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(TimestampMixin, Base):
    """
    A customer's order, taken by a staff member.

    Waiter orders start PENDING and move through the kitchen; cashier
    orders and quick bills are created COMPLETED.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_number = Column(Integer, nullable=True)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)

    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    order_type = Column(Enum(OrderType), default=OrderType.DINE_IN, nullable=False)
    total_amount = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    # Billing contact captured when the bill is sent
    customer_name = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(40), nullable=True)
    bill_number = Column(String(40), unique=True, nullable=True)

    staff = relationship("Staff", back_populates="orders", lazy="selectin")
    customer = relationship("Customer", back_populates="orders", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_number} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    food_item_id = Column(String(36), ForeignKey("food_items.id"), nullable=False, index=True)
    portion_id = Column(String(36), ForeignKey("portions.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    special_requests = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    food_item = relationship("FoodItem", back_populates="order_items", lazy="selectin")
    portion = relationship("Portion", lazy="selectin")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    amount = Column(Float, nullable=False)
    received_amount = Column(Float, nullable=False)
    balance = Column(Float, nullable=False, default=0.0)
    payment_mode = Column(Enum(PaymentMode), default=PaymentMode.CASH, nullable=False)
    reference_number = Column(String(100), nullable=True)
    payment_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="payments")


# =============================================================================
# SETTINGS
# =============================================================================

class RestaurantSettings(TimestampMixin, Base):
    """Single row of restaurant-wide preferences edited from the admin pages."""
    __tablename__ = "settings"

    id = Column(String(36), primary_key=True, default=new_id)
    service_charge_rate = Column(Float, default=0.0, nullable=False)
    theme = Column(Enum(ThemeColor), default=ThemeColor.BLUE, nullable=False)
