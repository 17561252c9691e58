"""
Pydantic Schemas for Request/Response Validation

Request bodies are validated here before any handler runs; response
models read straight from ORM objects (``from_attributes``).
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from wokabulary.models import OrderStatus, OrderType, PaymentMode, StaffRole, ThemeColor


EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


def _clean_email(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError('Invalid email format')
    return v


def _required_text(v: Optional[str]) -> str:
    # Also rejects an explicit null sent to an update endpoint
    v = (v or "").strip()
    if not v:
        raise ValueError('must not be blank')
    return v


def _portion_name(v: Optional[str]) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError('Portion name is required')
    if len(v) < 2:
        raise ValueError('Portion name must be at least 2 characters')
    if len(v) > 50:
        raise ValueError('Portion name must be at most 50 characters')
    return v


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    auth_service: str
    notification_service: str
    timestamp: datetime


# =============================================================================
# STAFF
# =============================================================================

class StaffLogin(BaseModel):
    email: str = Field(..., min_length=1, examples=["waiter@wokabulary.com"])
    password: str = Field(..., min_length=1)


class StaffCreate(BaseModel):
    """
    New staff member.

    Either ``password`` (the account is registered with the auth provider)
    or ``auth_id`` (the account already exists there) must be given.
    """
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    role: StaffRole = StaffRole.WAITER
    phone: Optional[str] = Field(None, max_length=20)
    password: Optional[str] = Field(None, min_length=6)
    auth_id: Optional[str] = None

    strip_name = field_validator('name')(_required_text)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = _clean_email(v)
        if v is None:
            raise ValueError('Email is required')
        return v.lower()

    @model_validator(mode='after')
    def check_credentials(self) -> "StaffCreate":
        if not self.password and not self.auth_id:
            raise ValueError('Either password or auth_id is required')
        return self


class StaffSummary(ORMModel):
    id: str
    name: str
    email: str


class StaffResponse(ORMModel):
    id: str
    name: str
    email: str
    phone: Optional[str]
    role: StaffRole
    is_active: bool
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class LoginUser(ORMModel):
    id: str
    name: str
    email: str
    role: StaffRole


class LoginResponse(BaseModel):
    success: bool
    message: str
    user: LoginUser
    session: Optional[dict[str, Any]] = None


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Noodles"])
    description: Optional[str] = None

    strip_name = field_validator('name')(_required_text)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    strip_name = field_validator('name')(_required_text)


class CategorySummary(ORMModel):
    id: str
    name: str


class CategoryResponse(ORMModel):
    id: str
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# PORTIONS
# =============================================================================

class PortionCreate(BaseModel):
    name: str = Field(..., examples=["Large"])
    description: Optional[str] = None

    validate_name = field_validator('name')(_portion_name)


class PortionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    validate_name = field_validator('name')(_portion_name)


class PortionSummary(ORMModel):
    id: str
    name: str


class PortionResponse(ORMModel):
    id: str
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# FOOD ITEMS
# =============================================================================

class FoodItemPortionInput(BaseModel):
    portion_id: str = Field(..., min_length=1)
    price: float = Field(..., gt=0, examples=[850.0])


def _unique_portions(portions: Optional[List[FoodItemPortionInput]]) -> Optional[List[FoodItemPortionInput]]:
    if portions is None:
        return portions
    ids = [p.portion_id for p in portions]
    if len(ids) != len(set(ids)):
        raise ValueError('Each portion can only be priced once')
    return portions


class FoodItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Chicken Fried Rice"])
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    category_id: str = Field(..., min_length=1)
    portions: List[FoodItemPortionInput] = Field(..., min_length=1)

    strip_name = field_validator('name')(_required_text)
    check_portions = field_validator('portions')(_unique_portions)


class FoodItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    category_id: Optional[str] = None
    is_active: Optional[bool] = None
    portions: Optional[List[FoodItemPortionInput]] = None

    check_portions = field_validator('portions')(_unique_portions)


class FoodItemPortionResponse(ORMModel):
    id: str
    portion_id: str
    price: float
    portion: PortionSummary


class FoodItemResponse(ORMModel):
    id: str
    name: str
    description: Optional[str]
    image_url: Optional[str]
    category_id: str
    is_active: bool
    category: CategorySummary
    portions: List[FoodItemPortionResponse]
    created_at: datetime
    updated_at: datetime


class FoodItemSummary(ORMModel):
    id: str
    name: str
    image_url: Optional[str]
    category: Optional[CategorySummary] = None


# =============================================================================
# RECIPES
# =============================================================================

class RecipeLineInput(BaseModel):
    ingredient_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)


class RecipeUpdate(BaseModel):
    ingredients: List[RecipeLineInput]

    @field_validator('ingredients')
    @classmethod
    def unique_ingredients(cls, v: List[RecipeLineInput]) -> List[RecipeLineInput]:
        ids = [line.ingredient_id for line in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Each ingredient can only appear once in a recipe')
        return v


class IngredientSummary(ORMModel):
    id: str
    name: str
    unit_of_measurement: str


class RecipeLineResponse(ORMModel):
    ingredient_id: str
    quantity: float
    ingredient: IngredientSummary


class RecipeResponse(BaseModel):
    food_item_id: str
    portion_id: str
    ingredients: List[RecipeLineResponse]


# =============================================================================
# INGREDIENTS
# =============================================================================

class IngredientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Basmati Rice"])
    unit_of_measurement: str = Field(..., min_length=1, max_length=20, examples=["kg"])
    description: Optional[str] = None
    reorder_level: float = Field(default=0.0, ge=0)

    strip_name = field_validator('name', 'unit_of_measurement')(_required_text)


class IngredientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    unit_of_measurement: Optional[str] = Field(None, min_length=1, max_length=20)
    description: Optional[str] = None
    reorder_level: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class IngredientResponse(ORMModel):
    id: str
    name: str
    description: Optional[str]
    unit_of_measurement: str
    current_stock_quantity: float
    reorder_level: float
    is_active: bool
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class StockInRequest(BaseModel):
    quantity: float = Field(..., gt=0)


class StockOutRequest(BaseModel):
    quantity: float = Field(..., gt=0)
    reason: str

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Reason for stock out is required')
        return v


class StockInResponse(IngredientResponse):
    added_quantity: float
    previous_stock: float


class StockOutResponse(IngredientResponse):
    stock_out_quantity: float
    stock_out_reason: str
    previous_stock: float


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=40)
    email: Optional[str] = None

    strip_text = field_validator('name', 'phone')(_required_text)
    check_email = field_validator('email')(_clean_email)


class CustomerResponse(ORMModel):
    id: str
    name: str
    email: Optional[str]
    phone: str
    created_at: datetime


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single line of a new order; prices are looked up server-side."""
    food_item_id: str = Field(..., min_length=1)
    portion_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    special_requests: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Waiter order for a table."""
    table_number: int = Field(..., ge=1, examples=[7])
    staff_id: str = Field(..., min_length=1)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class CustomerData(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=40)
    customer_id: Optional[str] = None
    is_new_customer: bool = False

    check_email = field_validator('email')(_clean_email)


class PaymentData(BaseModel):
    received_amount: float = Field(..., ge=0)
    balance: float = Field(default=0.0, ge=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    reference_number: Optional[str] = Field(None, max_length=100)


class CashierOrderCreate(BaseModel):
    """Sale rung up at the counter for a table; completed immediately."""
    table_number: int = Field(..., ge=1)
    staff_id: str = Field(..., min_length=1)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)
    customer_data: Optional[CustomerData] = None
    payment_data: Optional[PaymentData] = None
    bill_number: Optional[str] = Field(None, max_length=40)


class QuickBillCreate(BaseModel):
    """Counter sale with no table (takeaway/delivery)."""
    staff_id: str = Field(..., min_length=1)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)
    customer_data: CustomerData
    payment_data: PaymentData
    order_type: OrderType = OrderType.TAKEAWAY

    @field_validator('customer_data')
    @classmethod
    def require_contact(cls, v: CustomerData) -> CustomerData:
        if not (v.name and v.name.strip()) or not (v.phone and v.phone.strip()):
            raise ValueError('Customer name and phone are required')
        return v


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(ORMModel):
    id: str
    food_item_id: str
    portion_id: str
    quantity: int
    unit_price: float
    total_price: float
    special_requests: Optional[str]
    food_item: FoodItemSummary
    portion: PortionSummary


class PaymentResponse(ORMModel):
    id: str
    amount: float
    received_amount: float
    balance: float
    payment_mode: PaymentMode
    reference_number: Optional[str]
    payment_date: datetime


class OrderResponse(ORMModel):
    id: int
    table_number: Optional[int]
    status: OrderStatus
    order_type: OrderType
    total_amount: float
    notes: Optional[str]
    customer_name: Optional[str]
    customer_email: Optional[str]
    customer_phone: Optional[str]
    bill_number: Optional[str]
    staff: StaffSummary
    customer: Optional[CustomerResponse]
    items: List[OrderItemResponse]
    payments: List[PaymentResponse]
    created_at: datetime
    updated_at: datetime


class OrderCancelResponse(BaseModel):
    message: str
    order: OrderResponse


# =============================================================================
# BILLS
# =============================================================================

class BillRequest(BaseModel):
    customer_email: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=40)

    check_email = field_validator('customer_email')(_clean_email)


class BillSentResponse(BaseModel):
    message: str
    bill_url: str
    email_sent: bool
    sms_sent: bool


class BillTotals(BaseModel):
    subtotal: float
    service_charge_rate: float
    service_charge: float
    total: float


class BillResponse(BaseModel):
    restaurant_name: str
    currency_symbol: str
    bill_url: str
    order: OrderResponse
    totals: BillTotals


# =============================================================================
# SETTINGS
# =============================================================================

class SettingsUpdate(BaseModel):
    theme: Optional[ThemeColor] = None
    service_charge_rate: Optional[float] = Field(None, ge=0, le=100)


class SettingsResponse(ORMModel):
    id: str
    service_charge_rate: float
    theme: ThemeColor
    created_at: datetime
    updated_at: datetime
