# marketplace/domain/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, model_validator

T = TypeVar("T")

# money stays Decimal in python and goes out as a JSON number
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]
HHMM = Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]

BusinessType = Literal["grocery", "electronics", "clothing", "pharmacy", "general"]
StoreCategory = Literal[
    "grocery", "restaurant", "pharmacy", "electronics", "clothing", "stationery", "bakery", "other"
]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
PaymentMethod = Literal["card", "cod", "wallet"]
TicketCategory = Literal["order", "payment", "delivery", "product", "account", "other"]
TicketPriority = Literal["low", "medium", "high", "urgent"]


class Envelope(BaseModel, Generic[T]):
    """Every JSON response: {success, message, data}."""

    success: bool = True
    message: str = "OK"
    data: Optional[T] = None


class Page(BaseModel, Generic[T]):
    """Paginated list (response)."""

    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class ORMModel(BaseModel):
    """Base for responses built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# identity
# ---------------------------------------------------------------------------
class LoginIn(BaseModel):
    """Schema for logging in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordIn(BaseModel):
    """Schema for changing the password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=72)


class CustomerRegisterIn(BaseModel):
    """Schema for customer registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)


class DeliveryArea(BaseModel):
    """One delivery area of a retailer."""

    area: str = Field(..., min_length=1)
    delivery_fee: Money = Field(..., ge=0)
    min_order_amount: Money = Field(..., ge=0)
    estimated_delivery_minutes: int = Field(..., gt=0)


class RetailerRegisterIn(BaseModel):
    """Schema for retailer registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    business_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    phone: str = Field(..., min_length=3, max_length=30)
    business_type: BusinessType
    tax_id: str = Field(..., min_length=1, max_length=50)
    delivery_radius_km: float = Field(5, gt=0)
    min_order_amount: Money = Field(Decimal("0"), ge=0)
    delivery_areas: List[DeliveryArea] = Field(default_factory=list)


class UserOut(ORMModel):
    """Schema for a user account (response)."""

    id: int
    email: str
    role: str
    is_active: bool
    created_at: datetime


class CustomerOut(ORMModel):
    """Schema for a customer profile (response)."""

    user_id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None
    total_orders: int
    total_spent: Money
    last_order_at: Optional[datetime] = None


class CustomerUpdate(BaseModel):
    """Schema for updating a customer profile."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)


class RetailerOut(ORMModel):
    """Schema for a retailer profile (response)."""

    user_id: int
    business_name: str
    description: Optional[str] = None
    phone: str
    business_type: str
    is_verified: bool
    delivery_radius_km: float
    min_order_amount: Money
    delivery_areas: List[DeliveryArea] = []
    average_rating: float
    total_ratings: int
    total_orders: int
    total_revenue: Money


class RetailerUpdate(BaseModel):
    """Schema for updating a retailer profile."""

    business_name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=3, max_length=30)
    business_type: Optional[BusinessType] = None
    delivery_radius_km: Optional[float] = Field(None, gt=0)
    min_order_amount: Optional[Money] = Field(None, ge=0)
    delivery_areas: Optional[List[DeliveryArea]] = None


class AuthOut(BaseModel):
    """Token plus the account and its profile (response)."""

    token: str
    user: UserOut
    customer: Optional[CustomerOut] = None
    retailer: Optional[RetailerOut] = None


# ---------------------------------------------------------------------------
# locations
# ---------------------------------------------------------------------------
class DayHours(BaseModel):
    """Opening hours of one weekday."""

    open: HHMM
    close: HHMM
    is_open: bool = True


class LocationIn(BaseModel):
    """Coordinates are optional; without them the address is geocoded."""

    label: Optional[str] = Field(None, max_length=50)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: bool = False

    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class StoreLocationIn(LocationIn):
    """Schema for a store location; adds store fields."""

    store_name: str = Field(..., min_length=1, max_length=200)
    business_category: StoreCategory
    operating_hours: dict[Weekday, DayHours] = Field(default_factory=dict)
    features: List[Literal["parking", "wheelchair_accessible", "delivery", "pickup", "wifi"]] = Field(
        default_factory=list
    )


class LocationUpdate(BaseModel):
    """Schema for updating a location."""

    label: Optional[str] = Field(None, max_length=50)
    street: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_default: Optional[bool] = None
    # retailer stores only
    store_name: Optional[str] = Field(None, min_length=1, max_length=200)
    business_category: Optional[StoreCategory] = None
    operating_hours: Optional[dict[Weekday, DayHours]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class LocationOut(ORMModel):
    """Schema for a location (response)."""

    id: int
    owner_id: int
    owner_type: str
    label: Optional[str] = None
    street: str
    city: str
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    formatted_address: Optional[str] = None
    latitude: float
    longitude: float
    is_default: bool
    store_name: Optional[str] = None
    business_category: Optional[str] = None
    operating_hours: Optional[dict] = None
    features: List[str] = []
    is_active: bool


class StoreSummary(ORMModel):
    """Schema for a retailer shown in store lists (response)."""

    user_id: int
    business_name: str
    phone: str
    business_type: str
    average_rating: float
    total_ratings: int


class NextOpening(BaseModel):
    """Next opening day and time."""

    day: str
    time: str


class NearbyStoreOut(BaseModel):
    """Schema for a nearby store search hit (response)."""

    location: LocationOut
    retailer: StoreSummary
    distance: int
    is_open: bool
    next_opening: Optional[NextOpening] = None


class StoreDetailOut(BaseModel):
    """Schema for a store page (response)."""

    retailer: RetailerOut
    locations: List[LocationOut]


class ReviewIn(BaseModel):
    """Schema for reviewing a store."""

    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewOut(ORMModel):
    """Schema for a review (response)."""

    id: int
    retailer_id: int
    customer_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# catalog
# ---------------------------------------------------------------------------
class ProductCreate(BaseModel):
    """Schema for creating a product."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    price: Money = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    low_stock_threshold: int = Field(5, ge=0)
    is_active: bool = True


class ProductUpdate(BaseModel):
    """Stock is absent on purpose: only orders move it."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Money] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)


class ProductStatusIn(BaseModel):
    """Schema for activating or deactivating a product."""

    is_active: bool


class ProductOut(ORMModel):
    """Schema for a product (response)."""

    id: int
    retailer_id: int
    name: str
    description: Optional[str] = None
    category: str
    price: Money
    stock: int
    low_stock_threshold: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# cart
# ---------------------------------------------------------------------------
class CartItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class CartQuantityIn(BaseModel):
    """Schema for changing a cart line quantity."""

    # zero or less removes the line
    quantity: int


class CartItemOut(BaseModel):
    """Schema for a cart line (response)."""

    product_id: int
    name: str
    quantity: int
    price: Money
    line_total: Money


class CartOut(BaseModel):
    """Schema for the cart (response)."""

    customer_id: int
    items: List[CartItemOut]
    total: Money
    updated_at: Optional[datetime] = None


class CartTotalOut(BaseModel):
    """Schema for the cart total (response)."""

    total: Money
    item_count: int


# ---------------------------------------------------------------------------
# orders
# ---------------------------------------------------------------------------
class ShippingAddress(BaseModel):
    """Schema for the shipping address of an order."""

    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class OrderItemIn(BaseModel):
    """Schema for one order line."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    """Schema for placing an order."""

    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "card"


class CheckoutIn(BaseModel):
    """Schema for checking out the cart."""

    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "card"


class OrderStatusIn(BaseModel):
    """Schema for changing the order status."""

    status: str
    note: Optional[str] = Field(None, max_length=255)


class PaymentStatusIn(BaseModel):
    """Schema for changing the payment status."""

    status: str
    transaction_id: Optional[str] = None


class OrderItemOut(ORMModel):
    """Schema for an order line (response)."""

    product_id: int
    name: str
    quantity: int
    price: Money


class StatusEventOut(ORMModel):
    """Schema for one status history entry (response)."""

    status: str
    note: Optional[str] = None
    created_at: datetime


class OrderOut(ORMModel):
    """Schema for an order (response)."""

    id: int
    order_number: str
    customer_id: int
    retailer_id: int
    status: str
    payment_status: str
    payment_method: str
    payment_id: Optional[str] = None
    total_amount: Money
    shipping_address: dict
    items: List[OrderItemOut]
    status_history: List[StatusEventOut] = []
    created_at: datetime
    updated_at: datetime


class OrderAnalyticsOut(BaseModel):
    """Schema for order analytics (response)."""

    total_orders: int
    total_revenue: Money
    average_order_value: Money
    orders_by_status: dict[str, int]


# ---------------------------------------------------------------------------
# payments
# ---------------------------------------------------------------------------
class PaymentIntentOut(BaseModel):
    """Schema for a started payment (response)."""

    order_id: int
    payment_id: str
    client_secret: Optional[str] = None
    amount: int
    currency: str


class VerifyPaymentIn(BaseModel):
    """Schema for verifying a payment."""

    payment_id: str = Field(..., min_length=1)


class RefundOut(BaseModel):
    """Schema for a refund (response)."""

    order_id: int
    refund_id: str
    payment_status: str


class PaymentDetailsOut(BaseModel):
    """Schema for payment details (response)."""

    payment_id: str
    status: str
    amount: int
    currency: str
    order_id: Optional[int] = None


# ---------------------------------------------------------------------------
# support
# ---------------------------------------------------------------------------
class TicketCreate(BaseModel):
    """Schema for opening a support ticket."""

    subject: str = Field(..., min_length=1, max_length=200)
    category: TicketCategory
    priority: TicketPriority = "medium"
    message: str = Field(..., min_length=1)
    order_id: Optional[int] = None
    retailer_id: Optional[int] = None


class TicketMessageIn(BaseModel):
    """Schema for a ticket message."""

    message: str = Field(..., min_length=1)
    attachments: List[str] = Field(default_factory=list)


class TicketStatusIn(BaseModel):
    """Schema for changing the ticket status."""

    status: str
    resolution: Optional[str] = None


class TicketAssignIn(BaseModel):
    """Schema for assigning a ticket."""

    assigned_to: int = Field(..., gt=0)


class FeedbackIn(BaseModel):
    """Schema for ticket feedback."""

    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class TicketMessageOut(ORMModel):
    """Schema for a ticket message (response)."""

    id: int
    sender_id: int
    sender_type: str
    message: str
    attachments: List[str] = []
    created_at: datetime


class TicketOut(ORMModel):
    """Schema for a ticket (response)."""

    id: int
    customer_id: int
    retailer_id: Optional[int] = None
    order_id: Optional[int] = None
    assigned_to: Optional[int] = None
    subject: str
    category: str
    priority: str
    status: str
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    satisfaction_rating: Optional[int] = None
    satisfaction_feedback: Optional[str] = None
    messages: List[TicketMessageOut] = []
    created_at: datetime


# ---------------------------------------------------------------------------
# analytics / dashboard
# ---------------------------------------------------------------------------
class SnapshotOut(ORMModel):
    """Schema for a daily analytics snapshot (response)."""

    retailer_id: int
    date: date
    metrics: dict
    product_metrics: List[dict]
    category_metrics: List[dict]


class DashboardOut(BaseModel):
    """Schema for the retailer dashboard (response)."""

    retailer: RetailerOut
    active_products: int
    low_stock_products: int
    recent_orders: List[OrderOut]
