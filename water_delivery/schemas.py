# schemas.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import (
    AssignmentStatus, InventoryChange, OrderStatus, PaymentMethod, ProductCategory, Role, WaterType,
)


# ------------------------- CATALOG -------------------------
class ZoneCreate(BaseModel):
    name: str
    delivery_fee: float = Field(0, ge=0)
    is_active: bool = True


class Zone(ZoneCreate):
    id: int


class ProductCreate(BaseModel):
    name: str
    category: ProductCategory = ProductCategory.water
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    stock_quantity: int = Field(0, ge=0)
    unit: str = "gallon"
    low_stock_threshold: int = Field(10, ge=0)
    is_active: bool = True


class Product(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None
    price: float
    stock_quantity: int
    unit: str
    low_stock_threshold: int
    is_active: bool = True


class StockAdjust(BaseModel):
    quantity: int
    type: InventoryChange
    reason: str = Field(..., max_length=255)


class InventoryItem(BaseModel):
    id: int
    name: str
    category: str
    stock_quantity: int
    low_stock_threshold: int
    is_low_stock: bool
    unit: str


class InventoryLog(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    change_quantity: int
    type: str
    reason: str
    performed_by: Optional[int] = None
    created_at: Optional[datetime] = None


# ------------------------- USERS -------------------------
class UserCreate(BaseModel):
    name: str
    email: EmailStr
    role: Role = Role.customer
    phone: Optional[str] = None
    address: Optional[str] = None


class User(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None
    points_balance: int = 0


# ------------------------- ORDERS -------------------------
class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    zone_id: int
    delivery_address: str = Field(..., min_length=1, max_length=500)
    payment_method: PaymentMethod = PaymentMethod.cod
    preferred_time: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class ProductSummary(BaseModel):
    id: int
    name: str
    category: str
    price: float
    unit: str


class CustomerSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ZoneSummary(BaseModel):
    id: int
    name: str
    delivery_fee: float


class OrderItem(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_price: float
    subtotal: float
    product: Optional[ProductSummary] = None


class AssignmentSummary(BaseModel):
    id: int
    status: str
    delivery_staff_id: Optional[int] = None
    delivery_staff_name: Optional[str] = None
    cancellation_reason: Optional[str] = None


class Order(BaseModel):
    """An order with its customer, zone, line items and products loaded."""
    id: int
    customer_id: int
    status: OrderStatus
    payment_method: str
    payment_status: str
    zone_id: Optional[int] = None
    delivery_address: str
    preferred_time: Optional[str] = None
    notes: Optional[str] = None
    subtotal: float
    delivery_fee: float
    total_amount: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer: Optional[CustomerSummary] = None
    zone: Optional[ZoneSummary] = None
    items: List[OrderItem] = []
    delivery_assignment: Optional[AssignmentSummary] = None


# ------------------------- DELIVERY -------------------------
class DeliveryStatusUpdate(BaseModel):
    status: AssignmentStatus


class DeliveryAssignment(BaseModel):
    id: int
    order_id: int
    delivery_staff_id: Optional[int] = None
    status: str
    cancellation_reason: Optional[str] = None
    order: Optional[Order] = None


class DeliveryQueue(BaseModel):
    assigned: List[DeliveryAssignment]
    unassigned: List[DeliveryAssignment]


class DeliveryStats(BaseModel):
    today_delivered: int
    total_delivered: int
    pending: int


# ------------------------- NOTIFICATIONS -------------------------
class Notification(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    reference_id: Optional[int] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


class NotificationPage(BaseModel):
    data: List[Notification]
    unread_count: int
    total: int


# ------------------------- LOYALTY -------------------------
class LoyaltyLog(BaseModel):
    id: int
    customer_id: int
    points_change: int
    reason: str
    reference_id: Optional[int] = None
    created_at: Optional[datetime] = None


class LoyaltySummary(BaseModel):
    points_balance: int
    history: List[LoyaltyLog]


class RedeemRequest(BaseModel):
    points: int


class RedeemResult(BaseModel):
    discount_amount: float
    points_balance: int


# ------------------------- REFILLS -------------------------
class RefillCreate(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=255)
    water_type: WaterType
    gallons_count: int = Field(..., ge=1)
    price_per_gallon: float = Field(..., ge=0.01)


class RefillTransaction(BaseModel):
    id: int
    staff_id: int
    customer_name: str
    water_type: str
    gallons_count: int
    price_per_gallon: float
    total: float
    created_at: Optional[datetime] = None


class RefillSummary(BaseModel):
    transactions: int
    gallons: int
    revenue: float


# ------------------------- SUBSCRIPTIONS -------------------------
class SubscriptionCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    zone_id: int
    delivery_address: str = Field(..., min_length=1, max_length=500)
    frequency_days: int = Field(..., ge=1)
    next_delivery_date: Optional[date] = None


class Subscription(BaseModel):
    id: int
    customer_id: int
    product_id: int
    quantity: int
    zone_id: int
    delivery_address: str
    frequency_days: int
    next_delivery_date: date
    is_active: bool
