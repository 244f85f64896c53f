# models.py
from enum import Enum

from sqlalchemy import (
    Table, Column, Integer, String, Text, Float, Boolean, Date, DateTime, ForeignKey,
)

from .database import metadata  # same metadata instance used for all tables


# -------------------------
# Enums
# -------------------------
class Role(str, Enum):
    admin = "admin"
    refiller = "refiller"
    delivery = "delivery"
    customer = "customer"


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    out_for_delivery = "out_for_delivery"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    cod = "cod"
    gcash = "gcash"


class PaymentStatus(str, Enum):
    unpaid = "unpaid"
    paid = "paid"


class ProductCategory(str, Enum):
    water = "water"
    other = "other"


class AssignmentStatus(str, Enum):
    pending = "pending"
    assigned = "assigned"
    in_transit = "in_transit"
    delivered = "delivered"
    cancelled = "cancelled"


class InventoryChange(str, Enum):
    stock_in = "stock_in"
    stock_out = "stock_out"
    adjustment = "adjustment"


class WaterType(str, Enum):
    purified = "purified"
    alkaline = "alkaline"
    mineral = "mineral"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False, unique=True, index=True),
    Column("phone", String, nullable=True),
    Column("address", Text, nullable=True),
    Column("role", String, nullable=False, default=Role.customer.value),
    Column("points_balance", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=True),
)

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
zones = Table(
    "zones",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("delivery_fee", Float, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("category", String, nullable=False, default=ProductCategory.water.value),
    Column("description", Text, nullable=True),
    Column("price", Float, nullable=False),
    Column("stock_quantity", Integer, nullable=False, default=0),
    Column("unit", String, nullable=False, default="gallon"),
    Column("low_stock_threshold", Integer, nullable=False, default=10),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=True),
)

# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("status", String, nullable=False, default=OrderStatus.pending.value),
    Column("payment_method", String, nullable=False, default=PaymentMethod.cod.value),
    Column("payment_status", String, nullable=False, default=PaymentStatus.unpaid.value),
    Column("zone_id", Integer, ForeignKey("zones.id"), nullable=True),
    Column("delivery_address", Text, nullable=False),
    Column("preferred_time", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("subtotal", Float, nullable=False),
    Column("delivery_fee", Float, nullable=False, default=0),
    Column("total_amount", Float, nullable=False),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Float, nullable=False),
    Column("subtotal", Float, nullable=False),
)

delivery_assignments = Table(
    "delivery_assignments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False, unique=True),
    Column("delivery_staff_id", Integer, ForeignKey("users.id"), nullable=True, index=True),
    Column("status", String, nullable=False, default=AssignmentStatus.pending.value),
    Column("cancellation_reason", String, nullable=True),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

# ---------------------------------------------------------------------------
# Notifications Table
# ---------------------------------------------------------------------------
notifications = Table(
    "notifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String, nullable=False),
    Column("message", Text, nullable=False),
    Column("type", String, nullable=False),
    Column("reference_id", Integer, nullable=True),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=True),
)

# ---------------------------------------------------------------------------
# Ledgers (append-only)
# ---------------------------------------------------------------------------
inventory_logs = Table(
    "inventory_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", Integer, nullable=False, index=True),
    Column("change_quantity", Integer, nullable=False),
    Column("type", String, nullable=False),
    Column("reason", String, nullable=False),
    Column("performed_by", Integer, nullable=True),
    Column("created_at", DateTime, nullable=True),
)

loyalty_point_logs = Table(
    "loyalty_point_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, nullable=False, index=True),
    Column("points_change", Integer, nullable=False),
    Column("reason", String, nullable=False),
    Column("reference_id", Integer, nullable=True),
    Column("created_at", DateTime, nullable=True),
)

# ---------------------------------------------------------------------------
# Staff / recurring
# ---------------------------------------------------------------------------
refill_transactions = Table(
    "refill_transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("staff_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("customer_name", String, nullable=False, default="Walk-in"),
    Column("water_type", String, nullable=False),
    Column("gallons_count", Integer, nullable=False),
    Column("price_per_gallon", Float, nullable=False),
    Column("total", Float, nullable=False),
    Column("created_at", DateTime, nullable=True),
)

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("zone_id", Integer, ForeignKey("zones.id"), nullable=False),
    Column("delivery_address", Text, nullable=False),
    Column("frequency_days", Integer, nullable=False),
    Column("next_delivery_date", Date, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=True),
)
