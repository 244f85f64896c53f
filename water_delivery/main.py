# main.py
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, Depends, Query, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from . import catalog, delivery, inventory, loyalty, notifications, orders, refills, subscriptions
from .auth import (
    admin_required, customer_required, decode_jwt, delivery_required, get_current_user, refiller_required,
)
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import database, init_db
from .errors import DomainError, NotFoundError, ReactionError
from .event_handlers import register_reactions
from .events import event_bus
from .models import Role
from .schemas import (
    DeliveryAssignment, DeliveryQueue, DeliveryStats, DeliveryStatusUpdate, InventoryItem, InventoryLog,
    LoyaltySummary, NotificationPage, Order, OrderCreate, OrderStatusUpdate, Product, ProductCreate,
    RedeemRequest, RedeemResult, RefillCreate, RefillSummary, RefillTransaction, StockAdjust,
    Subscription, SubscriptionCreate, User, UserCreate, Zone, ZoneCreate,
)
from .trace import get_or_create_trace_id
from .ws_manager import manager, DELIVERY_TEAM_CHANNEL, order_channel

logging.basicConfig(level=LOG_LEVEL, format="[%(asctime)s] [%(levelname)s] %(message)s")
logger = logging.getLogger("water-delivery")

# reactions are attached once per process
register_reactions(event_bus)


# -------------------
# Startup / Shutdown Lifecycle
# -------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Connecting database...")
    await database.connect()
    init_db()
    logger.info("Startup complete.")
    yield
    logger.info("Disconnecting database...")
    await database.disconnect()


app = FastAPI(title="Water Delivery Service", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# -------------------
# Middleware: assign trace_id for HTTP requests
# -------------------
@app.middleware("http")
async def add_trace_to_request(request: Request, call_next):
    trace_id = get_or_create_trace_id(request.headers.get("X-Trace-Id"))
    request.state.trace_id = trace_id
    response = await call_next(request)
    response.headers["X-Trace-Id"] = trace_id
    return response


# -------------------
# Error mapping
# -------------------
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(ReactionError)
async def reaction_error_handler(request: Request, exc: ReactionError) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", None)
    logger.error(f"[TRACE {trace_id}] ❌ {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# -------------------
# Health / Metrics / Public catalog
# -------------------
@app.get("/health")
async def health():
    return {"status": "water-delivery healthy"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/products", response_model=List[Product])
async def public_products(category: Optional[str] = None, search: Optional[str] = None):
    return await catalog.list_products(category=category, active_only=True, search=search)


@app.get("/zones", response_model=List[Zone])
async def public_zones():
    return await catalog.list_zones(active_only=True)


# -------------------
# Notifications (any authenticated role)
# -------------------
@app.get("/notifications", response_model=NotificationPage)
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(get_current_user),
):
    return await notifications.list_for_user(user["id"], limit=limit, offset=offset)


@app.post("/notifications/read-all")
async def read_all_notifications(user=Depends(get_current_user)):
    await notifications.mark_all_read(user["id"])
    return {"message": "All notifications marked as read."}


@app.post("/notifications/{notification_id}/read")
async def read_notification(notification_id: int, user=Depends(get_current_user)):
    await notifications.mark_read(notification_id, user["id"])
    return {"message": "Notification marked as read."}


# ------------------------- CUSTOMER: ORDERS -------------------------
@app.get("/customer/orders", response_model=List[Order])
async def customer_orders(
    status: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(customer_required),
):
    return await orders.list_orders(customer_id=user["id"], status=status, limit=limit, offset=offset)


@app.post("/customer/orders", response_model=Order, status_code=201)
async def customer_place_order(body: OrderCreate, user=Depends(customer_required)):
    return await orders.place_order(user["id"], body, trace_id=user["trace_id"])


@app.get("/customer/orders/{order_id}", response_model=Order)
async def customer_order(order_id: int, user=Depends(customer_required)):
    return await orders.get_customer_order(order_id, user["id"])


@app.post("/customer/orders/{order_id}/cancel", response_model=Order)
async def customer_cancel_order(order_id: int, user=Depends(customer_required)):
    return await orders.cancel_order(order_id, user["id"], trace_id=user["trace_id"])


# ------------------------- CUSTOMER: LOYALTY -------------------------
@app.get("/customer/loyalty", response_model=LoyaltySummary)
async def customer_loyalty(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(customer_required),
):
    return {
        "points_balance": await loyalty.get_balance(user["id"]),
        "history": await loyalty.history(user["id"], limit=limit, offset=offset),
    }


@app.post("/customer/loyalty/redeem", response_model=RedeemResult)
async def customer_redeem(body: RedeemRequest, user=Depends(customer_required)):
    return await loyalty.redeem_points(user["id"], body.points)


# ------------------------- CUSTOMER: SUBSCRIPTIONS -------------------------
@app.get("/customer/subscriptions", response_model=List[Subscription])
async def customer_subscriptions(user=Depends(customer_required)):
    return await subscriptions.list_for_customer(user["id"])


@app.post("/customer/subscriptions", response_model=Subscription, status_code=201)
async def customer_subscribe(body: SubscriptionCreate, user=Depends(customer_required)):
    return await subscriptions.create(user["id"], body)


@app.post("/customer/subscriptions/{subscription_id}/toggle", response_model=Subscription)
async def customer_toggle_subscription(subscription_id: int, user=Depends(customer_required)):
    return await subscriptions.toggle(subscription_id, user["id"])


@app.delete("/customer/subscriptions/{subscription_id}")
async def customer_delete_subscription(subscription_id: int, user=Depends(customer_required)):
    await subscriptions.delete(subscription_id, user["id"])
    return {"message": "Subscription deleted."}


# ------------------------- DELIVERY -------------------------
@app.get("/delivery/queue", response_model=DeliveryQueue)
async def delivery_queue(user=Depends(delivery_required)):
    return await delivery.queue(user["id"])


@app.get("/delivery/stats", response_model=DeliveryStats)
async def delivery_stats(user=Depends(delivery_required)):
    return await delivery.stats(user["id"])


@app.post("/delivery/assignments/{assignment_id}/accept", response_model=DeliveryAssignment)
async def delivery_accept(assignment_id: int, user=Depends(delivery_required)):
    return await delivery.accept(assignment_id, user["id"], trace_id=user["trace_id"])


@app.put("/delivery/assignments/{assignment_id}/status", response_model=DeliveryAssignment)
async def delivery_update_status(assignment_id: int, body: DeliveryStatusUpdate, user=Depends(delivery_required)):
    return await delivery.update_status(assignment_id, user["id"], body.status.value, trace_id=user["trace_id"])


# ------------------------- REFILLER -------------------------
@app.get("/refiller/transactions", response_model=List[RefillTransaction])
async def refiller_transactions(
    day: Optional[date] = Query(None, alias="date"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(refiller_required),
):
    return await refills.list_for_staff(user["id"], day=day, limit=limit, offset=offset)


@app.post("/refiller/transactions", response_model=RefillTransaction, status_code=201)
async def refiller_record(body: RefillCreate, user=Depends(refiller_required)):
    return await refills.record(user["id"], body)


@app.get("/refiller/summary", response_model=RefillSummary)
async def refiller_summary(user=Depends(refiller_required)):
    return await refills.summary(user["id"])


# ------------------------- ADMIN: ORDERS -------------------------
@app.get("/admin/orders", response_model=List[Order])
async def admin_orders(
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(admin_required),
):
    return await orders.list_orders(
        status=status, date_from=date_from, date_to=date_to, limit=limit, offset=offset
    )


@app.get("/admin/orders/{order_id}", response_model=Order)
async def admin_order(order_id: int, user=Depends(admin_required)):
    return await orders.load_order_detail(order_id)


@app.put("/admin/orders/{order_id}/status", response_model=Order)
async def admin_update_order_status(order_id: int, body: OrderStatusUpdate, user=Depends(admin_required)):
    return await orders.override_status(order_id, body.status.value, trace_id=user["trace_id"])


# ------------------------- ADMIN: CATALOG & INVENTORY -------------------------
@app.get("/admin/products", response_model=List[Product])
async def admin_products(category: Optional[str] = None, search: Optional[str] = None, user=Depends(admin_required)):
    return await catalog.list_products(category=category, search=search)


@app.post("/admin/products", response_model=Product, status_code=201)
async def admin_create_product(body: ProductCreate, user=Depends(admin_required)):
    return await catalog.create_product(body)


@app.get("/admin/products/{product_id}", response_model=Product)
async def admin_product(product_id: int, user=Depends(admin_required)):
    return await inventory.get_product(product_id)


@app.post("/admin/products/{product_id}/stock", response_model=Product)
async def admin_adjust_stock(product_id: int, body: StockAdjust, user=Depends(admin_required)):
    return await inventory.adjust_stock(product_id, body.quantity, body.type.value, body.reason, performed_by=user["id"])


@app.get("/admin/inventory", response_model=List[InventoryItem])
async def admin_inventory(low_stock: bool = False, user=Depends(admin_required)):
    return await inventory.overview(low_stock_only=low_stock)


@app.get("/admin/inventory/logs", response_model=List[InventoryLog])
async def admin_inventory_logs(
    product_id: Optional[int] = None,
    type: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user=Depends(admin_required),
):
    return await inventory.list_logs(product_id=product_id, type_=type, limit=limit, offset=offset)


# ------------------------- ADMIN: USERS & ZONES -------------------------
@app.get("/admin/users", response_model=List[User])
async def admin_users(role: Optional[str] = None, user=Depends(admin_required)):
    return await catalog.list_users(role=role)


@app.post("/admin/users", response_model=User, status_code=201)
async def admin_create_user(body: UserCreate, user=Depends(admin_required)):
    return await catalog.create_user(body)


@app.post("/admin/zones", response_model=Zone, status_code=201)
async def admin_create_zone(body: ZoneCreate, user=Depends(admin_required)):
    return await catalog.create_zone(body)


# -------------------------
# WebSocket channels
# -------------------------
async def can_join(channel: str, claims: Optional[dict]) -> bool:
    if claims is None:
        return False
    if claims["role"] == Role.admin.value:
        return True
    if channel == DELIVERY_TEAM_CHANNEL:
        return claims["role"] == Role.delivery.value

    order_id = int(channel.split(".", 1)[1])
    try:
        order = await orders.load_order_detail(order_id)
    except NotFoundError:
        return False
    if order.customer_id == claims["id"]:
        return True
    assignment = order.delivery_assignment
    return assignment is not None and assignment.delivery_staff_id == claims["id"]


async def serve_channel(websocket: WebSocket, channel: str):
    claims = decode_jwt(websocket.query_params.get("token") or "")
    if not await can_join(channel, claims):
        logger.warning(f"[WS] Rejected subscription to {channel}")
        await websocket.close(code=1008)
        return

    await manager.connect(channel, websocket)
    try:
        while True:
            await websocket.receive_text()
            # Heartbeat
            await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(channel, websocket)


@app.websocket("/ws/delivery-team")
async def delivery_team_ws(websocket: WebSocket):
    await serve_channel(websocket, DELIVERY_TEAM_CHANNEL)


@app.websocket("/ws/orders/{order_id}")
async def order_ws(websocket: WebSocket, order_id: int):
    await serve_channel(websocket, order_channel(order_id))
