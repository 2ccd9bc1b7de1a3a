# marketplace/api/routers/orders.py
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import (
    current_customer,
    current_retailer,
    get_current_user,
    get_lock_service,
    get_notifier,
    require_roles,
)
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    CheckoutIn,
    Envelope,
    OrderAnalyticsOut,
    OrderCreate,
    OrderOut,
    OrderStatusIn,
    Page,
    PaymentStatusIn,
)
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])

retailer_or_admin = require_roles("retailer", "admin")


def get_service(db: Session, notifier=None, lock_service=None):
    return OrderService(db, notifier=notifier, lock_service=lock_service)


@router.post("", response_model=Envelope[OrderOut], status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """
    Places an order; stock is decremented in the same transaction.
    Every item must come from the same retailer.
    """
    order = get_service(db, notifier).place_order(
        user.id,
        [(i.product_id, i.quantity) for i in payload.items],
        payload.shipping_address.model_dump(mode="json"),
        payload.payment_method,
    )
    return ok(order, "Order created")


@router.post("/checkout", response_model=Envelope[OrderOut], status_code=201)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    lock_service=Depends(get_lock_service),
):
    """Turns the customer's cart into an order and empties the cart."""
    order = get_service(db, notifier, lock_service).checkout(
        user.id,
        payload.shipping_address.model_dump(mode="json"),
        payload.payment_method,
    )
    return ok(order, "Order created")


@router.get("", response_model=Envelope[Page[OrderOut]])
def customer_orders(
    status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).customer_orders(user.id, status, page, limit))


@router.get("/retailer", response_model=Envelope[Page[OrderOut]])
def retailer_orders(
    status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).retailer_orders(user.id, status, page, limit))


@router.get("/retailer/analytics", response_model=Envelope[OrderAnalyticsOut])
def order_analytics(
    start_date: date | None = None,
    end_date: date | None = None,
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
):
    end_date = end_date or datetime.now(timezone.utc).date()
    start_date = start_date or end_date - timedelta(days=30)
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
    return ok(get_service(db).analytics(user.id, start, end))


@router.get("/{order_id}", response_model=Envelope[OrderOut])
def get_order(order_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok(get_service(db).get_order(user, order_id))


@router.post("/{order_id}/cancel", response_model=Envelope[OrderOut])
def cancel_order(
    order_id: int,
    reason: str | None = None,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return ok(get_service(db, notifier).cancel_order(user.id, order_id, reason), "Order cancelled")


@router.patch("/{order_id}/status", response_model=Envelope[OrderOut])
def update_status(
    order_id: int,
    payload: OrderStatusIn,
    user: UserModel = Depends(retailer_or_admin),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    order = get_service(db, notifier).update_status(user, order_id, payload.status, payload.note)
    return ok(order, "Order status updated")


@router.put("/{order_id}/payment", response_model=Envelope[OrderOut])
def update_payment_status(
    order_id: int,
    payload: PaymentStatusIn,
    user: UserModel = Depends(retailer_or_admin),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    order = get_service(db, notifier).update_payment_status(user, order_id, payload.status, payload.transaction_id)
    return ok(order, "Payment status updated")
