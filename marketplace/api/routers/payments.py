# marketplace/api/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from marketplace.api.deps import current_customer, get_current_user, get_notifier, get_payment_gateway, require_roles
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    Envelope,
    OrderOut,
    PaymentDetailsOut,
    PaymentIntentOut,
    RefundOut,
    VerifyPaymentIn,
)
from marketplace.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(db: Session, gateway, notifier=None):
    return PaymentService(db, gateway, notifier)


@router.post("/orders/{order_id}/create", response_model=Envelope[PaymentIntentOut], status_code=201)
def create_payment(
    order_id: int,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    return ok(get_service(db, gateway, notifier).create_payment(user.id, order_id), "Payment initiated")


@router.post("/verify", response_model=Envelope[OrderOut])
def verify_payment(
    payload: VerifyPaymentIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    return ok(get_service(db, gateway, notifier).verify_payment(user.id, payload.payment_id))


@router.post("/orders/{order_id}/refund", response_model=Envelope[RefundOut])
def refund(
    order_id: int,
    user: UserModel = Depends(require_roles("customer", "admin")),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    return ok(get_service(db, gateway, notifier).refund(user, order_id), "Refund processed")


@router.post("/webhook")
async def webhook(
    request: Request,
    stripe_signature: str | None = Header(None),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    # the signature covers the exact bytes, so read the raw body
    payload = await request.body()
    result = await run_in_threadpool(get_service(db, gateway, notifier).handle_webhook, payload, stripe_signature)
    return ok(result)


@router.get("/{payment_id}", response_model=Envelope[PaymentDetailsOut])
def payment_details(
    payment_id: str,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    return ok(get_service(db, gateway).payment_details(user, payment_id))
