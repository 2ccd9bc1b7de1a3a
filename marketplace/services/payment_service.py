# marketplace/services/payment_service.py
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.user import UserModel
from marketplace.domain import states
from marketplace.domain.errors import ForbiddenError, NotFoundError, ValidationError
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService
from marketplace.services.payment_gateway import PaymentGateway
from marketplace.utils.settings import PAYMENT_CURRENCY
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# gateway intent status -> our payment status; anything else leaves it alone
INTENT_STATUS_MAP = {
    "succeeded": states.PAYMENT_COMPLETED,
    "canceled": states.PAYMENT_FAILED,
}


def intent_payment_status(intent: dict) -> str | None:
    # every new intent starts in requires_payment_method; it only means
    # failure once an attempt has been declined
    if intent["status"] == "requires_payment_method":
        return states.PAYMENT_FAILED if intent.get("last_payment_error") else None
    return INTENT_STATUS_MAP.get(intent["status"])


WEBHOOK_EVENT_MAP = {
    "payment_intent.succeeded": states.PAYMENT_COMPLETED,
    "payment_intent.payment_failed": states.PAYMENT_FAILED,
    "charge.refunded": states.PAYMENT_REFUNDED,
}


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    def __init__(self, db: Session, gateway: PaymentGateway, notifier: NotificationService | None = None):
        self.repo = OrderRepo(db)
        self.gateway = gateway
        self.orders = OrderService(db, notifier=notifier)

    def _order(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _order_by_payment(self, payment_id: str) -> OrderModel:
        order = self.repo.get_by_payment_id(payment_id)
        if not order:
            raise NotFoundError("Payment not found")
        return order

    def create_payment(self, customer_id: int, order_id: int) -> dict:
        order = self._order(order_id)
        if order.customer_id != customer_id:
            raise ForbiddenError("Access denied")
        if order.status == states.CANCELLED:
            raise ValidationError("Order is cancelled")
        if order.payment_status != states.PAYMENT_PENDING:
            raise ValidationError("Payment already initiated for this order")

        amount = to_minor_units(order.total_amount)
        intent = self.gateway.create_intent(
            amount,
            PAYMENT_CURRENCY,
            {"order_id": str(order.id), "order_number": order.order_number},
        )
        self.orders.set_payment_status(order, states.PAYMENT_PROCESSING, transaction_id=intent["id"])
        logger.info(f"Payment {intent['id']} started for order {order.order_number}")

        return {
            "order_id": order.id,
            "payment_id": intent["id"],
            "client_secret": intent.get("client_secret"),
            "amount": amount,
            "currency": PAYMENT_CURRENCY,
        }

    def verify_payment(self, customer_id: int, payment_id: str) -> OrderModel:
        order = self._order_by_payment(payment_id)
        if order.customer_id != customer_id:
            raise ForbiddenError("Access denied")

        intent = self.gateway.retrieve_intent(payment_id)
        target = intent_payment_status(intent)
        if target is None:
            logger.info(f"Payment {payment_id} still {intent['status']}")
            return order
        return self._apply(order, target)

    def refund(self, user: UserModel, order_id: int) -> dict:
        order = self._order(order_id)
        if user.role != "admin" and order.customer_id != user.id:
            raise ForbiddenError("Access denied")
        if order.payment_status != states.PAYMENT_COMPLETED or not order.payment_id:
            raise ValidationError("Only completed payments can be refunded")

        refund = self.gateway.refund(order.payment_id)
        self.orders.set_payment_status(order, states.PAYMENT_REFUNDED)
        logger.info(f"Order {order.order_number} refunded ({refund['id']})")

        return {"order_id": order.id, "refund_id": refund["id"], "payment_status": order.payment_status}

    def payment_details(self, user: UserModel, payment_id: str) -> dict:
        order = self._order_by_payment(payment_id)
        if user.role != "admin" and user.id not in (order.customer_id, order.retailer_id):
            raise ForbiddenError("Access denied")

        intent = self.gateway.retrieve_intent(payment_id)
        return {
            "payment_id": intent["id"],
            "status": intent["status"],
            "amount": intent["amount"],
            "currency": intent["currency"],
            "order_id": order.id,
        }

    def handle_webhook(self, payload: bytes, signature: str | None) -> dict:
        # nothing in the payload is trusted before this line
        event = self.gateway.construct_event(payload, signature)
        event_type = event.get("type")
        target = WEBHOOK_EVENT_MAP.get(event_type)

        if target is None:
            logger.info(f"Ignoring webhook event {event_type}")
            return {"received": True, "type": event_type, "handled": False}

        obj = (event.get("data") or {}).get("object") or {}
        payment_id = obj.get("payment_intent") if event_type == "charge.refunded" else obj.get("id")

        order = self.repo.get_by_payment_id(payment_id) if payment_id else None
        if order is None:
            order_id = (obj.get("metadata") or {}).get("order_id")
            order = self.repo.get_order(int(order_id)) if order_id and str(order_id).isdigit() else None
        if order is None:
            logger.warning(f"Webhook {event_type} for unknown payment {payment_id}")
            return {"received": True, "type": event_type, "handled": False}

        self._apply(order, target)
        return {"received": True, "type": event_type, "handled": True}

    def _apply(self, order: OrderModel, target: str) -> OrderModel:
        # gateways redeliver events; the same status twice is a no-op
        if order.payment_status == target:
            return order
        return self.orders.set_payment_status(order, target)
