# marketplace/services/order_service.py
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.order_status import OrderStatusEventModel
from marketplace.data.models.user import UserModel
from marketplace.domain import states
from marketplace.domain.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.customer_repo import CustomerRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _order_number() -> str:
    return f"ORD-{datetime.now(timezone.utc):%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def _page(rows, total: int, page: int, limit: int) -> dict:
    return {
        "items": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
    }


class OrderService:
    """
    Order use cases.

    Placement decrements stock with a conditional UPDATE per line inside
    the same transaction as the order insert, so either every line is
    reserved and the order exists, or nothing changed. Every cancellation
    gives the stock back and reverts the customer/retailer counters.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationService | None = None,
        lock_service: LockService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.customers = CustomerRepo(db)
        self.retailers = RetailerRepo(db)
        self.carts = CartRepo(db)
        self.users = UserRepo(db)
        self.notifier = notifier or NotificationService()
        self.lock_service = lock_service

    # ------------------------------------------------------------------
    # placement
    # ------------------------------------------------------------------
    def place_order(
        self,
        customer_id: int,
        items: list[tuple[int, int]],
        shipping_address: dict,
        payment_method: str,
        cart=None,
    ) -> OrderModel:
        """
        items is a list of (product_id, quantity). When a cart is passed its
        lines are removed in the same transaction as the order insert.
        """
        if not items:
            raise ValidationError("Order must contain at least one item")

        # the same product twice is one line
        wanted: "OrderedDict[int, int]" = OrderedDict()
        for product_id, quantity in items:
            if quantity < 1:
                raise ValidationError("Quantity must be at least 1")
            wanted[product_id] = wanted.get(product_id, 0) + quantity

        lines = []
        for product_id, quantity in wanted.items():
            product = self.products.get_product(product_id)
            if not product or not product.is_active:
                raise NotFoundError(f"Product {product_id} not found")
            if product.stock < quantity:
                raise InsufficientStockError(product.name)
            lines.append((product, quantity))

        retailer_ids = {p.retailer_id for p, _ in lines}
        if len(retailer_ids) > 1:
            raise ValidationError("All items in an order must come from the same retailer")
        retailer_id = retailer_ids.pop()

        total = sum((p.price * q for p, q in lines), Decimal("0.00"))
        now = datetime.now(timezone.utc)

        try:
            for product, quantity in lines:
                if not self.products.decrement_stock(product.id, quantity):
                    # somebody bought it between the check and the update
                    raise InsufficientStockError(product.name)

            order = OrderModel(
                order_number=_order_number(),
                customer_id=customer_id,
                retailer_id=retailer_id,
                status=states.PENDING,
                payment_status=states.PAYMENT_PENDING,
                payment_method=payment_method,
                total_amount=total,
                shipping_address=shipping_address,
                created_at=now,
                updated_at=now,
            )
            for product, quantity in lines:
                order.items.append(
                    OrderItemModel(
                        product_id=product.id,
                        name=product.name,
                        category=product.category,
                        quantity=quantity,
                        price=product.price,
                    )
                )
            order.status_history.append(OrderStatusEventModel(status=states.PENDING, note="Order placed"))
            self.repo.add(order)

            self.retailers.add_order_stats(retailer_id, 1, total)
            self.customers.add_order_stats(customer_id, 1, total, ordered_at=now)

            if cart is not None:
                cart.items.clear()
                cart.updated_at = now

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Order {order.order_number} placed by customer {customer_id} "
            f"at retailer {retailer_id}, total {total}"
        )

        self.notifier.order_created(order)
        self._inventory_event(order)
        self._email_customer(
            order,
            f"Order {order.order_number} received",
            f"We received your order {order.order_number} for {total}.",
        )
        return order

    def checkout(self, customer_id: int, shipping_address: dict, payment_method: str) -> OrderModel:
        if self.lock_service is None:
            raise RuntimeError("Checkout needs a lock service")

        token = uuid.uuid4().hex
        if not self.lock_service.acquire_checkout_lock(customer_id, token):
            raise ConflictError("Checkout already in progress")

        try:
            cart = self.carts.get_by_customer(customer_id)
            if not cart or not cart.items:
                raise ValidationError("Cart is empty")

            items = [(i.product_id, i.quantity) for i in cart.items]
            logger.info(f"Checkout of cart {cart.id} with {len(items)} lines")
            return self.place_order(customer_id, items, shipping_address, payment_method, cart=cart)
        finally:
            self.lock_service.release_checkout_lock(customer_id, token)

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------
    def _restore_stock(self, order: OrderModel) -> None:
        for item in order.items:
            self.products.increment_stock(item.product_id, item.quantity)

        self.retailers.add_order_stats(order.retailer_id, -1, -order.total_amount)
        self.customers.add_order_stats(order.customer_id, -1, -order.total_amount)
        logger.info(f"Stock restored for order {order.order_number}")

    def _transition(self, order: OrderModel, target: str, note: str | None = None) -> None:
        # validated before anything is touched
        states.check_order_transition(order.status, target)

        if target == states.CANCELLED:
            self._restore_stock(order)

        previous = order.status
        order.status = target
        order.updated_at = datetime.now(timezone.utc)
        order.status_history.append(OrderStatusEventModel(status=target, note=note))
        logger.info(f"Order {order.order_number}: {previous} -> {target}")

    def _get(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _commit_status(self, order: OrderModel, target: str, note: str | None) -> OrderModel:
        try:
            self._transition(order, target, note)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.notifier.order_status(order)
        if target == states.CANCELLED:
            self._inventory_event(order)
        return order

    def update_status(self, user: UserModel, order_id: int, status: str, note: str | None = None) -> OrderModel:
        order = self._get(order_id)
        if user.role != "admin" and order.retailer_id != user.id:
            raise ForbiddenError("Access denied")

        self._commit_status(order, status, note)
        self._email_customer(
            order,
            f"Order {order.order_number} is {order.status}",
            f"Your order {order.order_number} is now {order.status}.",
        )
        return order

    def cancel_order(self, customer_id: int, order_id: int, reason: str | None = None) -> OrderModel:
        order = self._get(order_id)
        if order.customer_id != customer_id:
            raise ForbiddenError("Access denied")
        if order.status not in states.CUSTOMER_CANCELLABLE:
            raise InvalidTransitionError(order.status, states.CANCELLED)

        return self._commit_status(order, states.CANCELLED, reason or "Cancelled by customer")

    # ------------------------------------------------------------------
    # payment status
    # ------------------------------------------------------------------
    def set_payment_status(self, order: OrderModel, status: str, transaction_id: str | None = None) -> OrderModel:
        states.check_payment_status(status)
        previous_status = order.status

        try:
            order.payment_status = status
            if transaction_id:
                order.payment_id = transaction_id
            order.updated_at = datetime.now(timezone.utc)

            if order.status == states.PENDING:
                if status == states.PAYMENT_COMPLETED:
                    self._transition(order, states.CONFIRMED, "Payment completed")
                elif status == states.PAYMENT_FAILED:
                    self._transition(order, states.CANCELLED, "Payment failed")

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} payment status -> {status}")
        self.notifier.payment_status(order)
        if order.status != previous_status:
            self.notifier.order_status(order)
            if order.status == states.CANCELLED:
                self._inventory_event(order)
        return order

    def update_payment_status(
        self, user: UserModel, order_id: int, status: str, transaction_id: str | None = None
    ) -> OrderModel:
        order = self._get(order_id)
        if user.role != "admin" and order.retailer_id != user.id:
            raise ForbiddenError("Access denied")
        return self.set_payment_status(order, status, transaction_id)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_order(self, user: UserModel, order_id: int) -> OrderModel:
        order = self._get(order_id)
        if user.role == "admin" or user.id in (order.customer_id, order.retailer_id):
            return order
        raise ForbiddenError("Access denied")

    def customer_orders(self, customer_id: int, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
        rows, total = self.repo.list_orders(customer_id=customer_id, status=status, page=page, limit=limit)
        return _page(rows, total, page, limit)

    def retailer_orders(self, retailer_id: int, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
        rows, total = self.repo.list_orders(retailer_id=retailer_id, status=status, page=page, limit=limit)
        return _page(rows, total, page, limit)

    def analytics(self, retailer_id: int, start: datetime, end: datetime) -> dict:
        if start > end:
            raise ValidationError("start_date must be before end_date")

        orders = self.repo.in_range(retailer_id, start, end)
        revenue = sum((o.total_amount for o in orders), Decimal("0.00"))
        return {
            "total_orders": len(orders),
            "total_revenue": revenue,
            "average_order_value": (revenue / len(orders)).quantize(Decimal("0.01")) if orders else Decimal("0.00"),
            "orders_by_status": self.repo.status_counts(retailer_id, start, end),
        }

    # ------------------------------------------------------------------
    # side effects
    # ------------------------------------------------------------------
    def _inventory_event(self, order: OrderModel) -> None:
        changes = []
        for item in order.items:
            product = self.products.get_product(item.product_id)
            if product is None:
                continue
            self.db.refresh(product, ["stock"])
            changes.append({"product_id": product.id, "stock": product.stock})
        self.notifier.inventory_changed(changes)

    def _email_customer(self, order: OrderModel, subject: str, body: str) -> None:
        user = self.users.get_user(order.customer_id)
        if user:
            self.notifier.send_email(user.email, subject, body)
