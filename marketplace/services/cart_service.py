# marketplace/services/cart_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.errors import InsufficientStockError, NotFoundError
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    One cart per customer, created on first use.
    queries (get, total) only read, commands (add, update, remove, clear)
    modify and commit. Prices are captured at the first add.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    def _get_or_create(self, customer_id: int) -> CartModel:
        cart = self.repo.get_by_customer(customer_id)
        if cart:
            return cart

        cart = self.repo.add(CartModel(customer_id=customer_id))
        self.repo.commit()
        logger.info(f"Created cart {cart.id} for customer {customer_id}")
        return cart

    @staticmethod
    def _view(cart: CartModel) -> Dict[str, Any]:
        items = [
            {
                "product_id": i.product_id,
                "name": i.product.name,
                "quantity": i.quantity,
                "price": i.price,
                "line_total": i.price * i.quantity,
            }
            for i in cart.items
        ]
        return {
            "customer_id": cart.customer_id,
            "items": items,
            "total": sum((i["line_total"] for i in items), Decimal("0.00")),
            "updated_at": cart.updated_at,
        }

    @staticmethod
    def _touch(cart: CartModel) -> None:
        cart.updated_at = datetime.now(timezone.utc)

    # queries
    def get_cart(self, customer_id: int) -> Dict[str, Any]:
        return self._view(self._get_or_create(customer_id))

    def get_total(self, customer_id: int) -> Dict[str, Any]:
        view = self.get_cart(customer_id)
        return {
            "total": view["total"],
            "item_count": sum(i["quantity"] for i in view["items"]),
        }

    # commands
    def add_item(self, customer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        product = self.products.get_product(product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")

        cart = self._get_or_create(customer_id)
        item = self.repo.get_cart_item(cart.id, product_id)
        wanted = quantity + (item.quantity if item else 0)

        if wanted > product.stock:
            raise InsufficientStockError(product.name)

        if item:
            logger.info(f"Product {product_id} already in cart {cart.id}, quantity {item.quantity} -> {wanted}")
            item.quantity = wanted
        else:
            logger.info(f"Adding product {product_id} x{quantity} to cart {cart.id}")
            cart.items.append(
                CartItemModel(product_id=product_id, quantity=quantity, price=product.price, product=product)
            )

        self._touch(cart)
        self.repo.commit()
        return self._view(cart)

    def update_quantity(self, customer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            return self.remove_item(customer_id, product_id)

        cart = self._get_or_create(customer_id)
        item = self.repo.get_cart_item(cart.id, product_id)
        if not item:
            raise NotFoundError("Product not in cart")

        if quantity > item.product.stock:
            raise InsufficientStockError(item.product.name)

        item.quantity = quantity
        self._touch(cart)
        self.repo.commit()
        logger.info(f"Cart {cart.id}: product {product_id} quantity set to {quantity}")
        return self._view(cart)

    def remove_item(self, customer_id: int, product_id: int) -> Dict[str, Any]:
        cart = self._get_or_create(customer_id)
        item = self.repo.get_cart_item(cart.id, product_id)
        if not item:
            raise NotFoundError("Product not in cart")

        cart.items.remove(item)
        self._touch(cart)
        self.repo.commit()
        logger.info(f"Removed product {product_id} from cart {cart.id}")
        return self._view(cart)

    def clear(self, customer_id: int) -> Dict[str, Any]:
        cart = self._get_or_create(customer_id)
        cart.items.clear()
        self._touch(cart)
        self.repo.commit()
        logger.info(f"Cleared cart {cart.id}")
        return self._view(cart)
