# marketplace/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import select, delete

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.repos.base import SessionRepo


class CartRepo(SessionRepo):
    def get_by_customer(self, customer_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.customer_id == customer_id)
        ).scalar_one_or_none()

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def clear_items(self, cart_id: int) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        return result.rowcount

    def stale_carts(self, idle_since: datetime) -> list[CartModel]:
        return list(
            self.db.execute(
                select(CartModel).where(CartModel.updated_at < idle_since, CartModel.items.any())
            ).scalars()
        )
