# marketplace/repos/customer_repo.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update

from marketplace.data.models.customer import CustomerModel
from marketplace.repos.base import SessionRepo


class CustomerRepo(SessionRepo):
    def get_customer(self, user_id: int) -> CustomerModel | None:
        return self.db.get(CustomerModel, user_id)

    def add_order_stats(self, user_id: int, orders: int, amount: Decimal, ordered_at: datetime | None = None) -> None:
        # single UPDATE so concurrent orders do not lose increments
        values = {
            "total_orders": CustomerModel.total_orders + orders,
            "total_spent": CustomerModel.total_spent + amount,
        }
        if ordered_at is not None:
            values["last_order_at"] = ordered_at

        self.db.execute(
            update(CustomerModel).where(CustomerModel.user_id == user_id).values(**values)
        )
