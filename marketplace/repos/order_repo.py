# marketplace/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select, func

from marketplace.data.models.order import OrderModel
from marketplace.repos.base import SessionRepo, paginate


class OrderRepo(SessionRepo):
    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_payment_id(self, payment_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_id == payment_id)
        ).scalar_one_or_none()

    def list_orders(
        self,
        *,
        customer_id: int | None = None,
        retailer_id: int | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ):
        q = self.db.query(OrderModel)
        if customer_id is not None:
            q = q.filter(OrderModel.customer_id == customer_id)
        if retailer_id is not None:
            q = q.filter(OrderModel.retailer_id == retailer_id)
        if status:
            q = q.filter(OrderModel.status == status)

        q = q.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return paginate(q, page, limit)

    def recent_for_retailer(self, retailer_id: int, limit: int = 5) -> list[OrderModel]:
        rows, _ = self.list_orders(retailer_id=retailer_id, page=1, limit=limit)
        return rows

    def in_range(self, retailer_id: int, start: datetime, end: datetime) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).where(
                    OrderModel.retailer_id == retailer_id,
                    OrderModel.created_at >= start,
                    OrderModel.created_at <= end,
                )
            ).scalars()
        )

    def status_counts(self, retailer_id: int, start: datetime, end: datetime) -> dict[str, int]:
        rows = self.db.execute(
            select(OrderModel.status, func.count(OrderModel.id))
            .where(
                OrderModel.retailer_id == retailer_id,
                OrderModel.created_at >= start,
                OrderModel.created_at <= end,
            )
            .group_by(OrderModel.status)
        ).all()
        return {status: count for status, count in rows}
