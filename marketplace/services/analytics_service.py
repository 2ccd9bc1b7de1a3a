# marketplace/services/analytics_service.py
from collections import defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.models.analytics import AnalyticsSnapshotModel
from marketplace.domain.errors import NotFoundError, ValidationError
from marketplace.repos.analytics_repo import AnalyticsRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


class AnalyticsService:
    """
    Daily per-retailer snapshots.

    A snapshot is recomputed from scratch on every refresh, so refreshing
    the same day twice gives the same row.
    """

    def __init__(self, db: Session):
        self.repo = AnalyticsRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.retailers = RetailerRepo(db)

    def refresh_daily(self, retailer_id: int, day: date | None = None) -> AnalyticsSnapshotModel:
        if not self.retailers.get_retailer(retailer_id):
            raise NotFoundError("Retailer not found")

        day = day or datetime.now(timezone.utc).date()
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(day, time.max, tzinfo=timezone.utc)

        orders = self.orders.in_range(retailer_id, start, end)
        products = self.products.list_by_retailer(retailer_id)

        revenue = sum((o.total_amount for o in orders), Decimal("0.00"))
        status_counts: dict[str, int] = defaultdict(int)
        for order in orders:
            status_counts[order.status] += 1

        sold: dict[int, dict] = defaultdict(lambda: {"quantity": 0, "revenue": Decimal("0.00")})
        categories: dict[str, dict] = defaultdict(
            lambda: {"total_orders": 0, "total_revenue": Decimal("0.00"), "product_count": 0}
        )
        for product in products:
            categories[product.category]["product_count"] += 1
        for order in orders:
            for item in order.items:
                line = item.price * item.quantity
                sold[item.product_id]["quantity"] += item.quantity
                sold[item.product_id]["revenue"] += line
                categories[item.category]["total_orders"] += 1
                categories[item.category]["total_revenue"] += line

        metrics = {
            "total_orders": len(orders),
            "total_revenue": _money(revenue),
            "average_order_value": _money(revenue / len(orders)) if orders else 0.0,
            "order_status": dict(status_counts),
            "total_customers": len({o.customer_id for o in orders}),
            "total_products": len(products),
            "active_products": sum(1 for p in products if p.is_active),
            "low_stock_products": sum(1 for p in products if p.stock < p.low_stock_threshold),
            "out_of_stock_products": sum(1 for p in products if p.stock == 0),
        }
        product_metrics = [
            {
                "product_id": p.id,
                "name": p.name,
                "category": p.category,
                "quantity_sold": sold[p.id]["quantity"],
                "revenue": _money(sold[p.id]["revenue"]),
                "stock_level": p.stock,
            }
            for p in products
        ]
        category_metrics = [
            {
                "category": name,
                "total_orders": c["total_orders"],
                "total_revenue": _money(c["total_revenue"]),
                "product_count": c["product_count"],
                "average_order_value": _money(c["total_revenue"] / c["total_orders"]) if c["total_orders"] else 0.0,
            }
            for name, c in sorted(categories.items())
        ]

        snapshot = self.repo.get_snapshot(retailer_id, day)
        if snapshot is None:
            snapshot = AnalyticsSnapshotModel(retailer_id=retailer_id, date=day)
            self.repo.add(snapshot)
        snapshot.metrics = metrics
        snapshot.product_metrics = product_metrics
        snapshot.category_metrics = category_metrics
        self.repo.commit()

        logger.info(f"Analytics for retailer {retailer_id} on {day}: {len(orders)} orders, revenue {revenue}")
        return snapshot

    @staticmethod
    def _check_range(start: date, end: date) -> None:
        if start > end:
            raise ValidationError("start_date must be before end_date")

    def snapshots(self, retailer_id: int, start: date, end: date) -> list[AnalyticsSnapshotModel]:
        self._check_range(start, end)
        return self.repo.in_range(retailer_id, start, end)

    def product_metrics(self, retailer_id: int, product_id: int, start: date, end: date) -> list[dict]:
        self._check_range(start, end)
        result = []
        for snap in self.repo.in_range(retailer_id, start, end):
            for metric in snap.product_metrics or []:
                if metric.get("product_id") == product_id:
                    result.append({"date": snap.date.isoformat(), **metric})
        return result

    def category_metrics(self, retailer_id: int, category: str, start: date, end: date) -> list[dict]:
        self._check_range(start, end)
        result = []
        for snap in self.repo.in_range(retailer_id, start, end):
            for metric in snap.category_metrics or []:
                if metric.get("category") == category:
                    result.append({"date": snap.date.isoformat(), **metric})
        return result

    def refresh_all(self) -> int:
        count = 0
        for retailer_id in self.retailers.all_ids():
            self.refresh_daily(retailer_id)
            count += 1
        return count
