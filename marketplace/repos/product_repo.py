# marketplace/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import select, update, func

from marketplace.data.models.product import ProductModel
from marketplace.repos.base import SessionRepo, paginate


class ProductRepo(SessionRepo):
    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_owned(self, product_id: int, retailer_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(
                ProductModel.id == product_id,
                ProductModel.retailer_id == retailer_id,
            )
        ).scalar_one_or_none()

    def list_products(
        self,
        *,
        category: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        retailer_id: int | None = None,
        search: str | None = None,
        active_only: bool = True,
        page: int = 1,
        limit: int = 10,
    ):
        q = self.db.query(ProductModel)
        if active_only:
            q = q.filter(ProductModel.is_active.is_(True))
        if category:
            q = q.filter(ProductModel.category == category)
        if retailer_id is not None:
            q = q.filter(ProductModel.retailer_id == retailer_id)
        if min_price is not None:
            q = q.filter(ProductModel.price >= min_price)
        if max_price is not None:
            q = q.filter(ProductModel.price <= max_price)
        if search:
            like = f"%{search.lower()}%"
            q = q.filter(
                func.lower(ProductModel.name).like(like)
                | func.lower(func.coalesce(ProductModel.description, "")).like(like)
            )

        q = q.order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
        return paginate(q, page, limit)

    def list_by_retailer(self, retailer_id: int) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel).where(ProductModel.retailer_id == retailer_id).order_by(ProductModel.id)
            ).scalars()
        )

    def categories(self) -> list[str]:
        return list(
            self.db.execute(
                select(ProductModel.category)
                .where(ProductModel.is_active.is_(True))
                .distinct()
                .order_by(ProductModel.category)
            ).scalars()
        )

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """UPDATE ... WHERE stock >= quantity; False when the stock was not there."""
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id: int, quantity: int) -> None:
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )

    def count_low_stock(self, retailer_id: int) -> int:
        return self.db.execute(
            select(func.count(ProductModel.id)).where(
                ProductModel.retailer_id == retailer_id,
                ProductModel.stock < ProductModel.low_stock_threshold,
            )
        ).scalar_one()
