# marketplace/repos/retailer_repo.py
from decimal import Decimal

from sqlalchemy import select, update, func

from marketplace.data.models.retailer import RetailerModel
from marketplace.data.models.user import UserModel
from marketplace.data.models.store import FavoriteStoreModel, StoreReviewModel
from marketplace.repos.base import SessionRepo, paginate


class RetailerRepo(SessionRepo):
    def get_retailer(self, user_id: int) -> RetailerModel | None:
        return self.db.get(RetailerModel, user_id)

    def get_active_retailer(self, user_id: int) -> RetailerModel | None:
        return self.db.execute(
            select(RetailerModel)
            .join(UserModel, UserModel.id == RetailerModel.user_id)
            .where(RetailerModel.user_id == user_id, UserModel.is_active.is_(True))
        ).scalar_one_or_none()

    def get_many(self, user_ids) -> dict[int, RetailerModel]:
        if not user_ids:
            return {}
        rows = self.db.execute(
            select(RetailerModel).where(RetailerModel.user_id.in_(list(user_ids)))
        ).scalars().all()
        return {r.user_id: r for r in rows}

    def search(self, query: str | None, category: str | None, page: int, limit: int):
        q = (
            self.db.query(RetailerModel)
            .join(UserModel, UserModel.id == RetailerModel.user_id)
            .filter(UserModel.is_active.is_(True))
        )
        if query:
            like = f"%{query.lower()}%"
            q = q.filter(
                func.lower(RetailerModel.business_name).like(like)
                | func.lower(func.coalesce(RetailerModel.description, "")).like(like)
            )
        if category:
            q = q.filter(RetailerModel.business_type == category)

        q = q.order_by(RetailerModel.average_rating.desc(), RetailerModel.user_id)
        return paginate(q, page, limit)

    def all_ids(self) -> list[int]:
        return list(self.db.execute(select(RetailerModel.user_id).order_by(RetailerModel.user_id)).scalars())

    def add_order_stats(self, user_id: int, orders: int, amount: Decimal) -> None:
        self.db.execute(
            update(RetailerModel)
            .where(RetailerModel.user_id == user_id)
            .values(
                total_orders=RetailerModel.total_orders + orders,
                total_revenue=RetailerModel.total_revenue + amount,
            )
        )

    # favorites
    def get_favorite(self, customer_id: int, retailer_id: int) -> FavoriteStoreModel | None:
        return self.db.execute(
            select(FavoriteStoreModel).where(
                FavoriteStoreModel.customer_id == customer_id,
                FavoriteStoreModel.retailer_id == retailer_id,
            )
        ).scalar_one_or_none()

    def list_favorites(self, customer_id: int) -> list[RetailerModel]:
        return list(
            self.db.execute(
                select(RetailerModel)
                .join(FavoriteStoreModel, FavoriteStoreModel.retailer_id == RetailerModel.user_id)
                .where(FavoriteStoreModel.customer_id == customer_id)
                .order_by(FavoriteStoreModel.created_at.desc())
            ).scalars()
        )

    # reviews
    def list_reviews(self, retailer_id: int, page: int, limit: int):
        q = (
            self.db.query(StoreReviewModel)
            .filter(StoreReviewModel.retailer_id == retailer_id)
            .order_by(StoreReviewModel.created_at.desc(), StoreReviewModel.id.desc())
        )
        return paginate(q, page, limit)

    def rating_summary(self, retailer_id: int) -> tuple[float, int]:
        avg, count = self.db.execute(
            select(func.avg(StoreReviewModel.rating), func.count(StoreReviewModel.id)).where(
                StoreReviewModel.retailer_id == retailer_id
            )
        ).one()
        return float(avg or 0), int(count or 0)
