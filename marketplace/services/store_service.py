# marketplace/services/store_service.py
from sqlalchemy.orm import Session

from marketplace.data.models.retailer import RetailerModel
from marketplace.data.models.store import FavoriteStoreModel, StoreReviewModel
from marketplace.domain.errors import NotFoundError
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.repos.location_repo import LocationRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class StoreService:
    """Public store pages: search, details, favorites and reviews."""

    def __init__(self, db: Session):
        self.repo = RetailerRepo(db)
        self.locations = LocationRepo(db)

    def _store(self, retailer_id: int) -> RetailerModel:
        retailer = self.repo.get_active_retailer(retailer_id)
        if not retailer:
            raise NotFoundError("Store not found")
        return retailer

    def search(self, query: str | None = None, category: str | None = None, page: int = 1, limit: int = 10) -> dict:
        rows, total = self.repo.search(query, category, page, limit)
        return {
            "items": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }

    def categories(self) -> list[str]:
        return self.locations.store_categories()

    def details(self, retailer_id: int) -> dict:
        retailer = self._store(retailer_id)
        locations = [
            loc for loc in self.locations.list_for_owner(retailer_id, "retailer") if loc.is_active
        ]
        return {"retailer": retailer, "locations": locations}

    # favorites
    def add_favorite(self, customer_id: int, retailer_id: int) -> None:
        self._store(retailer_id)
        if self.repo.get_favorite(customer_id, retailer_id):
            return

        self.repo.add(FavoriteStoreModel(customer_id=customer_id, retailer_id=retailer_id))
        self.repo.commit()
        logger.info(f"Customer {customer_id} favorited store {retailer_id}")

    def remove_favorite(self, customer_id: int, retailer_id: int) -> None:
        favorite = self.repo.get_favorite(customer_id, retailer_id)
        if not favorite:
            raise NotFoundError("Store is not in favorites")

        self.repo.delete(favorite)
        self.repo.commit()
        logger.info(f"Customer {customer_id} unfavorited store {retailer_id}")

    def favorites(self, customer_id: int) -> list[RetailerModel]:
        return self.repo.list_favorites(customer_id)

    # reviews
    def add_review(self, customer_id: int, retailer_id: int, rating: int, comment: str | None = None) -> StoreReviewModel:
        retailer = self._store(retailer_id)

        review = self.repo.add(
            StoreReviewModel(retailer_id=retailer_id, customer_id=customer_id, rating=rating, comment=comment)
        )
        average, count = self.repo.rating_summary(retailer_id)
        retailer.average_rating = round(average, 2)
        retailer.total_ratings = count

        self.repo.commit()
        logger.info(f"Store {retailer_id} reviewed by customer {customer_id}: {rating}, now {retailer.average_rating}")
        return review

    def reviews(self, retailer_id: int, page: int = 1, limit: int = 10) -> dict:
        self._store(retailer_id)
        rows, total = self.repo.list_reviews(retailer_id, page, limit)
        return {
            "items": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }
