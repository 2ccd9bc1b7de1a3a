# marketplace/services/retailer_service.py
from sqlalchemy.orm import Session

from marketplace.data.models.retailer import RetailerModel
from marketplace.data.models.product import ProductModel
from marketplace.domain.errors import NotFoundError
from marketplace.domain.schemas import RetailerUpdate
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class RetailerService:
    def __init__(self, db: Session):
        self.repo = RetailerRepo(db)
        self.products = ProductRepo(db)
        self.orders = OrderRepo(db)

    def get_profile(self, retailer_id: int) -> RetailerModel:
        retailer = self.repo.get_retailer(retailer_id)
        if not retailer:
            raise NotFoundError("Retailer not found")
        return retailer

    def update_profile(self, retailer_id: int, payload: RetailerUpdate) -> RetailerModel:
        retailer = self.get_profile(retailer_id)

        data = payload.model_dump(mode="json", exclude_unset=True, exclude={"min_order_amount"})
        for field, value in data.items():
            if value is not None:
                setattr(retailer, field, value)
        if payload.min_order_amount is not None:
            retailer.min_order_amount = payload.min_order_amount

        self.repo.commit()
        logger.info(f"Retailer {retailer_id} profile updated")
        return retailer

    def dashboard(self, retailer_id: int) -> dict:
        retailer = self.get_profile(retailer_id)
        products = self.products.list_by_retailer(retailer_id)

        return {
            "retailer": retailer,
            "active_products": sum(1 for p in products if p.is_active),
            "low_stock_products": self.products.count_low_stock(retailer_id),
            "recent_orders": self.orders.recent_for_retailer(retailer_id, limit=5),
        }

    def list_products(self, retailer_id: int) -> list[ProductModel]:
        return self.products.list_by_retailer(retailer_id)
