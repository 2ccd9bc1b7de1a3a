# marketplace/services/product_service.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.product import ProductModel
from marketplace.domain.errors import ConflictError, NotFoundError, ValidationError
from marketplace.domain.schemas import ProductCreate, ProductUpdate
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    """
    Catalog use cases.
    Retailers write their own products; stock is set once at creation and
    afterwards moves only with orders (see OrderService).
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)
        self.retailers = RetailerRepo(db)

    # queries
    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def list_products(self, *, page: int = 1, limit: int = 10, **filters) -> dict:
        if filters.get("min_price") is not None and filters.get("max_price") is not None:
            if filters["min_price"] > filters["max_price"]:
                raise ValidationError("min_price cannot be greater than max_price")

        rows, total = self.repo.list_products(page=page, limit=limit, **filters)
        return {
            "items": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }

    def categories(self) -> list[str]:
        return self.repo.categories()

    def store_products(self, retailer_id: int, page: int = 1, limit: int = 10) -> dict:
        if not self.retailers.get_active_retailer(retailer_id):
            raise NotFoundError("Store not found")
        return self.list_products(retailer_id=retailer_id, page=page, limit=limit)

    # commands
    def _owned(self, product_id: int, retailer_id: int) -> ProductModel:
        product = self.repo.get_owned(product_id, retailer_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, retailer_id: int, payload: ProductCreate) -> ProductModel:
        product = self.repo.add(ProductModel(retailer_id=retailer_id, **payload.model_dump()))
        self.repo.commit()
        logger.info(f"Product {product.id} created by retailer {retailer_id} with stock {product.stock}")
        return product

    def update_product(self, retailer_id: int, product_id: int, payload: ProductUpdate) -> ProductModel:
        product = self._owned(product_id, retailer_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(product, field, value)

        self.repo.commit()
        logger.info(f"Product {product_id} updated")
        return product

    def set_active(self, retailer_id: int, product_id: int, is_active: bool) -> ProductModel:
        product = self._owned(product_id, retailer_id)
        product.is_active = is_active
        self.repo.commit()
        logger.info(f"Product {product_id} {'activated' if is_active else 'deactivated'}")
        return product

    def delete_product(self, retailer_id: int, product_id: int) -> None:
        product = self._owned(product_id, retailer_id)
        try:
            self.repo.delete(product)
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError("Product has orders, deactivate it instead") from e
        logger.info(f"Product {product_id} deleted")
