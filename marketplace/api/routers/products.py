# marketplace/api/routers/products.py
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import current_retailer
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    Envelope,
    Page,
    ProductCreate,
    ProductOut,
    ProductStatusIn,
    ProductUpdate,
)
from marketplace.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session):
    return ProductService(db)


@router.get("", response_model=Envelope[Page[ProductOut]])
def list_products(
    category: str | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    retailer_id: int | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(
        get_service(db).list_products(
            category=category,
            min_price=min_price,
            max_price=max_price,
            retailer_id=retailer_id,
            search=search,
            page=page,
            limit=limit,
        )
    )


@router.get("/categories", response_model=Envelope[List[str]])
def categories(db: Session = Depends(get_db)):
    return ok(get_service(db).categories())


@router.get("/store/{retailer_id}", response_model=Envelope[Page[ProductOut]])
def store_products(
    retailer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).store_products(retailer_id, page, limit))


@router.get("/{product_id}", response_model=Envelope[ProductOut])
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ok(get_service(db).get_product(product_id))


@router.post("", response_model=Envelope[ProductOut], status_code=201)
def create_product(payload: ProductCreate, user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    return ok(get_service(db).create_product(user.id, payload), "Product created")


@router.put("/{product_id}", response_model=Envelope[ProductOut])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).update_product(user.id, product_id, payload), "Product updated")


@router.put("/{product_id}/status", response_model=Envelope[ProductOut])
def set_status(
    product_id: int,
    payload: ProductStatusIn,
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).set_active(user.id, product_id, payload.is_active), "Product status updated")


@router.delete("/{product_id}", response_model=Envelope[None])
def delete_product(product_id: int, user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    get_service(db).delete_product(user.id, product_id)
    return ok(message="Product deleted")
