# marketplace/api/routers/stores.py
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import current_customer
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    Envelope,
    NearbyStoreOut,
    Page,
    RetailerOut,
    ReviewIn,
    ReviewOut,
    StoreDetailOut,
)
from marketplace.services.location_service import LocationService
from marketplace.services.store_service import StoreService

router = APIRouter(prefix="/stores", tags=["stores"])


def get_service(db: Session):
    return StoreService(db)


@router.get("/nearby", response_model=Envelope[List[NearbyStoreOut]])
def nearby(
    latitude: float,
    longitude: float,
    max_distance: float = 10000,
    category: str | None = None,
    open_only: bool = False,
    limit: int = 20,
    sort_by: Literal["distance", "rating"] = "distance",
    db: Session = Depends(get_db),
):
    # ranges are checked by the service so bad coordinates get the domain error
    stores = LocationService(db).nearby_stores(
        latitude,
        longitude,
        max_distance=max_distance,
        category=category,
        open_only=open_only,
        limit=limit,
        sort_by=sort_by,
    )
    return ok(stores)


@router.get("/search", response_model=Envelope[Page[RetailerOut]])
def search(
    q: str | None = None,
    category: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).search(q, category, page, limit))


@router.get("/categories", response_model=Envelope[List[str]])
def categories(db: Session = Depends(get_db)):
    return ok(get_service(db).categories())


@router.get("/{retailer_id}", response_model=Envelope[StoreDetailOut])
def details(retailer_id: int, db: Session = Depends(get_db)):
    return ok(get_service(db).details(retailer_id))


@router.post("/{retailer_id}/favorite", response_model=Envelope[None])
def add_favorite(retailer_id: int, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    get_service(db).add_favorite(user.id, retailer_id)
    return ok(message="Store added to favorites")


@router.delete("/{retailer_id}/favorite", response_model=Envelope[None])
def remove_favorite(retailer_id: int, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    get_service(db).remove_favorite(user.id, retailer_id)
    return ok(message="Store removed from favorites")


@router.post("/{retailer_id}/reviews", response_model=Envelope[ReviewOut], status_code=201)
def add_review(
    retailer_id: int,
    payload: ReviewIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).add_review(user.id, retailer_id, payload.rating, payload.comment), "Review added")


@router.get("/{retailer_id}/reviews", response_model=Envelope[Page[ReviewOut]])
def reviews(
    retailer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).reviews(retailer_id, page, limit))
