# marketplace/api/routers/retailers.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import current_retailer, get_geocoder, get_notifier
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    AuthOut,
    ChangePasswordIn,
    DashboardOut,
    Envelope,
    LocationOut,
    LocationUpdate,
    LoginIn,
    OrderOut,
    Page,
    ProductOut,
    RetailerOut,
    RetailerRegisterIn,
    RetailerUpdate,
    StoreLocationIn,
)
from marketplace.services.auth_service import AuthService
from marketplace.services.location_service import LocationService
from marketplace.services.order_service import OrderService
from marketplace.services.retailer_service import RetailerService

router = APIRouter(prefix="/retailers", tags=["retailers"])


def get_service(db: Session):
    return RetailerService(db)


@router.post("/register", response_model=Envelope[AuthOut], status_code=201)
def register(payload: RetailerRegisterIn, db: Session = Depends(get_db), notifier=Depends(get_notifier)):
    return ok(AuthService(db, notifier).register_retailer(payload), "Registration successful")


@router.post("/login", response_model=Envelope[AuthOut])
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return ok(AuthService(db).login(payload.email, payload.password, role="retailer"), "Login successful")


@router.get("/profile", response_model=Envelope[RetailerOut])
def get_profile(user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    return ok(get_service(db).get_profile(user.id))


@router.put("/profile", response_model=Envelope[RetailerOut])
def update_profile(payload: RetailerUpdate, user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    return ok(get_service(db).update_profile(user.id, payload), "Profile updated")


@router.put("/change-password", response_model=Envelope[None])
def change_password(payload: ChangePasswordIn, user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    AuthService(db).change_password(user, payload.current_password, payload.new_password)
    return ok(message="Password changed")


@router.get("/dashboard", response_model=Envelope[DashboardOut])
def dashboard(user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    return ok(get_service(db).dashboard(user.id))


@router.get("/products", response_model=Envelope[List[ProductOut]])
def my_products(user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    """Every product of the retailer, inactive ones included."""
    return ok(get_service(db).list_products(user.id))


@router.get("/orders", response_model=Envelope[Page[OrderOut]])
def my_orders(
    status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
):
    return ok(OrderService(db).retailer_orders(user.id, status, page, limit))


# stores
@router.get("/locations", response_model=Envelope[List[LocationOut]])
def list_locations(user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    return ok(LocationService(db).list_locations(user.id, "retailer"))


@router.post("/locations", response_model=Envelope[LocationOut], status_code=201)
def add_location(
    payload: StoreLocationIn,
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    return ok(LocationService(db, geocoder).add_location(user.id, "retailer", payload), "Location added")


@router.put("/locations/{location_id}", response_model=Envelope[LocationOut])
def update_location(
    location_id: int,
    payload: LocationUpdate,
    user: UserModel = Depends(current_retailer),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    return ok(LocationService(db, geocoder).update_location(user.id, "retailer", location_id, payload), "Location updated")


@router.delete("/locations/{location_id}", response_model=Envelope[None])
def delete_location(location_id: int, user: UserModel = Depends(current_retailer), db: Session = Depends(get_db)):
    LocationService(db).delete_location(user.id, "retailer", location_id)
    return ok(message="Location deleted")
