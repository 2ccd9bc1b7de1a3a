# marketplace/api/routers/customers.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import current_customer, get_geocoder, get_notifier
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import (
    AuthOut,
    ChangePasswordIn,
    CustomerOut,
    CustomerRegisterIn,
    CustomerUpdate,
    Envelope,
    LocationIn,
    LocationOut,
    LocationUpdate,
    LoginIn,
    RetailerOut,
)
from marketplace.services.auth_service import AuthService
from marketplace.services.customer_service import CustomerService
from marketplace.services.location_service import LocationService
from marketplace.services.store_service import StoreService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("/register", response_model=Envelope[AuthOut], status_code=201)
def register(payload: CustomerRegisterIn, db: Session = Depends(get_db), notifier=Depends(get_notifier)):
    return ok(AuthService(db, notifier).register_customer(payload), "Registration successful")


@router.post("/login", response_model=Envelope[AuthOut])
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return ok(AuthService(db).login(payload.email, payload.password, role="customer"), "Login successful")


@router.get("/profile", response_model=Envelope[CustomerOut])
def get_profile(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(CustomerService(db).get_profile(user.id))


@router.put("/profile", response_model=Envelope[CustomerOut])
def update_profile(payload: CustomerUpdate, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(CustomerService(db).update_profile(user.id, payload), "Profile updated")


@router.put("/change-password", response_model=Envelope[None])
def change_password(payload: ChangePasswordIn, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    AuthService(db).change_password(user, payload.current_password, payload.new_password)
    return ok(message="Password changed")


@router.get("/favorites", response_model=Envelope[List[RetailerOut]])
def favorites(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(StoreService(db).favorites(user.id))


# delivery addresses
def get_service(db: Session, geocoder=None):
    return LocationService(db, geocoder)


@router.get("/locations", response_model=Envelope[List[LocationOut]])
def list_locations(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).list_locations(user.id, "customer"))


@router.post("/locations", response_model=Envelope[LocationOut], status_code=201)
def add_location(
    payload: LocationIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    return ok(get_service(db, geocoder).add_location(user.id, "customer", payload), "Location added")


@router.put("/locations/{location_id}", response_model=Envelope[LocationOut])
def update_location(
    location_id: int,
    payload: LocationUpdate,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    return ok(get_service(db, geocoder).update_location(user.id, "customer", location_id, payload), "Location updated")


@router.delete("/locations/{location_id}", response_model=Envelope[None])
def delete_location(location_id: int, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    get_service(db).delete_location(user.id, "customer", location_id)
    return ok(message="Location deleted")
