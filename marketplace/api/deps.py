# marketplace/api/deps.py
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.errors import ForbiddenError, UnauthorizedError
from marketplace.repos.user_repo import UserRepo
from marketplace.services.geocoding_client import GeocodingClient
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.payment_gateway import PaymentGateway
from marketplace.utils.security import decode_token

bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> UserModel:
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    try:
        claims = decode_token(credentials.credentials)
    except ValueError as e:
        raise UnauthorizedError(str(e)) from e

    user = UserRepo(db).get_user(int(claims["sub"]))
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return user


def require_roles(*roles: str):
    def checker(user: UserModel = Depends(get_current_user)) -> UserModel:
        if user.role not in roles:
            raise ForbiddenError("Access denied")
        return user

    return checker


current_customer = require_roles("customer")
current_retailer = require_roles("retailer")
current_admin = require_roles("admin")


# collaborators; tests swap them through app.dependency_overrides
@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_geocoder() -> GeocodingClient:
    return GeocodingClient()


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


def get_notifier(request: Request) -> NotificationService:
    return NotificationService(request.app.state.connections)
