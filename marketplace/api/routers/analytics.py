# marketplace/api/routers/analytics.py
from datetime import date, datetime, timedelta, timezone
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import require_roles
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.errors import ForbiddenError
from marketplace.domain.schemas import Envelope, SnapshotOut
from marketplace.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])

retailer_or_admin = require_roles("retailer", "admin")


def get_service(db: Session):
    return AnalyticsService(db)


def _check_owner(user: UserModel, retailer_id: int) -> None:
    if user.role != "admin" and user.id != retailer_id:
        raise ForbiddenError("Access denied")


def _range(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    end_date = end_date or datetime.now(timezone.utc).date()
    return start_date or end_date - timedelta(days=30), end_date


@router.get("/retailer/{retailer_id}", response_model=Envelope[List[SnapshotOut]])
def snapshots(
    retailer_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    user: UserModel = Depends(retailer_or_admin),
    db: Session = Depends(get_db),
):
    _check_owner(user, retailer_id)
    return ok(get_service(db).snapshots(retailer_id, *_range(start_date, end_date)))


@router.post("/retailer/{retailer_id}/refresh", response_model=Envelope[SnapshotOut])
def refresh(retailer_id: int, user: UserModel = Depends(retailer_or_admin), db: Session = Depends(get_db)):
    _check_owner(user, retailer_id)
    return ok(get_service(db).refresh_daily(retailer_id), "Analytics updated")


@router.get("/retailer/{retailer_id}/product/{product_id}", response_model=Envelope[List[dict]])
def product_metrics(
    retailer_id: int,
    product_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    user: UserModel = Depends(retailer_or_admin),
    db: Session = Depends(get_db),
):
    _check_owner(user, retailer_id)
    return ok(get_service(db).product_metrics(retailer_id, product_id, *_range(start_date, end_date)))


@router.get("/retailer/{retailer_id}/category/{category}", response_model=Envelope[List[dict]])
def category_metrics(
    retailer_id: int,
    category: str,
    start_date: date | None = None,
    end_date: date | None = None,
    user: UserModel = Depends(retailer_or_admin),
    db: Session = Depends(get_db),
):
    _check_owner(user, retailer_id)
    return ok(get_service(db).category_metrics(retailer_id, category, *_range(start_date, end_date)))
