# marketplace/repos/location_repo.py
from sqlalchemy import or_, select

from marketplace.data.models.location import LocationModel
from marketplace.data.models.user import UserModel
from marketplace.repos.base import SessionRepo


class LocationRepo(SessionRepo):
    def get_location(self, location_id: int) -> LocationModel | None:
        return self.db.get(LocationModel, location_id)

    def list_for_owner(self, owner_id: int, owner_type: str) -> list[LocationModel]:
        return list(
            self.db.execute(
                select(LocationModel)
                .where(LocationModel.owner_id == owner_id, LocationModel.owner_type == owner_type)
                .order_by(LocationModel.id)
            ).scalars()
        )

    def stores_in_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        category: str | None = None,
    ) -> list[LocationModel]:
        q = (
            select(LocationModel)
            .join(UserModel, UserModel.id == LocationModel.owner_id)
            .where(
                LocationModel.owner_type == "retailer",
                LocationModel.is_active.is_(True),
                UserModel.is_active.is_(True),
                LocationModel.latitude.between(min_lat, max_lat),
            )
        )
        if min_lng <= max_lng:
            q = q.where(LocationModel.longitude.between(min_lng, max_lng))
        else:
            # box wraps across the antimeridian
            q = q.where(or_(LocationModel.longitude >= min_lng, LocationModel.longitude <= max_lng))
        if category:
            q = q.where(LocationModel.business_category == category)
        return list(self.db.execute(q).scalars())

    def store_categories(self) -> list[str]:
        return list(
            self.db.execute(
                select(LocationModel.business_category)
                .where(
                    LocationModel.owner_type == "retailer",
                    LocationModel.business_category.is_not(None),
                )
                .distinct()
                .order_by(LocationModel.business_category)
            ).scalars()
        )
