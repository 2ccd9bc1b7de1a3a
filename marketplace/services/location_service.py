# marketplace/services/location_service.py
from datetime import datetime

from sqlalchemy.orm import Session

from marketplace.data.models.location import LocationModel
from marketplace.domain import geo
from marketplace.domain.errors import NotFoundError, ValidationError
from marketplace.domain.schemas import LocationIn, LocationUpdate, StoreLocationIn
from marketplace.repos.location_repo import LocationRepo
from marketplace.repos.retailer_repo import RetailerRepo
from marketplace.services.geocoding_client import GeocodingClient
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")
STORE_FIELDS = ("store_name", "business_category", "operating_hours", "is_active")
NULLABLE_FIELDS = ("label", "state", "country", "postal_code")
SORT_KEYS = ("distance", "rating")


def _address_line(data) -> str:
    return ", ".join(str(data[f]) for f in ADDRESS_FIELDS if data.get(f))


class LocationService:
    """
    Customer delivery addresses and retailer stores.

    Both are rows of the same table told apart by owner_type; only
    retailer rows take part in the proximity search.
    """

    def __init__(self, db: Session, geocoder: GeocodingClient | None = None):
        self.repo = LocationRepo(db)
        self.retailers = RetailerRepo(db)
        self.geocoder = geocoder

    def _resolve(self, data: dict) -> dict:
        """Coordinates from the payload, or from the geocoder when absent."""
        if data.get("latitude") is not None and data.get("longitude") is not None:
            return {"latitude": data["latitude"], "longitude": data["longitude"], "formatted_address": _address_line(data)}

        if self.geocoder is None:
            raise ValidationError("Latitude and longitude are required")
        return self.geocoder.geocode(_address_line(data))

    def _owned(self, owner_id: int, owner_type: str, location_id: int) -> LocationModel:
        location = self.repo.get_location(location_id)
        if not location or location.owner_id != owner_id or location.owner_type != owner_type:
            raise NotFoundError("Location not found")
        return location

    def _make_default(self, location: LocationModel) -> None:
        for other in self.repo.list_for_owner(location.owner_id, location.owner_type):
            if other.id != location.id and other.is_default:
                other.is_default = False
        location.is_default = True

    def list_locations(self, owner_id: int, owner_type: str) -> list[LocationModel]:
        return self.repo.list_for_owner(owner_id, owner_type)

    def add_location(self, owner_id: int, owner_type: str, payload: LocationIn) -> LocationModel:
        data = payload.model_dump(mode="json")
        coords = self._resolve(data)

        location = LocationModel(
            owner_id=owner_id,
            owner_type=owner_type,
            label=data.get("label"),
            street=data["street"],
            city=data["city"],
            state=data.get("state"),
            country=data.get("country"),
            postal_code=data.get("postal_code"),
            formatted_address=coords["formatted_address"],
            latitude=coords["latitude"],
            longitude=coords["longitude"],
            is_default=False,
            is_active=True,
            features=[],
        )
        if isinstance(payload, StoreLocationIn):
            location.store_name = data["store_name"]
            location.business_category = data["business_category"]
            location.operating_hours = data["operating_hours"]
            location.features = data["features"]

        first = not self.repo.list_for_owner(owner_id, owner_type)
        self.repo.add(location)
        if payload.is_default or first:
            self._make_default(location)

        self.repo.commit()
        logger.info(f"Added {owner_type} location {location.id} for user {owner_id}")
        return location

    def update_location(self, owner_id: int, owner_type: str, location_id: int, payload: LocationUpdate) -> LocationModel:
        location = self._owned(owner_id, owner_type, location_id)
        changes = payload.model_dump(mode="json", exclude_unset=True)

        if owner_type != "retailer" and any(changes.get(f) is not None for f in STORE_FIELDS):
            raise ValidationError("Store fields only apply to retailer locations")

        for field, value in changes.items():
            if field in ("latitude", "longitude", "is_default"):
                continue
            if value is None and field not in NULLABLE_FIELDS:
                continue
            setattr(location, field, value)

        moved = any(f in changes for f in ADDRESS_FIELDS) or changes.get("latitude") is not None
        if moved:
            current = {f: getattr(location, f) for f in ADDRESS_FIELDS}
            current.update(latitude=changes.get("latitude"), longitude=changes.get("longitude"))
            coords = self._resolve(current)
            location.latitude = coords["latitude"]
            location.longitude = coords["longitude"]
            location.formatted_address = coords["formatted_address"]

        if changes.get("is_default"):
            self._make_default(location)

        self.repo.commit()
        logger.info(f"Updated {owner_type} location {location_id}")
        return location

    def delete_location(self, owner_id: int, owner_type: str, location_id: int) -> None:
        location = self._owned(owner_id, owner_type, location_id)
        was_default = location.is_default
        self.repo.delete(location)

        if was_default:
            rest = self.repo.list_for_owner(owner_id, owner_type)
            if rest:
                rest[0].is_default = True

        self.repo.commit()
        logger.info(f"Deleted {owner_type} location {location_id}")

    def nearby_stores(
        self,
        latitude,
        longitude,
        max_distance: float = 10000,
        category: str | None = None,
        open_only: bool = False,
        limit: int = 20,
        sort_by: str = "distance",
        at: datetime | None = None,
    ) -> list[dict]:
        # reject bad input before any query runs
        geo.validate_coordinates(latitude, longitude)
        if max_distance <= 0:
            raise ValidationError("max_distance must be positive")
        if limit <= 0:
            raise ValidationError("limit must be positive")
        if sort_by not in SORT_KEYS:
            raise ValidationError(f"sort_by must be one of {', '.join(SORT_KEYS)}")

        when = at or datetime.now()
        box = geo.bounding_box(latitude, longitude, max_distance)
        candidates = self.repo.stores_in_box(*box, category=category)
        retailers = self.retailers.get_many({loc.owner_id for loc in candidates})

        results = []
        for loc in candidates:
            retailer = retailers.get(loc.owner_id)
            if retailer is None:
                continue

            distance = geo.haversine_m(latitude, longitude, loc.latitude, loc.longitude)
            if distance > max_distance:
                continue

            is_open = geo.is_open_at(loc.operating_hours, when)
            if open_only and not is_open:
                continue

            results.append(
                {
                    "location": loc,
                    "retailer": retailer,
                    "distance": round(distance),
                    "is_open": is_open,
                    "next_opening": None if is_open else geo.next_opening(loc.operating_hours, when),
                }
            )

        if sort_by == "rating":
            results.sort(key=lambda r: (-r["retailer"].average_rating, r["distance"]))
        else:
            results.sort(key=lambda r: r["distance"])

        logger.info(
            f"Nearby search at ({latitude}, {longitude}) r={max_distance}m: "
            f"{len(candidates)} in box, {len(results)} within radius"
        )
        return results[:limit]
