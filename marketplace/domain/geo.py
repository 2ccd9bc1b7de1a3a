# marketplace/domain/geo.py
"""
Pure helpers for the store locator: distances, search boxes and
opening hours. Nothing here touches the database.

Opening hours are a mapping of lowercase weekday -> {"open": "HH:MM",
"close": "HH:MM", "is_open": bool}. Times are compared as strings, so
they must be zero padded; a store closing after midnight is not supported.
"""
import math
from datetime import datetime

from marketplace.domain.errors import ValidationError

EARTH_RADIUS_M = 6_371_000
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def validate_coordinates(latitude, longitude) -> None:
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        raise ValidationError("Invalid coordinates format")
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        raise ValidationError("Invalid coordinates format")
    if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        raise ValidationError("Invalid coordinates values")


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(latitude: float, longitude: float, radius_m: float) -> tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lng, max_lng) enclosing the radius.

    Near the poles the longitude span is the whole globe. A box crossing
    the antimeridian comes back with min_lng > max_lng, meaning the range
    wraps: lng >= min_lng or lng <= max_lng.
    """
    d_lat = math.degrees(radius_m / EARTH_RADIUS_M)
    min_lat = max(-90.0, latitude - d_lat)
    max_lat = min(90.0, latitude + d_lat)

    cos_lat = math.cos(math.radians(latitude))
    if max_lat >= 90.0 or min_lat <= -90.0 or cos_lat < 1e-9:
        return min_lat, max_lat, -180.0, 180.0

    d_lng = math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
    if d_lng >= 180.0:
        return min_lat, max_lat, -180.0, 180.0

    min_lng, max_lng = longitude - d_lng, longitude + d_lng
    if min_lng < -180.0:
        min_lng += 360.0
    if max_lng > 180.0:
        max_lng -= 360.0
    return min_lat, max_lat, min_lng, max_lng


def is_open_at(operating_hours: dict | None, when: datetime) -> bool:
    hours = (operating_hours or {}).get(WEEKDAYS[when.weekday()])
    if not hours or not hours.get("is_open"):
        return False

    now = when.strftime("%H:%M")
    return hours.get("open", "") <= now <= hours.get("close", "")


def next_opening(operating_hours: dict | None, when: datetime) -> dict | None:
    """First opening within a week; today counts only before its opening time."""
    now = when.strftime("%H:%M")
    today = when.weekday()

    for offset in range(7):
        day = WEEKDAYS[(today + offset) % 7]
        hours = (operating_hours or {}).get(day)
        if not hours or not hours.get("is_open"):
            continue
        if offset == 0 and now >= hours.get("open", ""):
            continue
        return {"day": day.capitalize(), "time": hours["open"]}

    return None
