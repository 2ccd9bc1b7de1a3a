# marketplace/services/geocoding_client.py
import requests

from marketplace.domain.errors import ValidationError
from marketplace.utils.retry import http_retry
from marketplace.utils.settings import GOOGLE_MAPS_API_KEY, GEOCODING_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class GeocodingClient:
    """Address -> coordinates through the Google Geocoding API."""

    def __init__(self, api_key: str | None = None, url: str | None = None, timeout: int = 5):
        self.api_key = api_key if api_key is not None else GOOGLE_MAPS_API_KEY
        self.url = url or GEOCODING_URL
        self.timeout = timeout

    @http_retry()
    def _fetch(self, address: str) -> dict:
        logger.info(f"GeocodingClient GET {self.url} address={address!r}")

        resp = requests.get(
            self.url,
            params={"address": address, "key": self.api_key},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def geocode(self, address: str) -> dict:
        """Returns {"latitude", "longitude", "formatted_address"} for the best match."""
        if not self.api_key:
            raise ValidationError("Geocoding is not configured, send latitude and longitude")

        try:
            body = self._fetch(address)
        except requests.RequestException as e:
            logger.error(f"Geocoding failed for {address!r}: {e}")
            raise ValidationError("Could not geocode address") from e

        results = body.get("results") or []
        if body.get("status") != "OK" or not results:
            logger.warning(f"No geocoding result for {address!r}, status={body.get('status')}")
            raise ValidationError("Could not geocode address")

        best = results[0]
        location = best["geometry"]["location"]
        return {
            "latitude": float(location["lat"]),
            "longitude": float(location["lng"]),
            "formatted_address": best.get("formatted_address", address),
        }
