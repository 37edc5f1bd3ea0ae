import logging
from typing import Any, Dict, Optional

import requests

from civic_dispatch.core.errors import CollaboratorTimeoutError
from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse-geocoding provider.

    - No API key required.
    - Includes a User-Agent header as required by Nominatim usage policy.
    - Indian addresses: `state_district` / `county` carry the district,
      `municipality` is often absent and falls back to city/town.
    """

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/reverse"

    def __init__(self, user_agent: str = "civic-dispatch/1.0", timeout: float = 3.0):
        self.user_agent = user_agent
        self.timeout = timeout

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
            "addressdetails": 1,
        }
        headers = {"User-Agent": self.user_agent}

        try:
            resp = requests.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise CollaboratorTimeoutError(f"Nominatim timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return empty_result(self.name)

        if resp.status_code != 200:
            logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
            return empty_result(self.name)

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            logger.warning(f"Nominatim returned invalid JSON: {e}")
            return empty_result(self.name)

        address = data.get("address") or {}
        city = address.get("city") or address.get("town") or address.get("village")

        return {
            "formatted_address": data.get("display_name"),
            "state": address.get("state"),
            "district": address.get("state_district") or address.get("county"),
            "municipality": address.get("municipality") or city,
            "city": city,
            "pincode": address.get("postcode"),
            "country": address.get("country"),
            "provider": self.name,
        }
