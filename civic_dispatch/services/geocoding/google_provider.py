import logging
from typing import Any, Dict, List, Optional

import requests

from civic_dispatch.core.errors import CollaboratorTimeoutError
from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


class GoogleMapsProvider(GeocodingProvider):
    """
    Google Maps reverse-geocoding provider.

    - Used only when GEOCODING_PROVIDER=google AND GOOGLE_MAPS_API_KEY is set.
    - In India, administrative_area_level_3 is usually the district and
      level_2 the revenue division, so level_3 is preferred.
    """

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: Optional[str], timeout: float = 3.0):
        self.api_key = api_key
        self.timeout = timeout

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        if not self.api_key:
            logger.info("GoogleMapsProvider called without API key; returning empty result.")
            return empty_result(self.name)

        params = {
            "latlng": f"{latitude},{longitude}",
            "key": self.api_key,
        }
        try:
            resp = requests.get(self.BASE_URL, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise CollaboratorTimeoutError(f"Google geocoding timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.warning(f"Google Maps reverse-geocode error: {e}")
            return empty_result(self.name)

        if resp.status_code != 200:
            logger.warning(f"Google Maps reverse-geocode failed with status {resp.status_code}")
            return empty_result(self.name)

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            logger.warning(f"Google Maps returned invalid JSON: {e}")
            return empty_result(self.name)

        results = data.get("results") or []
        if not results:
            return empty_result(self.name)

        first = results[0]
        components: List[Dict[str, Any]] = first.get("address_components") or []

        def _get_component(types):
            for wanted in types:
                for c in components:
                    if wanted in c.get("types", []):
                        return c.get("long_name")
            return None

        city = _get_component(["locality", "postal_town"])

        return {
            "formatted_address": first.get("formatted_address"),
            "state": _get_component(["administrative_area_level_1"]),
            "district": _get_component(["administrative_area_level_3", "administrative_area_level_2"]),
            "municipality": city,
            "city": city,
            "pincode": _get_component(["postal_code"]),
            "country": _get_component(["country"]),
            "provider": self.name,
        }
