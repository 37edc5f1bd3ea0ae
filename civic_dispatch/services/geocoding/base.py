from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class GeocodingProvider(ABC):
    """
    Abstract reverse-geocoding provider.

    Contract:
    - Input: latitude, longitude (floats)
    - Output: dict with well-known keys:
      {
        "formatted_address": str | None,
        "state": str | None,
        "district": str | None,
        "municipality": str | None,
        "city": str | None,
        "pincode": str | None,
        "country": str | None,
        "provider": str
      }
    - Values are raw provider spellings; canonicalization is the caller's job.
    - A network timeout raises CollaboratorTimeoutError.
    - Every other failure returns empty fields (never raises).
    - Implementations must pass an explicit request timeout.
    """

    name: str = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        raise NotImplementedError


def empty_result(provider: str) -> Dict[str, Optional[str]]:
    return {
        "formatted_address": None,
        "state": None,
        "district": None,
        "municipality": None,
        "city": None,
        "pincode": None,
        "country": None,
        "provider": provider,
    }
