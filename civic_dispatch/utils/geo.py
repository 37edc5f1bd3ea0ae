"""
Geographic helpers shared by the local index and the location resolver.
"""

import math
from typing import Any, Tuple

from civic_dispatch.core.errors import ValidationError


EARTH_RADIUS_METERS = 6371000


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def validate_coordinates(lat: Any, lng: Any) -> Tuple[float, float]:
    """
    Parse and range-check a coordinate pair.

    Returns:
        (lat, lng) as floats

    Raises:
        ValidationError: non-numeric, non-finite or out-of-range values
    """
    try:
        latitude = float(lat)
        longitude = float(lng)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid coordinates: ({lat}, {lng})")

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValidationError(f"Invalid coordinates: ({lat}, {lng})")
    if latitude < -90 or latitude > 90:
        raise ValidationError("Latitude must be between -90 and 90")
    if longitude < -180 or longitude > 180:
        raise ValidationError("Longitude must be between -180 and 180")

    return latitude, longitude
