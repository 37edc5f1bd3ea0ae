"""
Location Resolver - coordinates to administrative hierarchy.

Two tiers, tried in order:
1. Local geospatial index (nearest admin point within a bounded radius).
   No network calls on this path.
2. External reverse geocoder, with canonicalization of the returned names.

The resolver never partially resolves: it returns a record carrying at least
state and district, or raises UnresolvedLocationError.
"""

import logging
from typing import Optional

from civic_dispatch.core.errors import CollaboratorTimeoutError, UnresolvedLocationError
from civic_dispatch.models.location import ResolvedLocation
from civic_dispatch.utils.geo import validate_coordinates
from civic_dispatch.utils.location_normalizer import (
    normalize_district_name,
    normalize_municipality_name,
    normalize_pincode,
    normalize_state_name,
)
from .geo_index import LocalGeoIndex
from .geocoding.base import GeocodingProvider

logger = logging.getLogger(__name__)


class LocationResolver:

    def __init__(
        self,
        geo_index: LocalGeoIndex,
        provider: Optional[GeocodingProvider],
        radius_m: float = 10000.0,
    ):
        self.geo_index = geo_index
        self.provider = provider
        self.radius_m = radius_m

    def resolve(self, lat: float, lng: float) -> ResolvedLocation:
        """
        Resolve coordinates to a normalized administrative record.

        Raises:
            ValidationError: invalid coordinates
            UnresolvedLocationError: neither tier produced state and district
        """
        lat, lng = validate_coordinates(lat, lng)

        local = self._resolve_local(lat, lng)
        if local is not None:
            return local

        return self._resolve_remote(lat, lng)

    def _resolve_local(self, lat: float, lng: float) -> Optional[ResolvedLocation]:
        hit = self.geo_index.nearest(lat, lng, self.radius_m)
        if hit is None:
            logger.info(f"No admin point within {self.radius_m:.0f}m of ({lat}, {lng}), trying geocoder")
            return None

        point, distance = hit
        logger.info(f"Location ({lat}, {lng}) resolved locally to pincode {point.pincode} ({distance:.0f}m)")
        return ResolvedLocation(
            state=point.state,
            district=point.district,
            municipality=point.municipality,
            pincode=point.pincode,
            city=point.city,
            source="local",
        )

    def _resolve_remote(self, lat: float, lng: float) -> ResolvedLocation:
        if self.provider is None:
            raise UnresolvedLocationError(f"No geocoding provider configured for ({lat}, {lng})")

        try:
            raw = self.provider.reverse_geocode(lat, lng)
        except CollaboratorTimeoutError as e:
            logger.warning(f"Geocoding timed out for ({lat}, {lng}): {e}")
            raise UnresolvedLocationError(f"Geocoding timed out: {e}") from e

        state = normalize_state_name(raw.get("state"))
        district = normalize_district_name(raw.get("district"))
        if not state or not district:
            logger.warning(
                f"Geocoder '{raw.get('provider')}' returned incomplete location for ({lat}, {lng}): "
                f"state={raw.get('state')}, district={raw.get('district')}"
            )
            raise UnresolvedLocationError(f"Could not resolve location for ({lat}, {lng})")

        resolved = ResolvedLocation(
            state=state,
            district=district,
            municipality=normalize_municipality_name(raw.get("municipality")),
            pincode=normalize_pincode(raw.get("pincode")),
            city=raw.get("city"),
            formatted_address=raw.get("formatted_address"),
            source="api",
        )
        logger.info(f"Location ({lat}, {lng}) resolved via {raw.get('provider')}: {resolved.display()}")
        return resolved
