"""
Assignment Resolver - picks the single most appropriate authority for an
issue through a strict jurisdiction cascade.

CASCADE (each level tried only if the previous one found nothing):
1. municipality  find_exact(department, state, district, municipality)
2. district      find_exact(department, state, district, None)
3. state         find_exact(department, state, None, None)
4. global        fallback according to FALLBACK_POLICY

FALLBACK POLICIES:
- global:  any active authority of the department, anywhere
- state:   only authorities registered in the issue's state
- confirm: same-state fallbacks are assigned; a cross-state candidate is
           returned unassigned for an admin to confirm

The resolver is side-effect free: it reads authorities and resolves
locations, and never mutates an issue or an authority.
"""

import logging
from typing import Optional

from civic_dispatch.core.errors import UnresolvedLocationError
from civic_dispatch.models.assignment import (
    REASON_CONFIRMATION_REQUIRED,
    REASON_LOCATION_UNRESOLVED,
    REASON_NO_AUTHORITY,
    AssignmentOutcome,
)
from civic_dispatch.models.issue import Issue
from civic_dispatch.models.location import ResolvedLocation
from civic_dispatch.utils.location_normalizer import (
    normalize_district_name,
    normalize_municipality_name,
    normalize_state_name,
)
from .authority_directory import AuthorityDirectory
from .location_resolver import LocationResolver

logger = logging.getLogger(__name__)


FALLBACK_GLOBAL = "global"
FALLBACK_STATE = "state"
FALLBACK_CONFIRM = "confirm"
FALLBACK_POLICIES = (FALLBACK_GLOBAL, FALLBACK_STATE, FALLBACK_CONFIRM)


class AssignmentResolver:

    def __init__(
        self,
        directory: AuthorityDirectory,
        location_resolver: LocationResolver,
        fallback_policy: str = FALLBACK_GLOBAL,
    ):
        if fallback_policy not in FALLBACK_POLICIES:
            raise ValueError(f"Unknown fallback policy '{fallback_policy}', expected one of {FALLBACK_POLICIES}")
        self.directory = directory
        self.location_resolver = location_resolver
        self.fallback_policy = fallback_policy

    def resolve(self, department, location: ResolvedLocation) -> AssignmentOutcome:
        """
        Run the cascade for an already-resolved location.

        Returns:
            AssignmentOutcome with authority and matched_level, or an
            unresolved outcome (reason no_authority / confirmation_required)
        """
        state = location.state
        district = location.district
        municipality = location.municipality

        if municipality and district:
            authority = self.directory.find_exact(department, state, district, municipality)
            if authority:
                return AssignmentOutcome(authority=authority, matched_level="municipality", location=location)

        if district:
            authority = self.directory.find_exact(department, state, district, None)
            if authority:
                return AssignmentOutcome(authority=authority, matched_level="district", location=location)

        authority = self.directory.find_exact(department, state, None, None)
        if authority:
            return AssignmentOutcome(authority=authority, matched_level="state", location=location)

        return self._fallback(department, location)

    def _fallback(self, department, location: ResolvedLocation) -> AssignmentOutcome:
        dept = getattr(department, "value", department)

        if self.fallback_policy == FALLBACK_STATE:
            authority = self.directory.find_any_active(department, state=location.state)
        else:
            authority = self.directory.find_any_active(department)

        if authority is None:
            logger.warning(f"No active authority for {dept} anywhere in the cascade ({location.display()})")
            return AssignmentOutcome.unresolved(
                REASON_NO_AUTHORITY,
                location=location,
                detail=f"No authority found for {dept} in {location.display()}",
            )

        cross_jurisdiction = authority.jurisdiction.state != location.state
        if cross_jurisdiction and self.fallback_policy == FALLBACK_CONFIRM:
            logger.info(
                f"Cross-state fallback {authority.name} ({authority.jurisdiction_display()}) "
                f"held for admin confirmation"
            )
            return AssignmentOutcome.unresolved(
                REASON_CONFIRMATION_REQUIRED,
                location=location,
                detail=(
                    f"Nearest available authority {authority.name} is registered in "
                    f"{authority.jurisdiction.state}, outside {location.state}"
                ),
                candidate=authority,
            )

        if cross_jurisdiction:
            logger.warning(
                f"Global fallback assigns {dept} issue in {location.state} "
                f"to {authority.name} ({authority.jurisdiction.state})"
            )
        return AssignmentOutcome(
            authority=authority,
            matched_level="global",
            location=location,
            cross_jurisdiction=cross_jurisdiction,
        )

    def find_authority(self, department, lat: float, lng: float) -> AssignmentOutcome:
        """
        Resolve coordinates and run the cascade.

        Raises:
            ValidationError: invalid coordinates
        """
        try:
            location = self.location_resolver.resolve(lat, lng)
        except UnresolvedLocationError as e:
            return AssignmentOutcome.unresolved(REASON_LOCATION_UNRESOLVED, detail=str(e))
        return self.resolve(department, location)

    def resolve_for_issue(self, issue: Issue) -> AssignmentOutcome:
        """
        Resolve an issue's coordinates, falling back to the administrative
        fields already stored on the issue when resolution fails.
        """
        coords = issue.location.coordinates
        try:
            location = self.location_resolver.resolve(coords.lat, coords.lng)
        except UnresolvedLocationError as e:
            location = self._stored_location(issue)
            if location is None:
                logger.warning(f"Issue {issue.id}: location unresolved and no stored jurisdiction ({e})")
                return AssignmentOutcome.unresolved(REASON_LOCATION_UNRESOLVED, detail=str(e))
            logger.info(f"Issue {issue.id}: using stored jurisdiction {location.display()} ({e})")

        return self.resolve(issue.category, location)

    @staticmethod
    def _stored_location(issue: Issue) -> Optional[ResolvedLocation]:
        loc = issue.location
        state = normalize_state_name(loc.state)
        if not state:
            return None
        district = normalize_district_name(loc.district)
        return ResolvedLocation(
            state=state,
            district=district,
            municipality=normalize_municipality_name(loc.municipality) if district else None,
            pincode=loc.pincode,
            source="stored",
        )
