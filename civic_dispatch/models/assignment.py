"""
Assignment outcome returned by the AssignmentResolver.
"""

from typing import Literal, Optional

from pydantic import BaseModel

from civic_dispatch.models.authority import Authority
from civic_dispatch.models.location import ResolvedLocation


MatchLevel = Literal["municipality", "district", "state", "global"]

# Reasons an outcome can carry no authority
REASON_LOCATION_UNRESOLVED = "location_unresolved"
REASON_NO_AUTHORITY = "no_authority"
REASON_CONFIRMATION_REQUIRED = "confirmation_required"


class AssignmentOutcome(BaseModel):
    """
    Either an (authority, matched_level) pair, or an unresolved outcome with
    a reason. Unresolved is a valid terminal result meaning "no authority
    currently available, assign manually", not an error.
    """
    authority: Optional[Authority] = None
    matched_level: Optional[MatchLevel] = None
    location: Optional[ResolvedLocation] = None
    reason: Optional[str] = None
    detail: Optional[str] = None
    # Global fallback picked an authority registered in another state
    cross_jurisdiction: bool = False
    # Proposed but not assigned (FALLBACK_POLICY=confirm)
    candidate: Optional[Authority] = None

    @property
    def is_resolved(self) -> bool:
        return self.authority is not None

    @classmethod
    def unresolved(
        cls,
        reason: str,
        location: Optional[ResolvedLocation] = None,
        detail: Optional[str] = None,
        candidate: Optional[Authority] = None,
    ) -> "AssignmentOutcome":
        return cls(reason=reason, location=location, detail=detail, candidate=candidate)

    def summary(self) -> dict:
        return {
            "authority": self.authority.summary() if self.authority else None,
            "matched_level": self.matched_level,
            "location": self.location.model_dump() if self.location else None,
            "reason": self.reason,
            "detail": self.detail,
            "cross_jurisdiction": self.cross_jurisdiction,
            "candidate": self.candidate.summary() if self.candidate else None,
        }
