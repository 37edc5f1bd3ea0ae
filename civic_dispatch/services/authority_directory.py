"""
Authority Directory - read-only ranked lookups over authority records.

Ranking (used by every lookup):
1. rating, highest first
2. average_resolution_time, lowest first
3. id, ascending (final deterministic tie-break)

Only active authorities are ever returned. This component never creates,
edits or deactivates an authority.
"""

import logging
from typing import List, Optional

from civic_dispatch.models.authority import Authority, AuthorityStatus
from civic_dispatch.store.base import CivicStore

logger = logging.getLogger(__name__)


def _department_value(department) -> str:
    return getattr(department, "value", department)


def rank_key(authority: Authority):
    metrics = authority.performance_metrics
    return (-metrics.rating, metrics.average_resolution_time, authority.id)


class AuthorityDirectory:

    def __init__(self, store: CivicStore):
        self.store = store

    def _active(self, department) -> List[Authority]:
        return self.store.list_authorities(
            department=_department_value(department),
            status=AuthorityStatus.ACTIVE.value,
        )

    def find_exact(
        self,
        department,
        state: str,
        district: Optional[str],
        municipality: Optional[str],
    ) -> Optional[Authority]:
        """
        Best active authority whose jurisdiction is exactly
        (state, district, municipality). A None district asks for a
        state-level authority, a None municipality for a district-level one.
        """
        wanted = (state, district, municipality)
        matches = [a for a in self._active(department) if a.jurisdiction.as_tuple() == wanted]
        if not matches:
            return None
        matches.sort(key=rank_key)
        return matches[0]

    def find_any_active(self, department, state: Optional[str] = None) -> Optional[Authority]:
        """
        Best active authority for the department regardless of jurisdiction.
        `state` narrows the search to authorities registered in that state.
        """
        candidates = self._active(department)
        if state is not None:
            candidates = [a for a in candidates if a.jurisdiction.state == state]
        if not candidates:
            return None
        candidates.sort(key=rank_key)
        return candidates[0]

    def list_by_department(self, department) -> List[Authority]:
        authorities = self._active(department)
        authorities.sort(key=rank_key)
        return authorities
