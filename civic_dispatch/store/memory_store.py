"""
In-memory store for local development (USE_MOCK_DB=true) and tests.

Documents are kept as JSON-mode dicts, so every read returns a fresh model
and callers can never mutate stored state by accident. A single re-entrant
lock makes version checks and counter increments atomic within the process.
"""

import logging
import threading
from typing import Dict, List, Optional

from civic_dispatch.core.errors import ConcurrentModificationError, NotFoundError
from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import Issue
from civic_dispatch.models.location import AdminPoint
from .base import CivicStore, check_counter_field

logger = logging.getLogger(__name__)


class MemoryStore(CivicStore):

    def __init__(self):
        self._lock = threading.RLock()
        self._issues: Dict[str, dict] = {}
        self._authorities: Dict[str, dict] = {}
        self._admin_points: Dict[str, dict] = {}

    # Issues

    def create_issue(self, issue: Issue) -> Issue:
        with self._lock:
            if issue.id in self._issues:
                raise ValueError(f"Issue {issue.id} already exists")
            data = issue.model_dump(mode="json")
            data["version"] = 1
            self._issues[issue.id] = data
            return Issue.model_validate(data)

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        with self._lock:
            data = self._issues.get(issue_id)
            return Issue.model_validate(data) if data is not None else None

    def save_issue(self, issue: Issue, expected_version: int) -> Issue:
        with self._lock:
            current = self._issues.get(issue.id)
            if current is None:
                raise NotFoundError("Issue", issue.id)
            if current["version"] != expected_version:
                raise ConcurrentModificationError(issue.id, expected_version, current["version"])
            data = issue.model_dump(mode="json")
            data["version"] = expected_version + 1
            self._issues[issue.id] = data
            return Issue.model_validate(data)

    def list_issues(
        self,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Issue]:
        with self._lock:
            docs = list(self._issues.values())

        results = []
        for data in docs:
            if status and data.get("status") != status:
                continue
            if assigned_to and data.get("assigned_to") != assigned_to:
                continue
            if category and data.get("category") != category:
                continue
            results.append(Issue.model_validate(data))

        results.sort(key=lambda i: i.created_at, reverse=True)
        if limit is not None:
            results = results[:limit]
        return results

    # Authorities

    def upsert_authority(self, authority: Authority) -> Authority:
        with self._lock:
            data = authority.model_dump(mode="json")
            self._authorities[authority.id] = data
            return Authority.model_validate(data)

    def get_authority(self, authority_id: str) -> Optional[Authority]:
        with self._lock:
            data = self._authorities.get(authority_id)
            return Authority.model_validate(data) if data is not None else None

    def list_authorities(
        self,
        department: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Authority]:
        with self._lock:
            docs = list(self._authorities.values())
        return [
            Authority.model_validate(data)
            for data in docs
            if (not department or data.get("department") == department)
            and (not status or data.get("status") == status)
        ]

    def increment_authority_counter(self, authority_id: str, field: str, amount: int = 1) -> None:
        check_counter_field(field)
        with self._lock:
            data = self._authorities.get(authority_id)
            if data is None:
                raise NotFoundError("Authority", authority_id)
            metrics = data["performance_metrics"]
            metrics[field] = metrics.get(field, 0) + amount

    def set_authority_metrics(self, authority_id: str, **fields) -> None:
        with self._lock:
            data = self._authorities.get(authority_id)
            if data is None:
                raise NotFoundError("Authority", authority_id)
            data["performance_metrics"].update(fields)

    # Admin points

    def add_admin_point(self, point: AdminPoint) -> AdminPoint:
        with self._lock:
            self._admin_points[point.pincode] = point.model_dump(mode="json")
        return point

    def list_admin_points(self) -> List[AdminPoint]:
        with self._lock:
            docs = list(self._admin_points.values())
        return [AdminPoint.model_validate(data) for data in docs]
