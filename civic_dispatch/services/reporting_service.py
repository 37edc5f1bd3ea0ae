"""
Reporting Service - read-only admin views over issues and authorities.

- pending verification queue
- per-jurisdiction status statistics
- issues assigned to an authority
- authority performance view (cached counters next to derived values)
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from civic_dispatch.core.errors import NotFoundError
from civic_dispatch.models.issue import Issue, IssueStatus
from civic_dispatch.store.base import CivicStore
from .metrics_accumulator import MetricsAccumulator

logger = logging.getLogger(__name__)


UNKNOWN = "Unknown"


class ReportingService:

    def __init__(self, store: CivicStore):
        self.store = store
        self.metrics = MetricsAccumulator(store)

    def pending_issues(self, limit: Optional[int] = None) -> List[Issue]:
        """Issues awaiting verification, oldest first."""
        issues = self.store.list_issues(status=IssueStatus.PENDING.value)
        issues.sort(key=lambda i: (i.created_at, i.id))
        if limit is not None:
            issues = issues[:limit]
        return issues

    def manual_assignment_queue(self) -> List[Issue]:
        """Verified issues the resolver could not assign."""
        issues = self.store.list_issues(status=IssueStatus.VERIFIED.value)
        return sorted(
            (i for i in issues if i.needs_manual_assignment),
            key=lambda i: (i.created_at, i.id),
        )

    def jurisdiction_stats(self) -> List[Dict]:
        """
        Issue counts grouped by (state, district, municipality).

        Returns:
            List of {"state", "district", "municipality", "jurisdiction",
            "total", "by_status": {status: count}} sorted by jurisdiction.
        """
        groups: Dict[tuple, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for issue in self.store.list_issues():
            loc = issue.location
            key = (loc.state or UNKNOWN, loc.district or UNKNOWN, loc.municipality)
            groups[key][issue.status.value] += 1

        stats = []
        for (state, district, municipality), counts in sorted(
            groups.items(), key=lambda kv: (kv[0][0], kv[0][1], kv[0][2] or "")
        ):
            parts = [p for p in (municipality, district, state) if p]
            stats.append({
                "state": state,
                "district": district,
                "municipality": municipality,
                "jurisdiction": ", ".join(parts),
                "total": sum(counts.values()),
                "by_status": {s.value: counts.get(s.value, 0) for s in IssueStatus},
            })
        return stats

    def authority_issues(self, authority_id: str, status: Optional[str] = None) -> Dict:
        """
        Issues assigned to one authority, newest first, optionally narrowed
        to a single status.

        Raises:
            NotFoundError: unknown authority
        """
        authority = self.store.get_authority(authority_id)
        if authority is None:
            raise NotFoundError("Authority", authority_id)

        issues = self.store.list_issues(status=status, assigned_to=authority_id)
        return {
            "authority": authority.summary(),
            "count": len(issues),
            "issues": [
                {
                    "id": issue.id,
                    "title": issue.title,
                    "category": issue.category.value,
                    "priority": issue.priority.value,
                    "status": issue.status.value,
                    "jurisdiction": issue.jurisdiction_display(),
                    "created_at": issue.created_at,
                    "work_started_at": issue.work_started_at,
                }
                for issue in issues
            ],
        }

    def authority_metrics(self, authority_id: str) -> Dict:
        """
        Performance view for one authority.

        Raises:
            NotFoundError: unknown authority
        """
        authority = self.store.get_authority(authority_id)
        if authority is None:
            raise NotFoundError("Authority", authority_id)

        issues = self.store.list_issues(assigned_to=authority_id)
        in_progress = sum(1 for i in issues if i.status == IssueStatus.IN_PROGRESS)
        awaiting_start = sum(1 for i in issues if i.status == IssueStatus.ASSIGNED)

        cached = authority.performance_metrics
        derived = self.metrics.derive(authority_id)
        total = derived["total_assigned_issues"]
        resolution_rate = round(derived["resolved_issues"] / total * 100, 2) if total else 0.0

        in_sync = (
            cached.total_assigned_issues == derived["total_assigned_issues"]
            and cached.resolved_issues == derived["resolved_issues"]
        )
        if not in_sync:
            logger.warning(f"Cached metrics for authority {authority_id} drifted from issue data: {derived}")

        return {
            "authority": authority.summary(),
            "total_assigned_issues": cached.total_assigned_issues,
            "resolved_issues": cached.resolved_issues,
            "average_resolution_time": cached.average_resolution_time,
            "rating": cached.rating,
            "in_progress_issues": in_progress,
            "awaiting_start": awaiting_start,
            "resolution_rate": resolution_rate,
            "derived": derived,
            "in_sync": in_sync,
        }


_reporting_service: Optional[ReportingService] = None


def get_reporting_service() -> ReportingService:
    global _reporting_service
    if _reporting_service is None:
        from civic_dispatch.store.registry import get_store
        _reporting_service = ReportingService(get_store())
    return _reporting_service


def set_reporting_service(service: Optional[ReportingService]) -> None:
    global _reporting_service
    _reporting_service = service
