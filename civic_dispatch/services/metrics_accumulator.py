"""
Metrics Accumulator - authority performance counters.

Counters are a cached view derived from issues, never the source of truth:
rebuild() re-derives them from the raw issue set at any time. The lifecycle
calls record_* after a transition has been committed; if an update fails the
transition stands and the counters are corrected by rebuild().
"""

import logging
from typing import Dict, List

from civic_dispatch.models.issue import ASSIGNED_STATUSES, Issue, IssueStatus
from civic_dispatch.store.base import CivicStore

logger = logging.getLogger(__name__)


def mean_resolution_time(issues: List[Issue]) -> float:
    times = [i.actual_resolution_time for i in issues if i.actual_resolution_time is not None]
    if not times:
        return 0.0
    return round(sum(times) / len(times), 2)


class MetricsAccumulator:

    def __init__(self, store: CivicStore):
        self.store = store

    def record_assignment(self, authority_id: str) -> None:
        """Atomically increment total_assigned_issues."""
        self.store.increment_authority_counter(authority_id, "total_assigned_issues", 1)
        logger.debug(f"Authority {authority_id}: total_assigned_issues +1")

    def record_resolution(self, authority_id: str) -> None:
        """
        Atomically increment resolved_issues and recompute the average
        resolution time over all of the authority's resolved issues.
        """
        self.store.increment_authority_counter(authority_id, "resolved_issues", 1)
        # Full recompute; an incremental mean would avoid the scan at higher volume
        average = mean_resolution_time(self._resolved_issues(authority_id))
        self.store.set_authority_metrics(authority_id, average_resolution_time=average)
        logger.debug(f"Authority {authority_id}: resolved_issues +1, average_resolution_time={average}h")

    def _resolved_issues(self, authority_id: str) -> List[Issue]:
        # Closed issues were resolved first and keep their resolution time
        return [
            issue
            for issue in self.store.list_issues(assigned_to=authority_id)
            if issue.status in (IssueStatus.RESOLVED, IssueStatus.CLOSED)
        ]

    def derive(self, authority_id: str) -> Dict[str, float]:
        """Compute counters from raw issues without writing them."""
        issues = self.store.list_issues(assigned_to=authority_id)
        assigned = [i for i in issues if i.status in ASSIGNED_STATUSES]
        resolved = [i for i in assigned if i.status in (IssueStatus.RESOLVED, IssueStatus.CLOSED)]
        return {
            "total_assigned_issues": len(assigned),
            "resolved_issues": len(resolved),
            "average_resolution_time": mean_resolution_time(resolved),
        }

    def rebuild(self, authority_id: str) -> Dict[str, float]:
        """Overwrite the cached counters with values derived from raw issues."""
        derived = self.derive(authority_id)
        self.store.set_authority_metrics(authority_id, **derived)
        logger.info(f"Rebuilt metrics for authority {authority_id}: {derived}")
        return derived
