from abc import ABC, abstractmethod
from typing import List, Optional

from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import Issue
from civic_dispatch.models.location import AdminPoint


ISSUES = "issues"
AUTHORITIES = "authorities"
ADMIN_POINTS = "admin_points"

# Counters the MetricsAccumulator may increment atomically
COUNTER_FIELDS = ("total_assigned_issues", "resolved_issues")


class CivicStore(ABC):
    """
    Persistence contract for issues, authorities and admin points.

    Contract:
    - Issues are written with optimistic versioning: save_issue succeeds only
      when the stored version equals expected_version, and stores
      expected_version + 1. Otherwise ConcurrentModificationError.
    - Authority counters are changed with increment_authority_counter, which
      must be an atomic storage-level increment (no read-modify-write).
    - Returned models are copies; mutating them never changes stored state.
    """

    # Issues

    @abstractmethod
    def create_issue(self, issue: Issue) -> Issue:
        raise NotImplementedError

    @abstractmethod
    def get_issue(self, issue_id: str) -> Optional[Issue]:
        raise NotImplementedError

    @abstractmethod
    def save_issue(self, issue: Issue, expected_version: int) -> Issue:
        raise NotImplementedError

    @abstractmethod
    def list_issues(
        self,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Issue]:
        raise NotImplementedError

    # Authorities

    @abstractmethod
    def upsert_authority(self, authority: Authority) -> Authority:
        raise NotImplementedError

    @abstractmethod
    def get_authority(self, authority_id: str) -> Optional[Authority]:
        raise NotImplementedError

    @abstractmethod
    def list_authorities(
        self,
        department: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Authority]:
        raise NotImplementedError

    @abstractmethod
    def increment_authority_counter(self, authority_id: str, field: str, amount: int = 1) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_authority_metrics(self, authority_id: str, **fields) -> None:
        """Overwrite metric fields (derived values such as the average)."""
        raise NotImplementedError

    # Local geospatial index source

    @abstractmethod
    def add_admin_point(self, point: AdminPoint) -> AdminPoint:
        raise NotImplementedError

    @abstractmethod
    def list_admin_points(self) -> List[AdminPoint]:
        raise NotImplementedError


def check_counter_field(field: str) -> None:
    if field not in COUNTER_FIELDS:
        raise ValueError(f"Unknown authority counter: {field}")
