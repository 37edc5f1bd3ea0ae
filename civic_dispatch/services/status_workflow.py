"""
Status Workflow Engine - strict issue state machine.

DESIGN PRINCIPLES:
- No skipping states
- No backward transitions
- rejected and closed are terminal
- Every transition produces exactly one timeline entry
"""

from datetime import datetime
from typing import Dict, FrozenSet, List, Optional
import logging

from civic_dispatch.core.errors import InvalidTransitionError, ValidationError
from civic_dispatch.models.issue import (
    ACTION_FOR_STATUS,
    Issue,
    IssueStatus,
    TimelineAction,
    TimelineEntry,
)

logger = logging.getLogger(__name__)


class StatusWorkflowEngine:
    """
    Strict state machine for issue status transitions.
    """

    ALLOWED_TRANSITIONS: Dict[IssueStatus, FrozenSet[IssueStatus]] = {
        IssueStatus.PENDING: frozenset({IssueStatus.VERIFIED, IssueStatus.REJECTED}),
        IssueStatus.VERIFIED: frozenset({IssueStatus.ASSIGNED}),
        IssueStatus.ASSIGNED: frozenset({IssueStatus.IN_PROGRESS}),
        IssueStatus.IN_PROGRESS: frozenset({IssueStatus.RESOLVED}),
        IssueStatus.RESOLVED: frozenset({IssueStatus.CLOSED}),
        IssueStatus.REJECTED: frozenset(),
        IssueStatus.CLOSED: frozenset(),
    }

    @staticmethod
    def parse_status(value) -> IssueStatus:
        """
        Raises:
            ValidationError: unknown status value
        """
        try:
            return IssueStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown status: {value}")

    @classmethod
    def is_valid_transition(cls, from_status, to_status) -> bool:
        try:
            from_enum = IssueStatus(from_status)
            to_enum = IssueStatus(to_status)
        except ValueError:
            return False
        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, frozenset())

    @classmethod
    def get_allowed_transitions(cls, current_status) -> List[str]:
        try:
            current_enum = IssueStatus(current_status)
        except ValueError:
            return []
        return sorted(s.value for s in cls.ALLOWED_TRANSITIONS.get(current_enum, frozenset()))

    @classmethod
    def validate_transition(cls, current_status, new_status) -> IssueStatus:
        """
        Returns:
            The target status as an IssueStatus

        Raises:
            ValidationError: unknown target status
            InvalidTransitionError: transition not allowed
        """
        target = cls.parse_status(new_status)
        current = IssueStatus(current_status)
        if not cls.is_valid_transition(current, target):
            raise InvalidTransitionError(
                current.value, target.value, cls.get_allowed_transitions(current)
            )
        return target

    @staticmethod
    def create_timeline_entry(
        status: IssueStatus,
        timestamp: datetime,
        actor: Optional[str] = None,
        authority_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TimelineEntry:
        return TimelineEntry(
            action=ACTION_FOR_STATUS[status],
            timestamp=timestamp,
            actor=actor,
            authority_id=authority_id,
            notes=notes or "",
        )

    @classmethod
    def apply(
        cls,
        issue: Issue,
        new_status,
        timestamp: datetime,
        actor: Optional[str] = None,
        authority_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Issue:
        """
        Validate and apply one transition to a copy of the issue.

        The input issue is never modified; on any error nothing changes.
        """
        target = cls.validate_transition(issue.status, new_status)
        entry = cls.create_timeline_entry(target, timestamp, actor, authority_id, notes)
        return issue.model_copy(update={
            "status": target,
            "timeline": [*issue.timeline, entry],
            "updated_at": timestamp,
        })

    @staticmethod
    def is_valid_history(issue: Issue) -> bool:
        """
        Audit check: the timeline is a valid path through the transition
        table that starts with `submitted` and ends at the current status.
        """
        if not issue.timeline or issue.timeline[0].action != TimelineAction.SUBMITTED:
            return False

        status_for_action = {action: status for status, action in ACTION_FOR_STATUS.items()}
        current = IssueStatus.PENDING
        for entry in issue.timeline[1:]:
            nxt = status_for_action[entry.action]
            if nxt not in StatusWorkflowEngine.ALLOWED_TRANSITIONS[current]:
                return False
            current = nxt
        return current == issue.status
