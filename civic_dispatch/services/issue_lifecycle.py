"""
Issue Lifecycle - applies verify / reject / assign / start / resolve / close
transitions to issues.

DESIGN PRINCIPLES:
- Every transition is validated by the StatusWorkflowEngine before anything
  is written; an invalid transition leaves the issue untouched.
- Each issue write is an optimistic compare-and-set on its version. On a
  conflict the issue is re-read and the transition re-validated, so two
  admins verifying at once yield one assignment and one
  InvalidTransitionError, never a duplicated timeline.
- Metrics and notifications run after the commit. Their failures are
  logged; the committed transition stands.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from civic_dispatch.core.errors import (
    CivicDispatchError,
    ConcurrentModificationError,
    NotFoundError,
    ValidationError,
)
from civic_dispatch.core.settings import settings
from civic_dispatch.models.assignment import (
    REASON_CONFIRMATION_REQUIRED,
    REASON_LOCATION_UNRESOLVED,
    AssignmentOutcome,
)
from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import Issue, IssueCreate, IssueStatus
from civic_dispatch.store.base import CivicStore
from .assignment_resolver import AssignmentResolver
from .metrics_accumulator import MetricsAccumulator
from .notifier import Notifier, notify_safely
from .status_workflow import StatusWorkflowEngine

logger = logging.getLogger(__name__)


MAX_REJECTION_REASON_LENGTH = 300


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_resolution_hours(created_at: datetime, work_started_at: Optional[datetime], resolved_at: datetime) -> float:
    """
    Hours between work start (or creation) and resolution, 2 decimals.
    Measured from the later of the two start candidates and never negative.
    """
    start = created_at if work_started_at is None else max(work_started_at, created_at)
    hours = (resolved_at - start).total_seconds() / 3600
    return max(0.0, round(hours, 2))


class IssueLifecycleService:

    def __init__(
        self,
        store: CivicStore,
        assignment_resolver: AssignmentResolver,
        metrics: MetricsAccumulator,
        notifier: Notifier,
        clock: Callable[[], datetime] = _utc_now,
        max_retries: int = 3,
    ):
        self.store = store
        self.assignment_resolver = assignment_resolver
        self.metrics = metrics
        self.notifier = notifier
        self.clock = clock
        self.max_retries = max_retries
        self.workflow = StatusWorkflowEngine

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_issue(self, issue_id: str) -> Issue:
        issue = self.store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError("Issue", issue_id)
        return issue

    def _get_authority(self, authority_id: str) -> Authority:
        authority = self.store.get_authority(authority_id)
        if authority is None:
            raise NotFoundError("Authority", authority_id)
        return authority

    # ------------------------------------------------------------------
    # Commit loop
    # ------------------------------------------------------------------

    def _transact(self, issue_id: str, mutate: Callable[[Issue], Tuple[Issue, object]]) -> Tuple[Issue, object]:
        """
        Read, mutate a copy, compare-and-set. Retries on version conflicts;
        errors raised by `mutate` abort immediately with nothing written.
        """
        last_conflict: Optional[ConcurrentModificationError] = None
        for attempt in range(self.max_retries + 1):
            current = self.get_issue(issue_id)
            updated, context = mutate(current)
            try:
                saved = self.store.save_issue(updated, expected_version=current.version)
                return saved, context
            except ConcurrentModificationError as e:
                last_conflict = e
                logger.warning(f"Issue {issue_id}: concurrent update on attempt {attempt + 1}, retrying")
        raise last_conflict

    def _after_assignment(self, issue: Issue, authority: Authority) -> None:
        try:
            self.metrics.record_assignment(authority.id)
        except Exception as e:
            logger.error(
                f"Metrics update failed after assigning issue {issue.id} to {authority.id}: {e}. "
                "Run a metrics rebuild for this authority.",
                exc_info=True,
            )
        notify_safely(self.notifier, issue, authority)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_issue(
        self,
        data: IssueCreate,
        reporter_id: Optional[str] = None,
        ai_analysis: Optional[Dict] = None,
        issue_id: Optional[str] = None,
    ) -> Issue:
        """Create an issue in `pending` with a single `submitted` timeline entry."""
        now = self.clock()
        issue = Issue(
            id=issue_id or uuid.uuid4().hex,
            title=data.title,
            description=data.description,
            category=data.category,
            priority=data.priority,
            location=data.location,
            reporter_id=reporter_id,
            status=IssueStatus.PENDING,
            timeline=[
                self.workflow.create_timeline_entry(
                    IssueStatus.PENDING, now, actor=reporter_id, notes="Issue submitted"
                )
            ],
            created_at=now,
            updated_at=now,
            ai_analysis=ai_analysis,
        )
        created = self.store.create_issue(issue)
        logger.info(f"Issue {created.id} submitted ({created.category.value})")
        return created

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------

    def _resolve_assignment(self, issue: Issue) -> AssignmentOutcome:
        """Run the resolver; an unexpected failure degrades to manual assignment."""
        try:
            return self.assignment_resolver.resolve_for_issue(issue)
        except CivicDispatchError as e:
            logger.warning(f"Auto-assignment for issue {issue.id} failed: {e}")
            return AssignmentOutcome.unresolved(REASON_LOCATION_UNRESOLVED, detail=str(e))
        except Exception as e:
            logger.error(f"Auto-assignment for issue {issue.id} crashed: {e}", exc_info=True)
            return AssignmentOutcome.unresolved("assignment_failed", detail=f"Auto-assignment failed: {e}")

    @staticmethod
    def _assignment_note(outcome: AssignmentOutcome) -> str:
        authority = outcome.authority
        location = outcome.location
        where = location.display() if location else "Unknown"
        note = f"Auto-assigned to {authority.name} ({outcome.matched_level} level) - Jurisdiction: {where}"
        if outcome.cross_jurisdiction:
            note += f" - cross-jurisdiction assignment to {authority.jurisdiction.state}"
        return note

    @staticmethod
    def _manual_assignment_note(notes: Optional[str], outcome: AssignmentOutcome) -> str:
        base = notes or "Issue verified"
        if outcome.reason == REASON_CONFIRMATION_REQUIRED and outcome.candidate is not None:
            return (
                f"{base} - Manual assignment required: {outcome.detail}. "
                f"Proposed authority: {outcome.candidate.name} ({outcome.candidate.id}), awaiting admin confirmation."
            )
        detail = outcome.detail or "No authority available"
        return f"{base} - Manual assignment required: {detail}"

    def verify_issue(self, issue_id: str, notes: Optional[str] = None, actor: str = "admin") -> Dict:
        """
        pending → verified, then → assigned in the same call when the
        resolver finds an authority. An unresolved outcome leaves the issue
        `verified` and flagged for manual assignment; that is a success.

        Returns:
            {"status", "assigned_authority", "matched_level", "issue", "assignment"}
        """

        def mutate(issue: Issue):
            self.workflow.validate_transition(issue.status, IssueStatus.VERIFIED)
            outcome = self._resolve_assignment(issue)
            now = self.clock()

            if outcome.location is not None:
                resolved = outcome.location
                issue = issue.model_copy(update={
                    "location": issue.location.model_copy(update={
                        "state": resolved.state,
                        "district": resolved.district,
                        "municipality": resolved.municipality,
                        "pincode": resolved.pincode or issue.location.pincode,
                    })
                })

            if outcome.is_resolved:
                authority = outcome.authority
                verified = self.workflow.apply(
                    issue, IssueStatus.VERIFIED, now, actor=actor, notes=notes or "Issue verified by admin"
                )
                assigned = self.workflow.apply(
                    verified, IssueStatus.ASSIGNED, now,
                    actor=actor, authority_id=authority.id, notes=self._assignment_note(outcome),
                )
                return assigned.model_copy(update={
                    "assigned_to": authority.id,
                    "needs_manual_assignment": False,
                }), outcome

            verified = self.workflow.apply(
                issue, IssueStatus.VERIFIED, now,
                actor=actor, notes=self._manual_assignment_note(notes, outcome),
            )
            return verified.model_copy(update={"needs_manual_assignment": True}), outcome

        saved, outcome = self._transact(issue_id, mutate)

        if outcome.is_resolved:
            logger.info(
                f"Issue {saved.id} auto-assigned to {outcome.authority.name} ({outcome.matched_level})"
            )
            self._after_assignment(saved, outcome.authority)
        else:
            logger.warning(f"Issue {saved.id} verified without assignment: {outcome.reason} ({outcome.detail})")

        return {
            "status": saved.status.value,
            "assigned_authority": outcome.authority.summary() if outcome.authority else None,
            "matched_level": outcome.matched_level,
            "needs_manual_assignment": saved.needs_manual_assignment,
            "assignment": outcome.summary(),
            "issue": saved,
        }

    def reject_issue(self, issue_id: str, reason: str, actor: str = "admin") -> Dict:
        """
        pending → rejected. A non-empty reason is required.

        Raises:
            ValidationError: missing or oversized reason
            InvalidTransitionError: issue is not pending
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        if len(reason) > MAX_REJECTION_REASON_LENGTH:
            raise ValidationError(f"Rejection reason cannot exceed {MAX_REJECTION_REASON_LENGTH} characters")

        def mutate(issue: Issue):
            rejected = self.workflow.apply(issue, IssueStatus.REJECTED, self.clock(), actor=actor, notes=reason)
            return rejected.model_copy(update={"rejection_reason": reason}), None

        saved, _ = self._transact(issue_id, mutate)
        logger.info(f"Issue {saved.id} rejected: {reason}")
        return {"status": saved.status.value, "issue": saved}

    def assign_issue(
        self,
        issue_id: str,
        authority_id: str,
        notes: Optional[str] = None,
        actor: str = "admin",
    ) -> Dict:
        """
        verified → assigned by explicit admin pick (also used to confirm a
        proposed cross-jurisdiction candidate).

        Raises:
            NotFoundError: unknown issue or authority
            ValidationError: authority is not active
            InvalidTransitionError: issue is not verified
        """
        authority = self._get_authority(authority_id)
        if not authority.is_active:
            raise ValidationError(f"Authority {authority.name} is {authority.status.value}, cannot assign")

        def mutate(issue: Issue):
            note = notes or f"Manually assigned to {authority.name}"
            if authority.department != issue.category:
                logger.warning(
                    f"Issue {issue.id} ({issue.category.value}) manually assigned to "
                    f"{authority.department.value} authority {authority.name}"
                )
                note += f" (department {authority.department.value})"
            assigned = self.workflow.apply(
                issue, IssueStatus.ASSIGNED, self.clock(), actor=actor, authority_id=authority.id, notes=note
            )
            return assigned.model_copy(update={
                "assigned_to": authority.id,
                "needs_manual_assignment": False,
            }), None

        saved, _ = self._transact(issue_id, mutate)
        logger.info(f"Issue {saved.id} manually assigned to {authority.name}")
        self._after_assignment(saved, authority)
        return {"status": saved.status.value, "assigned_authority": authority.summary(), "issue": saved}

    def close_issue(self, issue_id: str, notes: Optional[str] = None, actor: str = "admin") -> Dict:
        """resolved → closed (terminal)."""

        def mutate(issue: Issue):
            closed = self.workflow.apply(
                issue, IssueStatus.CLOSED, self.clock(), actor=actor, notes=notes or "Issue closed by admin"
            )
            return closed, None

        saved, _ = self._transact(issue_id, mutate)
        logger.info(f"Issue {saved.id} closed")
        return {"status": saved.status.value, "issue": saved}

    # ------------------------------------------------------------------
    # Authority transitions
    # ------------------------------------------------------------------

    @staticmethod
    def _check_assignee(issue: Issue, authority_id: str) -> None:
        if issue.assigned_to != authority_id:
            raise ValidationError(f"Issue {issue.id} is not assigned to authority {authority_id}")

    def start_work(self, issue_id: str, authority_id: str, notes: Optional[str] = None) -> Dict:
        """
        assigned → in_progress; records work_started_at.

        Raises:
            InvalidTransitionError: issue is not assigned
            ValidationError: caller is not the assigned authority
        """

        def mutate(issue: Issue):
            self.workflow.validate_transition(issue.status, IssueStatus.IN_PROGRESS)
            self._check_assignee(issue, authority_id)
            now = self.clock()
            started = self.workflow.apply(
                issue, IssueStatus.IN_PROGRESS, now,
                actor=authority_id, authority_id=authority_id,
                notes=notes or "Authority started working on the issue",
            )
            return started.model_copy(update={"work_started_at": now}), None

        saved, _ = self._transact(issue_id, mutate)
        logger.info(f"Authority {authority_id} started work on issue {saved.id}")
        return {"status": saved.status.value, "work_started_at": saved.work_started_at, "issue": saved}

    def resolve_issue(self, issue_id: str, authority_id: str, notes: Optional[str] = None) -> Dict:
        """
        in_progress → resolved; computes actual_resolution_time (hours).

        Raises:
            InvalidTransitionError: issue is not in progress (including already resolved)
            ValidationError: caller is not the assigned authority
        """

        def mutate(issue: Issue):
            self.workflow.validate_transition(issue.status, IssueStatus.RESOLVED)
            self._check_assignee(issue, authority_id)
            now = self.clock()
            resolved = self.workflow.apply(
                issue, IssueStatus.RESOLVED, now,
                actor=authority_id, authority_id=authority_id,
                notes=notes or "Issue resolved by authority",
            )
            update = {"resolved_at": now}
            if issue.actual_resolution_time is None:
                update["actual_resolution_time"] = compute_resolution_hours(
                    issue.created_at, issue.work_started_at, now
                )
            return resolved.model_copy(update=update), None

        saved, _ = self._transact(issue_id, mutate)
        logger.info(f"Issue {saved.id} resolved by {authority_id} in {saved.actual_resolution_time}h")

        try:
            self.metrics.record_resolution(authority_id)
        except Exception as e:
            logger.error(
                f"Metrics update failed after resolving issue {saved.id}: {e}. "
                "Run a metrics rebuild for this authority.",
                exc_info=True,
            )

        return {
            "status": saved.status.value,
            "resolved_at": saved.resolved_at,
            "actual_resolution_time": saved.actual_resolution_time,
            "issue": saved,
        }

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    BULK_ACTIONS = ("verify", "reject", "assign")

    def bulk_action(
        self,
        issue_ids: List[str],
        action: str,
        actor: str = "admin",
        authority_id: Optional[str] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> List[Dict]:
        """
        Apply one admin action to many issues. Each issue succeeds or fails
        on its own; the result list reports every outcome.

        Raises:
            ValidationError: unknown action or missing action arguments
        """
        if action not in self.BULK_ACTIONS:
            raise ValidationError(f"Unknown bulk action '{action}', expected one of {self.BULK_ACTIONS}")
        if action == "assign" and not authority_id:
            raise ValidationError("Bulk assign requires an authority_id")
        if action == "reject" and not (reason or "").strip():
            raise ValidationError("Bulk reject requires a reason")

        results = []
        for issue_id in issue_ids:
            try:
                if action == "verify":
                    outcome = self.verify_issue(issue_id, notes=notes, actor=actor)
                elif action == "reject":
                    outcome = self.reject_issue(issue_id, reason=reason, actor=actor)
                else:
                    outcome = self.assign_issue(issue_id, authority_id, notes=notes, actor=actor)
                results.append({"issue_id": issue_id, "success": True, "status": outcome["status"]})
            except CivicDispatchError as e:
                logger.warning(f"Bulk {action} failed for issue {issue_id}: {e}")
                results.append({"issue_id": issue_id, "success": False, "error": str(e)})

        succeeded = sum(1 for r in results if r["success"])
        logger.info(f"Bulk {action}: {succeeded}/{len(results)} succeeded")
        return results


# Global service instance (singleton pattern)
_issue_lifecycle: Optional[IssueLifecycleService] = None


def get_issue_lifecycle() -> IssueLifecycleService:
    """
    Get or create the IssueLifecycleService wired from settings.
    """
    global _issue_lifecycle
    if _issue_lifecycle is None:
        from civic_dispatch.store.registry import get_store
        from .authority_directory import AuthorityDirectory
        from .geo_index import LocalGeoIndex
        from .geocoding.resolver import get_geocoding_provider
        from .location_resolver import LocationResolver
        from .notifier import LoggingNotifier

        store = get_store()
        location_resolver = LocationResolver(
            geo_index=LocalGeoIndex.from_store(store),
            provider=get_geocoding_provider(),
            radius_m=settings.LOCAL_INDEX_RADIUS_METERS,
        )
        resolver = AssignmentResolver(
            directory=AuthorityDirectory(store),
            location_resolver=location_resolver,
            fallback_policy=settings.FALLBACK_POLICY,
        )
        _issue_lifecycle = IssueLifecycleService(
            store=store,
            assignment_resolver=resolver,
            metrics=MetricsAccumulator(store),
            notifier=LoggingNotifier(),
            max_retries=settings.TRANSITION_MAX_RETRIES,
        )
    return _issue_lifecycle


def set_issue_lifecycle(service: Optional[IssueLifecycleService]) -> None:
    global _issue_lifecycle
    _issue_lifecycle = service
