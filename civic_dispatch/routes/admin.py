"""
Admin endpoints - verification, rejection, manual assignment and closure.

Domain errors are mapped to HTTP codes by the handlers in main.py:
ValidationError → 400, NotFoundError → 404, InvalidTransitionError → 409.
"""

from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from civic_dispatch.services.issue_lifecycle import get_issue_lifecycle
from civic_dispatch.services.reporting_service import get_reporting_service


router = APIRouter(prefix="/admin", tags=["Admin"])


class BulkActionEnum(str, Enum):
    VERIFY = "verify"
    REJECT = "reject"
    ASSIGN = "assign"


# Request models
class VerifyRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    admin_id: str = Field("admin", description="Admin identifier")


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=300, description="Why the issue is rejected")
    admin_id: str = Field("admin", description="Admin identifier")


class AssignRequest(BaseModel):
    authority_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=500)
    admin_id: str = Field("admin", description="Admin identifier")


class CloseRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    admin_id: str = Field("admin", description="Admin identifier")


class BulkActionRequest(BaseModel):
    issue_ids: List[str] = Field(..., min_length=1, max_length=100)
    action: BulkActionEnum
    authority_id: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=300)
    notes: Optional[str] = Field(None, max_length=500)
    admin_id: str = Field("admin", description="Admin identifier")


def _public(result: dict) -> dict:
    """Drop the full issue model from a lifecycle result, keep its id."""
    issue = result.get("issue")
    body = {k: v for k, v in result.items() if k != "issue"}
    if issue is not None:
        body["issue_id"] = issue.id
        body["timeline"] = issue.timeline
    return body


@router.get("/issues/pending")
async def get_pending_issues(limit: Optional[int] = Query(None, ge=1, le=500)):
    """Verification queue, oldest first."""
    issues = get_reporting_service().pending_issues(limit=limit)
    return {"count": len(issues), "issues": issues}


@router.get("/issues/manual-assignment")
async def get_manual_assignment_queue():
    """Verified issues the resolver could not assign automatically."""
    issues = get_reporting_service().manual_assignment_queue()
    return {"count": len(issues), "issues": issues}


@router.get("/issues/stats/jurisdictions")
async def get_jurisdiction_stats():
    stats = get_reporting_service().jurisdiction_stats()
    return {"count": len(stats), "jurisdictions": stats}


@router.post("/issues/bulk")
async def bulk_action(request: BulkActionRequest):
    """
    Apply verify / reject / assign to many issues.
    Each issue succeeds or fails on its own.
    """
    results = get_issue_lifecycle().bulk_action(
        request.issue_ids,
        request.action.value,
        actor=request.admin_id,
        authority_id=request.authority_id,
        reason=request.reason,
        notes=request.notes,
    )
    return {
        "action": request.action.value,
        "succeeded": sum(1 for r in results if r["success"]),
        "failed": sum(1 for r in results if not r["success"]),
        "results": results,
    }


@router.post("/issues/{issue_id}/verify")
async def verify_issue(issue_id: str, request: VerifyRequest):
    """
    Verify a pending issue and auto-assign it through the jurisdiction cascade.

    An issue with no available authority stays `verified` and is flagged for
    manual assignment; that is still a 200.
    """
    result = get_issue_lifecycle().verify_issue(issue_id, notes=request.notes, actor=request.admin_id)
    return _public(result)


@router.post("/issues/{issue_id}/reject")
async def reject_issue(issue_id: str, request: RejectRequest):
    result = get_issue_lifecycle().reject_issue(issue_id, reason=request.reason, actor=request.admin_id)
    return _public(result)


@router.post("/issues/{issue_id}/assign")
async def assign_issue(issue_id: str, request: AssignRequest):
    """Manually assign a verified issue to an active authority."""
    result = get_issue_lifecycle().assign_issue(
        issue_id, request.authority_id, notes=request.notes, actor=request.admin_id
    )
    return _public(result)


@router.post("/issues/{issue_id}/close")
async def close_issue(issue_id: str, request: CloseRequest):
    result = get_issue_lifecycle().close_issue(issue_id, notes=request.notes, actor=request.admin_id)
    return _public(result)
