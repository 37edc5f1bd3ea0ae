"""
Issue endpoints - citizen submission and issue lookup.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from civic_dispatch.models.issue import Issue, IssueCreate
from civic_dispatch.services.issue_lifecycle import get_issue_lifecycle
from civic_dispatch.services.status_workflow import StatusWorkflowEngine


router = APIRouter(prefix="/issues", tags=["Issues"])


class IssueSubmitRequest(IssueCreate):
    """Issue payload plus the optional reporter and AI validation signal."""
    reporter_id: Optional[str] = Field(None, max_length=128)
    ai_analysis: Optional[Dict[str, Any]] = None


@router.post("", response_model=Issue, status_code=status.HTTP_201_CREATED)
async def submit_issue(request: IssueSubmitRequest):
    """
    Submit a new issue. It starts in `pending` with a `submitted` timeline entry.
    """
    data = IssueCreate(**request.model_dump(exclude={"reporter_id", "ai_analysis"}))
    return get_issue_lifecycle().submit_issue(
        data, reporter_id=request.reporter_id, ai_analysis=request.ai_analysis
    )


@router.get("/{issue_id}", response_model=Issue)
async def get_issue(issue_id: str):
    return get_issue_lifecycle().get_issue(issue_id)


@router.get("/{issue_id}/allowed-transitions")
async def get_allowed_transitions(issue_id: str):
    """Next statuses reachable from the issue's current status."""
    issue = get_issue_lifecycle().get_issue(issue_id)
    return {
        "issue_id": issue.id,
        "current_status": issue.status.value,
        "allowed_transitions": StatusWorkflowEngine.get_allowed_transitions(issue.status),
    }
