"""
Authority endpoints - work on assigned issues, performance metrics and
authority lookup by location or department.
"""

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from civic_dispatch.core.errors import NoAuthorityAvailable
from civic_dispatch.models.authority import Department
from civic_dispatch.models.issue import IssueStatus
from civic_dispatch.services.issue_lifecycle import get_issue_lifecycle
from civic_dispatch.services.reporting_service import get_reporting_service


router = APIRouter(prefix="/authorities", tags=["Authorities"])


class WorkUpdateRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


@router.get("/find")
async def find_authority(
    department: Department,
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
):
    """
    Preview which authority the cascade would pick for a department at a point.
    Nothing is written.
    """
    outcome = get_issue_lifecycle().assignment_resolver.find_authority(department, lat, lng)
    return outcome.summary()


@router.get("/department/{department}")
async def list_department_authorities(department: Department):
    """Active authorities of a department, best ranked first."""
    directory = get_issue_lifecycle().assignment_resolver.directory
    ranked = directory.list_by_department(department)
    if not ranked:
        raise NoAuthorityAvailable(f"No active authorities found for department {department.value}")
    return {
        "department": department.value,
        "count": len(ranked),
        "authorities": [
            {**authority.summary(), "performance_metrics": authority.performance_metrics.model_dump()}
            for authority in ranked
        ],
    }


@router.get("/{authority_id}/issues")
async def list_assigned_issues(authority_id: str, status: Optional[IssueStatus] = None):
    return get_reporting_service().authority_issues(
        authority_id, status=status.value if status else None
    )


@router.post("/{authority_id}/issues/{issue_id}/start")
async def start_work(authority_id: str, issue_id: str, request: Optional[WorkUpdateRequest] = None):
    notes = request.notes if request else None
    result = get_issue_lifecycle().start_work(issue_id, authority_id, notes=notes)
    return {
        "issue_id": issue_id,
        "status": result["status"],
        "work_started_at": result["work_started_at"],
    }


@router.post("/{authority_id}/issues/{issue_id}/resolve")
async def resolve_issue(authority_id: str, issue_id: str, request: Optional[WorkUpdateRequest] = None):
    notes = request.notes if request else None
    result = get_issue_lifecycle().resolve_issue(issue_id, authority_id, notes=notes)
    return {
        "issue_id": issue_id,
        "status": result["status"],
        "resolved_at": result["resolved_at"],
        "actual_resolution_time": result["actual_resolution_time"],
    }


@router.get("/{authority_id}/metrics")
async def get_authority_metrics(authority_id: str):
    return get_reporting_service().authority_metrics(authority_id)


@router.post("/{authority_id}/metrics/rebuild")
async def rebuild_authority_metrics(authority_id: str):
    """Re-derive cached counters from the authority's issues."""
    # 404 for unknown authorities before writing anything
    reporting = get_reporting_service()
    reporting.authority_metrics(authority_id)
    derived = reporting.metrics.rebuild(authority_id)
    return {"authority_id": authority_id, "metrics": derived}
