"""
Pydantic models for civic issues.
These models hold issue state; transitions live in the IssueLifecycle service.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from civic_dispatch.models.authority import Department
from civic_dispatch.models.location import Coordinates


class IssueStatus(str, Enum):
    """
    Issue lifecycle states.

    pending → verified | rejected
    verified → assigned → in_progress → resolved → closed
    """
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TimelineAction(str, Enum):
    """Timeline actions; `submitted` records the initial pending state."""
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


# Timeline action recorded when an issue enters a status
ACTION_FOR_STATUS: Dict[IssueStatus, TimelineAction] = {
    IssueStatus.PENDING: TimelineAction.SUBMITTED,
    IssueStatus.VERIFIED: TimelineAction.VERIFIED,
    IssueStatus.REJECTED: TimelineAction.REJECTED,
    IssueStatus.ASSIGNED: TimelineAction.ASSIGNED,
    IssueStatus.IN_PROGRESS: TimelineAction.IN_PROGRESS,
    IssueStatus.RESOLVED: TimelineAction.RESOLVED,
    IssueStatus.CLOSED: TimelineAction.CLOSED,
}

ASSIGNED_STATUSES = frozenset({
    IssueStatus.ASSIGNED,
    IssueStatus.IN_PROGRESS,
    IssueStatus.RESOLVED,
    IssueStatus.CLOSED,
})

TERMINAL_STATUSES = frozenset({IssueStatus.REJECTED, IssueStatus.CLOSED})


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored documents may carry naive timestamps; those are read as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueLocation(BaseModel):
    """Reported coordinates plus the administrative fields resolved for them."""
    coordinates: Coordinates
    address: Optional[str] = Field(None, max_length=500)
    state: Optional[str] = None
    district: Optional[str] = None
    municipality: Optional[str] = None
    pincode: Optional[str] = None


class TimelineEntry(BaseModel):
    """One immutable audit entry."""
    action: TimelineAction
    timestamp: datetime
    actor: Optional[str] = None
    authority_id: Optional[str] = None
    notes: str = ""

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    class Config:
        frozen = True


class IssueCreate(BaseModel):
    """
    Model for submitting a new issue.
    These are the fields citizens provide when reporting.
    """
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: Department
    priority: Priority = Priority.MEDIUM
    location: IssueLocation

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Pothole on Main Road",
                "description": "Deep pothole near the bus stand, two-wheelers slipping.",
                "category": "road_maintenance",
                "priority": "high",
                "location": {
                    "coordinates": {"lat": 16.5408, "lng": 81.5232},
                    "address": "Main Road, Bhimavaram",
                },
            }
        }


class Issue(BaseModel):
    id: str
    title: str
    description: str
    category: Department
    priority: Priority = Priority.MEDIUM
    location: IssueLocation
    reporter_id: Optional[str] = None
    status: IssueStatus = IssueStatus.PENDING
    assigned_to: Optional[str] = Field(None, description="Authority id")
    timeline: List[TimelineEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    work_started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    actual_resolution_time: Optional[float] = Field(None, ge=0, description="Hours, 2 decimals")
    rejection_reason: Optional[str] = Field(None, max_length=300)
    needs_manual_assignment: bool = False
    # Opaque signal from the AI validation collaborator, stored as received
    ai_analysis: Optional[Dict[str, Any]] = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @field_validator("created_at", "updated_at", "work_started_at", "resolved_at")
    @classmethod
    def datetimes_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def jurisdiction_display(self) -> str:
        loc = self.location
        parts = [loc.municipality, loc.district, loc.state]
        parts = [p for p in parts if p]
        return ", ".join(parts) if parts else "Unknown location"
