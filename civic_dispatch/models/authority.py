"""
Authority models.
Authorities are created by admin tooling (outside this service) and are
mutated here only through their performance counters.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from civic_dispatch.models.jurisdiction import Jurisdiction, jurisdiction_display


class Department(str, Enum):
    """Departments an issue can be filed under and an authority can serve."""
    ROAD_MAINTENANCE = "road_maintenance"
    WASTE_MANAGEMENT = "waste_management"
    WATER_SUPPLY = "water_supply"
    ELECTRICITY = "electricity"
    FIRE_SAFETY = "fire_safety"
    PUBLIC_TRANSPORT = "public_transport"
    PARKS_RECREATION = "parks_recreation"
    STREET_LIGHTING = "street_lighting"
    DRAINAGE = "drainage"
    NOISE_POLLUTION = "noise_pollution"
    ILLEGAL_CONSTRUCTION = "illegal_construction"
    ANIMAL_CONTROL = "animal_control"
    MUNICIPAL_CORPORATION = "municipal_corporation"
    POLICE = "police"
    OTHER = "other"


class AuthorityStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class PerformanceMetrics(BaseModel):
    """
    Cached performance counters.
    Derived from issues; never the source of truth.
    """
    total_assigned_issues: int = Field(default=0, ge=0)
    resolved_issues: int = Field(default=0, ge=0)
    average_resolution_time: float = Field(default=0.0, ge=0, description="Mean resolution time in hours")
    rating: float = Field(default=5.0, ge=1, le=5)
    response_rate: float = Field(default=100.0, ge=0, le=100, description="Percentage")


class Authority(BaseModel):
    id: str
    name: str = Field(..., min_length=1, max_length=100)
    department: Department
    jurisdiction: Jurisdiction
    status: AuthorityStatus = AuthorityStatus.ACTIVE
    contact_email: Optional[str] = None
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_active(self) -> bool:
        return self.status == AuthorityStatus.ACTIVE

    @property
    def jurisdiction_level(self) -> str:
        return self.jurisdiction.level

    def jurisdiction_display(self) -> str:
        return jurisdiction_display(self.jurisdiction)

    def summary(self) -> dict:
        """Compact representation for API responses and timeline notes."""
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department.value,
            "jurisdiction": self.jurisdiction_display(),
            "level": self.jurisdiction_level,
        }
