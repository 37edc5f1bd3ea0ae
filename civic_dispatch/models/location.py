"""
Location models: raw coordinates, the normalized administrative record
produced by the LocationResolver, and the local index points it searches.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


LocationSource = Literal["local", "api", "stored"]


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class AdminPoint(BaseModel):
    """
    Administrative point for the local geospatial index (pincode centroid).
    """
    pincode: str = Field(..., pattern=r"^[0-9]{6}$")
    state: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    municipality: Optional[str] = None
    city: Optional[str] = None
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ResolvedLocation(BaseModel):
    """
    Normalized administrative record for a pair of coordinates.

    The LocationResolver only returns records carrying both state and
    district. Records rebuilt from fields already stored on an issue
    (source="stored") may lack a district.
    """
    state: str
    district: Optional[str] = None
    municipality: Optional[str] = None
    pincode: Optional[str] = None
    city: Optional[str] = None
    formatted_address: Optional[str] = None
    source: LocationSource

    def display(self) -> str:
        parts = [self.municipality, self.district, self.state]
        text = ", ".join(p for p in parts if p)
        if self.pincode:
            text = f"{text} (Pincode: {self.pincode})"
        return text
