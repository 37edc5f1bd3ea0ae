"""
Jurisdiction models.

A jurisdiction is one of three shapes, most general to most specific:

    StateJurisdiction          {state}
    DistrictJurisdiction       {state, district}
    MunicipalityJurisdiction   {state, district, municipality}

The hierarchy (municipality ⇒ district ⇒ state) is carried by the shape
itself: every field of a variant is required, so a municipality without a
district cannot be represented.
"""

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from civic_dispatch.core.errors import ValidationError


JurisdictionLevel = Literal["state", "district", "municipality"]


class StateJurisdiction(BaseModel):
    level: Literal["state"] = "state"
    state: str = Field(..., min_length=1)

    def as_tuple(self) -> Tuple[str, Optional[str], Optional[str]]:
        return (self.state, None, None)


class DistrictJurisdiction(BaseModel):
    level: Literal["district"] = "district"
    state: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)

    def as_tuple(self) -> Tuple[str, Optional[str], Optional[str]]:
        return (self.state, self.district, None)


class MunicipalityJurisdiction(BaseModel):
    level: Literal["municipality"] = "municipality"
    state: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    municipality: str = Field(..., min_length=1)

    def as_tuple(self) -> Tuple[str, Optional[str], Optional[str]]:
        return (self.state, self.district, self.municipality)


Jurisdiction = Annotated[
    Union[StateJurisdiction, DistrictJurisdiction, MunicipalityJurisdiction],
    Field(discriminator="level"),
]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def jurisdiction_from_fields(
    state: Optional[str],
    district: Optional[str] = None,
    municipality: Optional[str] = None,
) -> Union[StateJurisdiction, DistrictJurisdiction, MunicipalityJurisdiction]:
    """
    Build the jurisdiction variant from flat nullable fields.

    Used at authority-creation time (seed script, admin tooling). Rejects
    combinations that break the hierarchy.

    Raises:
        ValidationError: state missing, or municipality given without district
    """
    state = _clean(state)
    district = _clean(district)
    municipality = _clean(municipality)

    if not state:
        raise ValidationError("Jurisdiction requires a state")
    if municipality and not district:
        raise ValidationError(
            f"Municipality '{municipality}' requires a district in state '{state}'"
        )

    if municipality:
        return MunicipalityJurisdiction(state=state, district=district, municipality=municipality)
    if district:
        return DistrictJurisdiction(state=state, district=district)
    return StateJurisdiction(state=state)


def jurisdiction_display(jurisdiction) -> str:
    """'Bhimavaram, West Godavari, Andhra Pradesh' (most specific first)."""
    state, district, municipality = jurisdiction.as_tuple()
    return ", ".join(part for part in (municipality, district, state) if part)
