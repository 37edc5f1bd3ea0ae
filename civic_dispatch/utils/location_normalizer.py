"""
Administrative name normalization.

Geocoders return the same place under several spellings ("AP",
"andhra pradesh", "WEST GODAVARI"). Authorities are registered under one
canonical spelling, so every name coming from an external provider passes
through here before it is used for matching.

Deterministic: same input always produces same output.
"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


# Lowercased alias -> canonical state name
STATE_ALIASES: Dict[str, str] = {
    "andhra pradesh": "Andhra Pradesh",
    "ap": "Andhra Pradesh",
    "telangana": "Telangana",
    "ts": "Telangana",
    "tg": "Telangana",
    "tamil nadu": "Tamil Nadu",
    "tamilnadu": "Tamil Nadu",
    "tn": "Tamil Nadu",
    "karnataka": "Karnataka",
    "ka": "Karnataka",
    "maharashtra": "Maharashtra",
    "mh": "Maharashtra",
    "kerala": "Kerala",
    "kl": "Kerala",
    "odisha": "Odisha",
    "orissa": "Odisha",
    "od": "Odisha",
    "west bengal": "West Bengal",
    "wb": "West Bengal",
    "uttar pradesh": "Uttar Pradesh",
    "up": "Uttar Pradesh",
    "madhya pradesh": "Madhya Pradesh",
    "mp": "Madhya Pradesh",
    "gujarat": "Gujarat",
    "gj": "Gujarat",
    "rajasthan": "Rajasthan",
    "rj": "Rajasthan",
    "bihar": "Bihar",
    "br": "Bihar",
    "jharkhand": "Jharkhand",
    "jh": "Jharkhand",
    "chhattisgarh": "Chhattisgarh",
    "cg": "Chhattisgarh",
    "delhi": "Delhi",
    "nct of delhi": "Delhi",
    "dl": "Delhi",
    "punjab": "Punjab",
    "pb": "Punjab",
    "haryana": "Haryana",
    "hr": "Haryana",
    "goa": "Goa",
    "ga": "Goa",
}


def title_case(value: str) -> str:
    """'WEST godavari' -> 'West Godavari'; collapses repeated whitespace."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split())


def normalize_state_name(state: Optional[str]) -> Optional[str]:
    if not state or not isinstance(state, str):
        return None
    cleaned = " ".join(state.split())
    if not cleaned:
        return None
    canonical = STATE_ALIASES.get(cleaned.lower())
    if canonical:
        return canonical
    return title_case(cleaned)


def normalize_district_name(district: Optional[str]) -> Optional[str]:
    if not district or not isinstance(district, str):
        return None
    cleaned = district.strip()
    if not cleaned:
        return None
    # Nominatim sometimes suffixes the district ("West Godavari District")
    if cleaned.lower().endswith(" district"):
        cleaned = cleaned[: -len(" district")]
    return title_case(cleaned)


def normalize_municipality_name(municipality: Optional[str]) -> Optional[str]:
    if not municipality or not isinstance(municipality, str):
        return None
    cleaned = municipality.strip()
    if not cleaned:
        return None
    return title_case(cleaned)


def normalize_pincode(pincode: Optional[str]) -> Optional[str]:
    """Indian pincodes are 6 digits; anything else is dropped."""
    if pincode is None:
        return None
    digits = "".join(ch for ch in str(pincode) if ch.isdigit())
    if len(digits) != 6:
        if digits:
            logger.debug(f"Discarding malformed pincode: {pincode}")
        return None
    return digits
