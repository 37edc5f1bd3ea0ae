"""
Firestore query helpers.

Enum members (IssueStatus, Department, AuthorityStatus) are stored as their
string values, so filters are normalized to plain values before they reach
the client.
"""

from enum import Enum
from typing import Any, Optional


def to_firestore_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def where_filter(query, field_path: str, op_string: str, value):
    """
    Usage:
        query = where_filter(collection, "status", "==", IssueStatus.PENDING)
        query = where_filter(query, "category", "==", "road_maintenance")
    """
    return query.where(field_path, op_string, to_firestore_value(value))


def apply_filters(query, limit: Optional[int] = None, **equals):
    """Chain equality filters for every non-empty keyword, then an optional limit."""
    for field_path, value in equals.items():
        if value:
            query = where_filter(query, field_path, "==", value)
    if limit is not None:
        query = query.limit(limit)
    return query
