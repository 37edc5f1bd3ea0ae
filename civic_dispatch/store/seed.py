"""
Seed document parsing.

Seed files use the layout {collection: {doc_id: data}}. Authority documents
may carry flat jurisdiction fields (state / district / municipality), which
are validated into the jurisdiction variant here, at creation time.
"""

import json
import logging
from typing import Dict, List, Tuple

from civic_dispatch.core.errors import ValidationError
from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import ASSIGNED_STATUSES, Issue
from civic_dispatch.models.jurisdiction import jurisdiction_from_fields
from civic_dispatch.models.location import AdminPoint
from civic_dispatch.services.status_workflow import StatusWorkflowEngine
from .base import ADMIN_POINTS, AUTHORITIES, ISSUES, CivicStore

logger = logging.getLogger(__name__)


def load_seed_file(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def build_authority(doc_id: str, data: dict) -> Authority:
    """
    Create an Authority from a seed document.

    Raises:
        ValidationError: the flat jurisdiction fields break the hierarchy
    """
    data = dict(data)
    if "jurisdiction" not in data:
        data["jurisdiction"] = jurisdiction_from_fields(
            data.pop("state", None),
            data.pop("district", None),
            data.pop("municipality", None),
        )
    data.setdefault("id", doc_id)
    return Authority.model_validate(data)


def build_issue(doc_id: str, data: dict) -> Issue:
    """
    Create an Issue from a seed document. Seeded issues skip the lifecycle,
    so the timeline and assignment are checked here.

    Raises:
        ValidationError: the timeline is not a valid path to the stored
            status, or assigned_to disagrees with the status
    """
    issue = Issue.model_validate({**data, "id": data.get("id", doc_id)})
    if not StatusWorkflowEngine.is_valid_history(issue):
        raise ValidationError(
            f"Seed issue {issue.id}: timeline does not lead from submitted to {issue.status.value}"
        )
    if (issue.assigned_to is not None) != (issue.status in ASSIGNED_STATUSES):
        raise ValidationError(
            f"Seed issue {issue.id}: assigned_to={issue.assigned_to!r} is inconsistent with status {issue.status.value}"
        )
    return issue


def parse_seed(seed: Dict[str, Dict[str, dict]]) -> Tuple[List[Authority], List[AdminPoint], List[Issue]]:
    authorities = [build_authority(doc_id, data) for doc_id, data in seed.get(AUTHORITIES, {}).items()]
    points = [AdminPoint.model_validate(data) for data in seed.get(ADMIN_POINTS, {}).values()]
    issues = [build_issue(doc_id, data) for doc_id, data in seed.get(ISSUES, {}).items()]
    return authorities, points, issues


def apply_seed(store: CivicStore, seed: Dict[str, Dict[str, dict]]) -> Dict[str, int]:
    """Write parsed seed documents into a store. Returns per-collection counts."""
    authorities, points, issues = parse_seed(seed)
    for authority in authorities:
        store.upsert_authority(authority)
    for point in points:
        store.add_admin_point(point)
    for issue in issues:
        if store.get_issue(issue.id) is None:
            store.create_issue(issue)
    counts = {AUTHORITIES: len(authorities), ADMIN_POINTS: len(points), ISSUES: len(issues)}
    logger.info(f"Seed applied: {counts}")
    return counts
