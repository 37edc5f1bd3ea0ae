"""
Firestore-backed store.

- Issue writes run inside a Firestore transaction that re-reads the stored
  version before committing (optimistic versioning).
- Authority counters use firestore.Increment, a server-side atomic add.
- Authority filtering beyond department/status is done in Python by the
  AuthorityDirectory; Firestore only narrows the candidate set.
"""

import logging
from typing import List, Optional

from firebase_admin import firestore

from civic_dispatch.core.errors import ConcurrentModificationError, NotFoundError
from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import Issue
from civic_dispatch.models.location import AdminPoint
from civic_dispatch.utils.firestore_helpers import apply_filters
from .base import ADMIN_POINTS, AUTHORITIES, ISSUES, CivicStore, check_counter_field

logger = logging.getLogger(__name__)


def _doc_to_dict(doc) -> dict:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


class FirestoreStore(CivicStore):

    def __init__(self, db):
        self.db = db

    # Issues

    def create_issue(self, issue: Issue) -> Issue:
        data = issue.model_dump(mode="json")
        data["version"] = 1
        # create() fails if the document already exists
        self.db.collection(ISSUES).document(issue.id).create(data)
        return Issue.model_validate(data)

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        doc = self.db.collection(ISSUES).document(issue_id).get()
        if not doc.exists:
            return None
        return Issue.model_validate(_doc_to_dict(doc))

    def save_issue(self, issue: Issue, expected_version: int) -> Issue:
        doc_ref = self.db.collection(ISSUES).document(issue.id)
        data = issue.model_dump(mode="json")
        data["version"] = expected_version + 1

        @firestore.transactional
        def _commit(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError("Issue", issue.id)
            stored_version = (snapshot.to_dict() or {}).get("version")
            if stored_version != expected_version:
                raise ConcurrentModificationError(issue.id, expected_version, stored_version)
            transaction.set(doc_ref, data)

        _commit(self.db.transaction())
        return Issue.model_validate(data)

    def list_issues(
        self,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Issue]:
        # Sorted and limited in Python; Firestore would need a composite index per filter set
        query = apply_filters(
            self.db.collection(ISSUES), status=status, assigned_to=assigned_to, category=category
        )

        issues = []
        for doc in query.stream():
            try:
                issues.append(Issue.model_validate(_doc_to_dict(doc)))
            except Exception as e:
                logger.warning(f"Skipping malformed issue document {doc.id}: {e}")

        issues.sort(key=lambda i: i.created_at, reverse=True)
        if limit is not None:
            issues = issues[:limit]
        return issues

    # Authorities

    def upsert_authority(self, authority: Authority) -> Authority:
        data = authority.model_dump(mode="json")
        self.db.collection(AUTHORITIES).document(authority.id).set(data)
        return authority

    def get_authority(self, authority_id: str) -> Optional[Authority]:
        doc = self.db.collection(AUTHORITIES).document(authority_id).get()
        if not doc.exists:
            return None
        return Authority.model_validate(_doc_to_dict(doc))

    def list_authorities(
        self,
        department: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Authority]:
        query = apply_filters(self.db.collection(AUTHORITIES), department=department, status=status)

        authorities = []
        for doc in query.stream():
            try:
                authorities.append(Authority.model_validate(_doc_to_dict(doc)))
            except Exception as e:
                logger.warning(f"Skipping malformed authority document {doc.id}: {e}")
        return authorities

    def increment_authority_counter(self, authority_id: str, field: str, amount: int = 1) -> None:
        check_counter_field(field)
        doc_ref = self.db.collection(AUTHORITIES).document(authority_id)
        doc_ref.update({f"performance_metrics.{field}": firestore.Increment(amount)})

    def set_authority_metrics(self, authority_id: str, **fields) -> None:
        doc_ref = self.db.collection(AUTHORITIES).document(authority_id)
        doc_ref.update({f"performance_metrics.{key}": value for key, value in fields.items()})

    # Admin points

    def add_admin_point(self, point: AdminPoint) -> AdminPoint:
        self.db.collection(ADMIN_POINTS).document(point.pincode).set(point.model_dump(mode="json"))
        return point

    def list_admin_points(self) -> List[AdminPoint]:
        points = []
        for doc in self.db.collection(ADMIN_POINTS).stream():
            try:
                points.append(AdminPoint.model_validate(doc.to_dict() or {}))
            except Exception as e:
                logger.warning(f"Skipping malformed admin point {doc.id}: {e}")
        return points
