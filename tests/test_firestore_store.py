from firebase_admin import firestore

from civic_dispatch.models.issue import IssueStatus
from civic_dispatch.store.firestore_store import FirestoreStore
from civic_dispatch.utils.firestore_helpers import apply_filters


class FakeQuery:

    def __init__(self, docs=()):
        self.filters = []
        self.limit_value = None
        self.docs = list(docs)

    def where(self, field_path, op_string, value):
        self.filters.append((field_path, op_string, value))
        return self

    def limit(self, count):
        self.limit_value = count
        return self

    def stream(self):
        return iter(self.docs)


class FakeDocRef:

    def __init__(self):
        self.updates = []

    def update(self, data):
        self.updates.append(data)


class FakeCollection(FakeQuery):

    def __init__(self, docs=()):
        super().__init__(docs)
        self.doc_refs = {}

    def document(self, doc_id):
        return self.doc_refs.setdefault(doc_id, FakeDocRef())


class FakeDB:

    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())


def test_apply_filters_skips_empty_and_unwraps_enums():
    query = apply_filters(FakeQuery(), limit=5, status=IssueStatus.PENDING, assigned_to=None, category="drainage")
    assert query.filters == [("status", "==", "pending"), ("category", "==", "drainage")]
    assert query.limit_value == 5


def test_counter_uses_server_side_increment():
    db = FakeDB()
    FirestoreStore(db).increment_authority_counter("muni", "resolved_issues")

    update = db.collection("authorities").document("muni").updates[0]
    assert list(update) == ["performance_metrics.resolved_issues"]
    assert isinstance(update["performance_metrics.resolved_issues"], firestore.Increment)


def test_list_authorities_filters_in_query():
    db = FakeDB()
    assert FirestoreStore(db).list_authorities(department="drainage", status="active") == []
    assert db.collection("authorities").filters == [("department", "==", "drainage"), ("status", "==", "active")]
