import pytest
from fastapi.testclient import TestClient

from civic_dispatch.main import app
from civic_dispatch.services.issue_lifecycle import set_issue_lifecycle
from civic_dispatch.services.reporting_service import ReportingService, set_reporting_service
from civic_dispatch.store import set_store

from conftest import BHIMAVARAM


@pytest.fixture
def client(store, lifecycle):
    set_store(store)
    set_issue_lifecycle(lifecycle)
    set_reporting_service(ReportingService(store))
    yield TestClient(app)
    set_store(None)
    set_issue_lifecycle(None)
    set_reporting_service(None)


def _submit(client):
    resp = client.post("/issues", json={
        "title": "Pothole on Main Road",
        "description": "Deep pothole near the bus stand",
        "category": "road_maintenance",
        "priority": "high",
        "location": {"coordinates": {"lat": BHIMAVARAM[0], "lng": BHIMAVARAM[1]}},
        "reporter_id": "citizen-9",
    })
    assert resp.status_code == 201
    return resp.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/health/db").json()["connected"] is True


def test_issue_flow_over_http(client, add_authority, clock):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    issue = _submit(client)
    assert issue["status"] == "pending"

    pending = client.get("/admin/issues/pending").json()
    assert pending["count"] == 1

    verified = client.post(f"/admin/issues/{issue['id']}/verify", json={"notes": "Checked photo"})
    assert verified.status_code == 200
    body = verified.json()
    assert body["status"] == "assigned"
    assert body["matched_level"] == "municipality"
    assert body["issue_id"] == issue["id"]

    started = client.post(f"/authorities/muni/issues/{issue['id']}/start", json={})
    assert started.json()["status"] == "in_progress"

    clock.advance(hours=3)
    resolved = client.post(f"/authorities/muni/issues/{issue['id']}/resolve", json={"notes": "Filled"})
    assert resolved.json()["actual_resolution_time"] == 3.0

    again = client.post(f"/authorities/muni/issues/{issue['id']}/resolve", json={})
    assert again.status_code == 409
    assert again.json()["current_status"] == "resolved"

    closed = client.post(f"/admin/issues/{issue['id']}/close", json={})
    assert closed.json()["status"] == "closed"

    metrics = client.get("/authorities/muni/metrics").json()
    assert metrics["resolved_issues"] == 1
    assert metrics["resolution_rate"] == 100.0


def test_error_mapping(client, add_authority):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    issue = _submit(client)

    assert client.post("/admin/issues/missing/verify", json={}).status_code == 404
    assert client.post(f"/admin/issues/{issue['id']}/assign", json={"authority_id": "muni"}).status_code == 409
    assert client.post(f"/admin/issues/{issue['id']}/reject", json={"reason": "   "}).status_code == 400
    assert client.post(f"/admin/issues/{issue['id']}/reject", json={}).status_code == 422

    client.post(f"/admin/issues/{issue['id']}/verify", json={})
    wrong = client.post(f"/authorities/someone-else/issues/{issue['id']}/start", json={})
    assert wrong.status_code == 400


def test_find_authority_preview(client, add_authority):
    add_authority("dist", district="West Godavari")
    resp = client.get("/authorities/find", params={"department": "road_maintenance", "lat": BHIMAVARAM[0], "lng": BHIMAVARAM[1]})
    body = resp.json()
    assert body["authority"]["id"] == "dist"
    assert body["matched_level"] == "district"


def test_bulk_and_stats(client, add_authority):
    first = _submit(client)
    second = _submit(client)

    resp = client.post("/admin/issues/bulk", json={
        "issue_ids": [first["id"], second["id"], "missing"],
        "action": "reject",
        "reason": "Duplicate",
    })
    body = resp.json()
    assert body["succeeded"] == 2
    assert body["failed"] == 1

    stats = client.get("/admin/issues/stats/jurisdictions").json()
    assert stats["jurisdictions"][0]["by_status"]["rejected"] == 2


def test_metrics_rebuild(client, add_authority):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    issue = _submit(client)
    client.post(f"/admin/issues/{issue['id']}/verify", json={})

    resp = client.post("/authorities/muni/metrics/rebuild")
    assert resp.json()["metrics"]["total_assigned_issues"] == 1
    assert client.post("/authorities/ghost/metrics/rebuild").status_code == 404


def test_authority_lists_assigned_issues(client, add_authority):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    first = _submit(client)
    second = _submit(client)
    client.post(f"/admin/issues/{first['id']}/verify", json={})
    client.post(f"/admin/issues/{second['id']}/verify", json={})
    client.post(f"/authorities/muni/issues/{second['id']}/start", json={})

    body = client.get("/authorities/muni/issues").json()
    assert body["authority"]["id"] == "muni"
    assert body["count"] == 2
    assert {i["id"] for i in body["issues"]} == {first["id"], second["id"]}
    assert body["issues"][0]["jurisdiction"] == "Bhimavaram, West Godavari, Andhra Pradesh"

    started = client.get("/authorities/muni/issues", params={"status": "in_progress"}).json()
    assert [i["id"] for i in started["issues"]] == [second["id"]]

    assert client.get("/authorities/ghost/issues").status_code == 404
    assert client.get("/authorities/muni/issues", params={"status": "lost"}).status_code == 422


def test_department_lists_active_authorities_by_rank(client, add_authority):
    add_authority("dist", district="West Godavari", rating=4.2)
    add_authority("muni", district="West Godavari", municipality="Bhimavaram", rating=4.8)
    add_authority("idle", district="Krishna", rating=5.0, status="suspended")
    add_authority("water", department="water_supply", district="West Godavari")

    body = client.get("/authorities/department/road_maintenance").json()
    assert body["department"] == "road_maintenance"
    assert [a["id"] for a in body["authorities"]] == ["muni", "dist"]
    assert body["authorities"][0]["performance_metrics"]["rating"] == 4.8

    missing = client.get("/authorities/department/drainage")
    assert missing.status_code == 404
