import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from civic_dispatch.core.errors import NotFoundError
from civic_dispatch.services.metrics_accumulator import MetricsAccumulator, mean_resolution_time
from civic_dispatch.services.reporting_service import ReportingService

from conftest import OPEN_SEA


def _work_through(lifecycle, clock, make_issue, hours):
    issue = make_issue()
    lifecycle.verify_issue(issue.id)
    lifecycle.start_work(issue.id, "muni")
    clock.advance(hours=hours)
    lifecycle.resolve_issue(issue.id, "muni")
    return issue


def test_average_over_all_resolved_issues(lifecycle, clock, make_issue, add_authority, store):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    _work_through(lifecycle, clock, make_issue, 2)
    closed = _work_through(lifecycle, clock, make_issue, 4)
    lifecycle.close_issue(closed.id)
    _work_through(lifecycle, clock, make_issue, 5)

    metrics = store.get_authority("muni").performance_metrics
    assert metrics.total_assigned_issues == 3
    assert metrics.resolved_issues == 3
    assert metrics.average_resolution_time == pytest.approx(3.67)


def test_rebuild_repairs_drifted_counters(lifecycle, clock, make_issue, add_authority, store):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    _work_through(lifecycle, clock, make_issue, 3)
    lifecycle.verify_issue(make_issue().id)

    store.set_authority_metrics("muni", total_assigned_issues=40, resolved_issues=0, average_resolution_time=0.0)
    derived = MetricsAccumulator(store).rebuild("muni")

    assert derived == {"total_assigned_issues": 2, "resolved_issues": 1, "average_resolution_time": 3.0}
    metrics = store.get_authority("muni").performance_metrics
    assert metrics.total_assigned_issues == 2
    assert metrics.resolved_issues == 1


def test_mean_of_nothing_is_zero():
    assert mean_resolution_time([]) == 0.0


def test_metrics_failure_keeps_transition(lifecycle, make_issue, add_authority, store, monkeypatch):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")

    def broken(*args, **kwargs):
        raise RuntimeError("counter backend down")

    monkeypatch.setattr(store, "increment_authority_counter", broken)
    issue = make_issue()

    assert lifecycle.verify_issue(issue.id)["status"] == "assigned"
    assert store.get_issue(issue.id).assigned_to == "muni"


def test_authority_metrics_view(lifecycle, clock, make_issue, add_authority, store):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram", rating=4.6)
    _work_through(lifecycle, clock, make_issue, 1)
    started = make_issue()
    lifecycle.verify_issue(started.id)
    lifecycle.start_work(started.id, "muni")
    lifecycle.verify_issue(make_issue().id)

    view = ReportingService(store).authority_metrics("muni")

    assert view["total_assigned_issues"] == 3
    assert view["resolved_issues"] == 1
    assert view["in_progress_issues"] == 1
    assert view["awaiting_start"] == 1
    assert view["resolution_rate"] == pytest.approx(33.33)
    assert view["rating"] == 4.6
    assert view["in_sync"] is True


def test_authority_metrics_unknown(store):
    with pytest.raises(NotFoundError):
        ReportingService(store).authority_metrics("ghost")


def test_pending_queue_and_jurisdiction_stats(lifecycle, clock, make_issue, add_authority, store):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    first = make_issue()
    clock.advance(minutes=5)
    second = make_issue()
    clock.advance(minutes=5)
    assigned = make_issue()
    lifecycle.verify_issue(assigned.id)
    unknown = make_issue(coords=OPEN_SEA)
    lifecycle.verify_issue(unknown.id)

    reporting = ReportingService(store)
    assert [i.id for i in reporting.pending_issues()] == [first.id, second.id]
    assert [i.id for i in reporting.pending_issues(limit=1)] == [first.id]
    assert [i.id for i in reporting.manual_assignment_queue()] == [unknown.id]

    stats = reporting.jurisdiction_stats()
    by_place = {s["jurisdiction"]: s for s in stats}
    bhimavaram = by_place["Bhimavaram, West Godavari, Andhra Pradesh"]
    assert bhimavaram["total"] == 1
    assert bhimavaram["by_status"]["assigned"] == 1
    unresolved = by_place["Unknown, Unknown"]
    assert unresolved["total"] == 3
    assert unresolved["by_status"]["pending"] == 2
    assert unresolved["by_status"]["verified"] == 1


def test_parallel_counter_updates_are_not_lost(store, add_authority):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    metrics = MetricsAccumulator(store)
    workers = 16
    barrier = threading.Barrier(workers)

    def record(_):
        barrier.wait()
        metrics.record_assignment("muni")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(record, range(workers)))

    assert store.get_authority("muni").performance_metrics.total_assigned_issues == workers
