"""Shared fixtures: in-memory store, stub geocoder, recording notifier and a
lifecycle service wired to a controllable clock.

The project root is added to sys.path so `import civic_dispatch` works
without an editable install.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from civic_dispatch.core.errors import CollaboratorTimeoutError  # noqa: E402
from civic_dispatch.models.authority import Authority, PerformanceMetrics  # noqa: E402
from civic_dispatch.models.issue import IssueCreate, IssueLocation  # noqa: E402
from civic_dispatch.models.jurisdiction import jurisdiction_from_fields  # noqa: E402
from civic_dispatch.models.location import AdminPoint, Coordinates  # noqa: E402
from civic_dispatch.services.assignment_resolver import AssignmentResolver  # noqa: E402
from civic_dispatch.services.authority_directory import AuthorityDirectory  # noqa: E402
from civic_dispatch.services.geo_index import LocalGeoIndex  # noqa: E402
from civic_dispatch.services.geocoding.base import GeocodingProvider, empty_result  # noqa: E402
from civic_dispatch.services.issue_lifecycle import IssueLifecycleService  # noqa: E402
from civic_dispatch.services.location_resolver import LocationResolver  # noqa: E402
from civic_dispatch.services.metrics_accumulator import MetricsAccumulator  # noqa: E402
from civic_dispatch.services.notifier import Notifier  # noqa: E402
from civic_dispatch.store.memory_store import MemoryStore  # noqa: E402


BHIMAVARAM = (16.5449, 81.5212)
HYDERABAD = (17.3850, 78.4867)
# Far from every seeded admin point
OPEN_SEA = (14.0, 86.0)


class StubGeocoder(GeocodingProvider):
    """Returns a canned result, or raises a timeout when `timeout` is set."""

    name = "stub"

    def __init__(self, result=None, timeout=False):
        self.result = result
        self.timeout = timeout
        self.calls = []

    def reverse_geocode(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.timeout:
            raise CollaboratorTimeoutError("stub geocoder timed out")
        data = empty_result(self.name)
        if self.result:
            data.update(self.result)
        return data


class RecordingNotifier(Notifier):

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def notify(self, issue, authority):
        if self.fail:
            raise RuntimeError("push gateway down")
        self.sent.append((issue.id, authority.id))


class FixedClock:

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def add_authority(store):
    def _add(
        authority_id,
        department="road_maintenance",
        state="Andhra Pradesh",
        district=None,
        municipality=None,
        rating=5.0,
        average_resolution_time=0.0,
        status="active",
        name=None,
    ):
        authority = Authority(
            id=authority_id,
            name=name or f"Authority {authority_id}",
            department=department,
            jurisdiction=jurisdiction_from_fields(state, district, municipality),
            status=status,
            performance_metrics=PerformanceMetrics(
                rating=rating, average_resolution_time=average_resolution_time
            ),
        )
        return store.upsert_authority(authority)

    return _add


@pytest.fixture
def bhimavaram_point():
    return AdminPoint(
        pincode="534201",
        state="Andhra Pradesh",
        district="West Godavari",
        municipality="Bhimavaram",
        city="Bhimavaram",
        lat=BHIMAVARAM[0],
        lng=BHIMAVARAM[1],
    )


@pytest.fixture
def geo_index(store, bhimavaram_point):
    store.add_admin_point(bhimavaram_point)
    return LocalGeoIndex.from_store(store)


@pytest.fixture
def geocoder():
    return StubGeocoder()


@pytest.fixture
def location_resolver(geo_index, geocoder):
    return LocationResolver(geo_index, geocoder, radius_m=10000)


@pytest.fixture
def resolver(store, location_resolver):
    return AssignmentResolver(AuthorityDirectory(store), location_resolver)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def lifecycle(store, resolver, notifier, clock):
    return IssueLifecycleService(
        store=store,
        assignment_resolver=resolver,
        metrics=MetricsAccumulator(store),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def make_issue(lifecycle):
    def _make(coords=BHIMAVARAM, category="road_maintenance", **location_fields):
        data = IssueCreate(
            title="Pothole on Main Road",
            description="Deep pothole near the bus stand",
            category=category,
            location=IssueLocation(
                coordinates=Coordinates(lat=coords[0], lng=coords[1]),
                **location_fields,
            ),
        )
        return lifecycle.submit_issue(data, reporter_id="citizen-1")

    return _make
