import pytest

from civic_dispatch.core.errors import ValidationError
from civic_dispatch.models.assignment import (
    REASON_CONFIRMATION_REQUIRED,
    REASON_LOCATION_UNRESOLVED,
    REASON_NO_AUTHORITY,
)
from civic_dispatch.models.location import ResolvedLocation
from civic_dispatch.services.assignment_resolver import (
    FALLBACK_CONFIRM,
    FALLBACK_STATE,
    AssignmentResolver,
)
from civic_dispatch.services.authority_directory import AuthorityDirectory

from conftest import BHIMAVARAM, OPEN_SEA


def _bhimavaram():
    return ResolvedLocation(
        state="Andhra Pradesh",
        district="West Godavari",
        municipality="Bhimavaram",
        pincode="534201",
        source="local",
    )


def test_municipality_match(resolver, add_authority):
    add_authority("muni", district="West Godavari", municipality="Bhimavaram")
    add_authority("dist", district="West Godavari")
    add_authority("state")

    outcome = resolver.find_authority("road_maintenance", *BHIMAVARAM)
    assert outcome.authority.id == "muni"
    assert outcome.matched_level == "municipality"
    assert outcome.location.source == "local"


def test_district_match_when_no_municipality_authority(resolver, add_authority):
    add_authority("dist", district="West Godavari")
    add_authority("state")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "dist"
    assert outcome.matched_level == "district"


def test_state_match(resolver, add_authority):
    add_authority("ap-roads", name="Andhra Pradesh State Road Maintenance Department")
    # Other district in the same state must not match at district level
    add_authority("krishna", district="Krishna")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "ap-roads"
    assert outcome.matched_level == "state"


def test_higher_rating_wins_at_same_level(resolver, add_authority):
    add_authority("a", district="West Godavari", rating=4.2)
    add_authority("b", district="West Godavari", rating=4.8)

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "b"


def test_tie_break_on_resolution_time_then_id(resolver, add_authority):
    add_authority("slow", district="West Godavari", rating=4.5, average_resolution_time=30.0)
    add_authority("fast-b", district="West Godavari", rating=4.5, average_resolution_time=10.0)
    add_authority("fast-a", district="West Godavari", rating=4.5, average_resolution_time=10.0)

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "fast-a"


def test_inactive_and_other_department_are_skipped(resolver, add_authority):
    add_authority("suspended", district="West Godavari", municipality="Bhimavaram", status="suspended")
    add_authority("water", department="water_supply", district="West Godavari", municipality="Bhimavaram")
    add_authority("dist", district="West Godavari")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "dist"


def test_deterministic_for_same_inputs(resolver, add_authority):
    add_authority("x", district="West Godavari", rating=4.0)
    add_authority("y", district="West Godavari", rating=4.0)

    ids = {resolver.resolve("road_maintenance", _bhimavaram()).authority.id for _ in range(5)}
    assert ids == {"x"}


def test_no_authority_anywhere_is_unresolved(resolver, add_authority):
    add_authority("water", department="water_supply", district="West Godavari")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert not outcome.is_resolved
    assert outcome.reason == REASON_NO_AUTHORITY


def test_global_fallback_crosses_states_and_flags_it(resolver, add_authority):
    add_authority("ts-roads", state="Telangana", district="Hyderabad")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "ts-roads"
    assert outcome.matched_level == "global"
    assert outcome.cross_jurisdiction is True


def test_global_fallback_finds_same_state_authority_elsewhere(resolver, add_authority):
    add_authority("krishna", district="Krishna")

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.authority.id == "krishna"
    assert outcome.matched_level == "global"
    assert outcome.cross_jurisdiction is False


def test_state_policy_refuses_cross_state(store, location_resolver, add_authority):
    add_authority("ts-roads", state="Telangana")
    resolver = AssignmentResolver(AuthorityDirectory(store), location_resolver, fallback_policy=FALLBACK_STATE)

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert outcome.reason == REASON_NO_AUTHORITY


def test_confirm_policy_proposes_candidate(store, location_resolver, add_authority):
    add_authority("ts-roads", state="Telangana")
    resolver = AssignmentResolver(AuthorityDirectory(store), location_resolver, fallback_policy=FALLBACK_CONFIRM)

    outcome = resolver.resolve("road_maintenance", _bhimavaram())
    assert not outcome.is_resolved
    assert outcome.reason == REASON_CONFIRMATION_REQUIRED
    assert outcome.candidate.id == "ts-roads"


def test_unknown_policy_rejected(store, location_resolver):
    with pytest.raises(ValueError):
        AssignmentResolver(AuthorityDirectory(store), location_resolver, fallback_policy="anywhere")


def test_unresolvable_location(resolver, add_authority):
    add_authority("state")

    outcome = resolver.find_authority("road_maintenance", *OPEN_SEA)
    assert outcome.reason == REASON_LOCATION_UNRESOLVED
    assert outcome.authority is None


def test_invalid_coordinates_raise(resolver):
    with pytest.raises(ValidationError):
        resolver.find_authority("road_maintenance", 123.0, 81.5)


def test_issue_falls_back_to_stored_jurisdiction(resolver, add_authority, make_issue):
    add_authority("dist", district="West Godavari")
    issue = make_issue(coords=OPEN_SEA, state="AP", district="west godavari district")

    outcome = resolver.resolve_for_issue(issue)
    assert outcome.authority.id == "dist"
    assert outcome.location.source == "stored"
