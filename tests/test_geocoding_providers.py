import pytest
import requests

from civic_dispatch.core.errors import CollaboratorTimeoutError
from civic_dispatch.services.geocoding import google_provider, nominatim_provider
from civic_dispatch.services.geocoding.google_provider import GoogleMapsProvider
from civic_dispatch.services.geocoding.nominatim_provider import NominatimProvider


class FakeResponse:

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def _patch_get(monkeypatch, module, response=None, error=None):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params, headers=headers, timeout=timeout)
        if error is not None:
            raise error
        return response

    monkeypatch.setattr(module.requests, "get", fake_get)
    return captured


def test_nominatim_maps_indian_address(monkeypatch):
    payload = {
        "display_name": "Main Road, Bhimavaram, West Godavari, Andhra Pradesh, 534201, India",
        "address": {
            "town": "Bhimavaram",
            "state_district": "West Godavari",
            "state": "Andhra Pradesh",
            "postcode": "534201",
            "country": "India",
        },
    }
    captured = _patch_get(monkeypatch, nominatim_provider, FakeResponse(payload))

    result = NominatimProvider(user_agent="tests/1.0", timeout=2.0).reverse_geocode(16.54, 81.52)

    assert result["state"] == "Andhra Pradesh"
    assert result["district"] == "West Godavari"
    assert result["municipality"] == "Bhimavaram"
    assert result["pincode"] == "534201"
    assert result["provider"] == "nominatim"
    assert captured["headers"]["User-Agent"] == "tests/1.0"
    assert captured["timeout"] == 2.0


def test_nominatim_missing_state_is_not_filled_from_district(monkeypatch):
    payload = {"address": {"state_district": "West Godavari", "town": "Bhimavaram"}}
    _patch_get(monkeypatch, nominatim_provider, FakeResponse(payload))

    result = NominatimProvider().reverse_geocode(16.54, 81.52)

    assert result["state"] is None
    assert result["district"] == "West Godavari"


def test_nominatim_timeout_raises(monkeypatch):
    _patch_get(monkeypatch, nominatim_provider, error=requests.Timeout("slow"))
    with pytest.raises(CollaboratorTimeoutError):
        NominatimProvider().reverse_geocode(16.54, 81.52)


@pytest.mark.parametrize("response,error", [
    (FakeResponse({}, status_code=503), None),
    (FakeResponse(ValueError("not json")), None),
    (None, requests.ConnectionError("offline")),
])
def test_nominatim_failures_return_empty(monkeypatch, response, error):
    _patch_get(monkeypatch, nominatim_provider, response, error)
    result = NominatimProvider().reverse_geocode(16.54, 81.52)
    assert result["state"] is None
    assert result["district"] is None


def test_google_prefers_level_3_for_district(monkeypatch):
    payload = {
        "results": [{
            "formatted_address": "Bhimavaram, Andhra Pradesh 534201, India",
            "address_components": [
                {"long_name": "Bhimavaram", "types": ["locality", "political"]},
                {"long_name": "West Godavari", "types": ["administrative_area_level_3", "political"]},
                {"long_name": "Eluru Division", "types": ["administrative_area_level_2", "political"]},
                {"long_name": "Andhra Pradesh", "types": ["administrative_area_level_1", "political"]},
                {"long_name": "534201", "types": ["postal_code"]},
            ],
        }]
    }
    _patch_get(monkeypatch, google_provider, FakeResponse(payload))

    result = GoogleMapsProvider(api_key="key").reverse_geocode(16.54, 81.52)

    assert result["district"] == "West Godavari"
    assert result["state"] == "Andhra Pradesh"
    assert result["municipality"] == "Bhimavaram"
    assert result["pincode"] == "534201"


def test_google_without_key_makes_no_request(monkeypatch):
    captured = _patch_get(monkeypatch, google_provider, FakeResponse({}))
    result = GoogleMapsProvider(api_key=None).reverse_geocode(16.54, 81.52)
    assert result["provider"] == "google"
    assert captured == {}


def test_google_timeout_raises(monkeypatch):
    _patch_get(monkeypatch, google_provider, error=requests.Timeout("slow"))
    with pytest.raises(CollaboratorTimeoutError):
        GoogleMapsProvider(api_key="key").reverse_geocode(16.54, 81.52)
