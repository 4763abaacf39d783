import asyncio

import pytest

from healthsync_core.domain.events import LocationSearchRequest, SearchChannel
from healthsync_core.domain.exceptions import LocationError, PlacesError, ValidationError
from healthsync_core.locator.facilities import (
    Coordinates,
    Facility,
    detect_facility_type,
    directions_url,
    haversine_km,
    place_types_for,
)
from healthsync_core.locator.geolocation import StaticGeolocator
from healthsync_core.locator.places_client import PlacesClient
from healthsync_core.locator.service import FacilityLocator


class SettingsStub:
    places_api_key = "places-key-123456"
    places_base_url = "https://maps.googleapis.com/maps/api/place"
    http_timeout = 1.0
    geolocation_timeout = 10.0


ORIGIN = Coordinates(lat=28.6139, lng=77.2090)


def place(place_id, name, lat, lng, types=()):
    return {
        "place_id": place_id,
        "name": name,
        "vicinity": f"{name} street",
        "types": list(types),
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "opening_hours": {"open_now": True},
        "rating": 4.2,
    }


class FakePlaces:
    def __init__(self, results_by_type, failing=()):
        self.results_by_type = results_by_type
        self.failing = set(failing)
        self.calls = []

    async def nearby_search(self, location, radius_m, place_type):
        self.calls.append((location, radius_m, place_type))
        if place_type in self.failing:
            raise PlacesError(code="PLACES_STATUS", message="OVER_QUERY_LIMIT")
        return self.results_by_type.get(place_type, [])


def test_place_types_mapping():
    assert place_types_for("doctor") == ["doctor", "dentist", "physiotherapist"]
    assert place_types_for("all") == ["hospital", "doctor", "dentist", "pharmacy", "drugstore", "health"]


@pytest.mark.parametrize(
    "types,name,searched,expected",
    [
        (["hospital"], "City General", "health", "hospital"),
        ([], "Apollo Hospital", "doctor", "hospital"),
        (["drugstore"], "Corner Shop", "all", "pharmacy"),
        ([], "Main Street Chemist", "health", "pharmacy"),
        (["dentist"], "Smile Studio", "dentist", "clinic"),
        ([], "Sunrise Medical Centre", "health", "clinic"),
        (["health"], "Wellness Hub", "health", "health"),
        ([], "Something", "hospital", "hospital"),
        ([], "Something", "physiotherapist", "clinic"),
        ([], "Something", "health", "unknown"),
    ],
)
def test_detect_facility_type(types, name, searched, expected):
    assert detect_facility_type(types, name, searched) == expected


def test_haversine_known_distance():
    delhi = Coordinates(28.6139, 77.2090)
    agra = Coordinates(27.1767, 78.0081)
    assert haversine_km(delhi, agra) == pytest.approx(178, abs=3)
    assert haversine_km(delhi, delhi) == 0


def test_directions_url():
    f = Facility(place_id="abc", name="City Clinic", address="x", location=ORIGIN, facility_type="clinic")
    assert directions_url(f, ORIGIN) == (
        "https://www.google.com/maps/dir/?api=1&origin=28.6139,77.209"
        "&destination=place_id:abc&travelmode=driving"
    )
    assert directions_url(f) == "https://www.google.com/maps/search/City%20Clinic"


def test_search_merges_dedupes_and_sorts_by_distance():
    far = place("p1", "Far Hospital", 28.70, 77.20, ["hospital"])
    near = place("p2", "Near Pharmacy", 28.615, 77.21, ["pharmacy"])
    places = FakePlaces(
        {"hospital": [far], "pharmacy": [near], "drugstore": [near]},
        failing={"dentist"},
    )
    locator = FacilityLocator(places, StaticGeolocator(ORIGIN.lat, ORIGIN.lng), cfg=SettingsStub())

    found = asyncio.run(locator.search_nearby_healthcare("all", 5000))

    assert [f.place_id for f in found] == ["p2", "p1"]
    assert found[0].facility_type == "pharmacy"
    assert found[0].is_open is True
    assert found[0].distance_km < found[1].distance_km
    assert len(places.calls) == 6
    assert locator.permission_status == "granted"


def test_radius_out_of_range_rejected():
    locator = FacilityLocator(FakePlaces({}), StaticGeolocator(0, 0), cfg=SettingsStub())
    with pytest.raises(ValidationError):
        asyncio.run(locator.search_nearby_healthcare("all", 100))
    with pytest.raises(ValidationError):
        asyncio.run(locator.search_nearby_healthcare("all", 60000))


@pytest.mark.parametrize(
    "exc,status",
    [(PermissionError("no"), "denied"), (OSError("gps off"), "unavailable")],
)
def test_geolocation_failures_map_to_status(exc, status):
    class Failing:
        async def locate(self):
            raise exc

    locator = FacilityLocator(FakePlaces({}), Failing(), cfg=SettingsStub())
    with pytest.raises(LocationError) as err:
        asyncio.run(locator.search_nearby_healthcare())
    assert err.value.extra["status"] == status
    assert locator.permission_status == status
    assert locator.error == err.value.message


def test_geolocation_timeout():
    class Slow:
        async def locate(self):
            await asyncio.sleep(1)

    class QuickTimeout(SettingsStub):
        geolocation_timeout = 0.01

    locator = FacilityLocator(FakePlaces({}), Slow(), cfg=QuickTimeout())
    with pytest.raises(LocationError):
        asyncio.run(locator.request_user_location())
    assert locator.permission_status == "timeout"


def test_channel_request_triggers_search():
    channel = SearchChannel()
    places = FakePlaces({"hospital": [place("p1", "General Hospital", 28.62, 77.21)]})
    locator = FacilityLocator(places, StaticGeolocator(ORIGIN.lat, ORIGIN.lng), search_channel=channel, cfg=SettingsStub())

    delivered = asyncio.run(channel.publish(LocationSearchRequest(facility_type="hospital", radius_m=2000)))

    assert delivered == 1
    assert [c[2] for c in places.calls] == ["hospital"]
    assert places.calls[0][1] == 2000
    assert locator.facilities[0].name == "General Hospital"


def test_places_client_parses_response(monkeypatch):
    captured = {}

    class Resp:
        status_code = 200

        def json(self):
            return {"status": "OK", "results": [place("p1", "A", 1, 2)]}

    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def get(self, url, params=None, **_):
            captured["url"] = url
            captured["params"] = params
            return Resp()

    monkeypatch.setattr("httpx.AsyncClient", Client)
    results = asyncio.run(PlacesClient(SettingsStub()).nearby_search(ORIGIN, 5000, "hospital"))

    assert results[0]["place_id"] == "p1"
    assert captured["url"].endswith("/nearbysearch/json")
    assert captured["params"]["location"] == "28.6139,77.209"
    assert captured["params"]["type"] == "hospital"


def test_places_client_requires_key():
    class NoKey(SettingsStub):
        places_api_key = None

    with pytest.raises(PlacesError):
        asyncio.run(PlacesClient(NoKey()).nearby_search(ORIGIN, 5000, "hospital"))
