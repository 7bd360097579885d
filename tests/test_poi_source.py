import asyncio

from pictomap.domain.errors import PermanentNetworkFailure, TransientNetworkFailure
from pictomap.domain.models import BoundingBox, PointOfInterestQuery
from pictomap.services import poi_source as ps
from pictomap.services.poi_source import OverpassPoiSource, build_address, build_overpass_query
from pictomap.services.retry import RetryPolicy

BOUNDS = BoundingBox(south=48.20, west=16.36, north=48.21, east=16.38)


class FakeOverpass:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


async def _no_sleep(delay):
    return None


def _source(**kwargs):
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=2, delay=0, sleep=_no_sleep))
    return OverpassPoiSource(**kwargs)


def test_empty_types_returns_nothing_without_request(monkeypatch):
    fake = FakeOverpass([])
    monkeypatch.setattr(ps, "get_json", fake)

    result = asyncio.run(_source().fetch(BOUNDS, PointOfInterestQuery(types=[])))

    assert result == []
    assert fake.calls == []


def test_default_types_and_limit_build_query(monkeypatch):
    fake = FakeOverpass([{"elements": []}])
    monkeypatch.setattr(ps, "get_json", fake)

    asyncio.run(_source(element_kinds=["node", "way"], default_limit=10, timeout=20).fetch(BOUNDS))

    query = fake.calls[0]["params"]["data"]
    bbox = "48.2,16.36,48.21,16.38"
    assert query.startswith("[out:json][timeout:20];(")
    assert f'node["shop"]({bbox});way["shop"]({bbox});' in query
    assert f'node["leisure"]({bbox});way["leisure"]({bbox});' in query
    assert query.endswith("out center 10;")


def test_build_overpass_query_uses_explicit_types():
    query = build_overpass_query(BOUNDS, ["amenity"], ["node"], 5, 25)
    assert query == '[out:json][timeout:25];(node["amenity"](48.2,16.36,48.21,16.38););out center 5;'


def test_names_derived_and_unnamed_dropped(monkeypatch):
    elements = [
        {"type": "node", "id": 1, "lat": 48.2045, "lon": 16.3695, "tags": {"name": "Cafe Mozart", "amenity": "cafe"}},
        {"type": "node", "id": 2, "lat": 48.2050, "lon": 16.3700, "tags": {"name": "", "amenity": "restaurant"}},
        {"type": "node", "id": 3, "lat": 48.2060, "lon": 16.3710},
    ]
    monkeypatch.setattr(ps, "get_json", FakeOverpass([{"elements": elements}]))

    pois = asyncio.run(_source().fetch(BOUNDS))

    assert [p.name for p in pois] == ["Cafe Mozart", "Restaurant"]
    assert pois[1].type == "restaurant"
    assert pois[0].id == "1"
    assert pois[0].metadata["tags"]["amenity"] == "cafe"


def test_unknown_names_kept_when_filter_disabled(monkeypatch):
    elements = [
        {"id": 2, "lat": 1.0, "lon": 2.0, "tags": {"amenity": "fast_food"}},
        {"id": 3, "lat": 1.0, "lon": 2.0},
    ]
    monkeypatch.setattr(ps, "get_json", FakeOverpass([{"elements": elements}]))

    pois = asyncio.run(_source(derive_names=False, filter_out_no_name=False).fetch(BOUNDS))

    assert [(p.name, p.type) for p in pois] == [("Unknown", "fast_food"), ("Unknown", "Unknown")]


def test_center_coordinates_and_missing_coordinates(monkeypatch):
    elements = [
        {"type": "way", "id": 10, "center": {"lat": 48.1, "lon": 16.1}, "tags": {"name": "Park", "leisure": "park"}},
        {"type": "way", "id": 11, "tags": {"name": "Nowhere", "leisure": "park"}},
    ]
    monkeypatch.setattr(ps, "get_json", FakeOverpass([{"elements": elements}]))

    pois = asyncio.run(_source().fetch(BOUNDS))

    assert len(pois) == 1
    assert (pois[0].latitude, pois[0].longitude) == (48.1, 16.1)
    assert pois[0].type == "park"


def test_requested_type_key_wins_over_generic_keys(monkeypatch):
    elements = [{"id": 5, "lat": 1.0, "lon": 1.0, "tags": {"name": "Corner", "amenity": "cafe", "shop": "bakery"}}]
    monkeypatch.setattr(ps, "get_json", FakeOverpass([{"elements": elements}]))

    pois = asyncio.run(_source().fetch(BOUNDS, PointOfInterestQuery(types=["shop"])))

    assert pois[0].type == "bakery"


def test_limit_caps_results(monkeypatch):
    elements = [{"id": i, "lat": 1.0, "lon": 1.0, "tags": {"name": f"P{i}", "shop": "kiosk"}} for i in range(5)]
    fake = FakeOverpass([{"elements": elements}])
    monkeypatch.setattr(ps, "get_json", fake)

    pois = asyncio.run(_source().fetch(BOUNDS, PointOfInterestQuery(limit=3)))

    assert [p.id for p in pois] == ["0", "1", "2"]
    assert fake.calls[0]["params"]["data"].endswith("out center 3;")


def test_transient_failures_are_retried(monkeypatch):
    fake = FakeOverpass([
        TransientNetworkFailure("too many requests", status=429),
        {"elements": [{"id": 1, "lat": 1.0, "lon": 1.0, "tags": {"name": "A", "shop": "books"}}]},
    ])
    monkeypatch.setattr(ps, "get_json", fake)

    pois = asyncio.run(_source().fetch(BOUNDS))

    assert len(fake.calls) == 2
    assert [p.name for p in pois] == ["A"]


def test_terminal_failure_degrades_to_empty(monkeypatch):
    fake = FakeOverpass([
        TransientNetworkFailure("busy", status=504),
        TransientNetworkFailure("busy", status=504),
        TransientNetworkFailure("busy", status=504),
    ])
    monkeypatch.setattr(ps, "get_json", fake)

    assert asyncio.run(_source().fetch(BOUNDS)) == []
    assert len(fake.calls) == 3


def test_permanent_failure_degrades_without_retry(monkeypatch):
    fake = FakeOverpass([PermanentNetworkFailure("bad query", status=400)])
    monkeypatch.setattr(ps, "get_json", fake)

    assert asyncio.run(_source().fetch(BOUNDS)) == []
    assert len(fake.calls) == 1


def test_build_address():
    assert build_address({
        "addr:street": "Albertinaplatz",
        "addr:housenumber": "2",
        "addr:postcode": "1010",
        "addr:city": "Wien",
    }) == "Albertinaplatz 2, 1010 Wien"
    assert build_address({"addr:city": "Wien"}) == "Wien"
    assert build_address({"addr:street": "Ring"}) == "Ring"
    assert build_address({}) is None
