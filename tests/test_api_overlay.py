from fastapi.testclient import TestClient

from pictomap.api.main import create_app
from pictomap.domain.models import Pictogram, PointOfInterest
from pictomap.services.map_surface import HeadlessMapSurface
from pictomap.services.marker_sequencer import GridMarkerSequencer
from pictomap.services.orchestrator import OverlayOrchestrator


class StaticSource:
    def __init__(self, pois):
        self.pois = pois
        self.calls = 0

    async def fetch(self, bounds, query=None):
        self.calls += 1
        return [p for p in self.pois if bounds.contains(p.latitude, p.longitude)]


class LabelResolver:
    async def resolve(self, poi):
        return Pictogram(
            id=f"p-{poi.type}",
            url=f"https://example.org/{poi.type}.png",
            display_text=poi.name,
            label=f"{poi.type.title()}: {poi.name}",
        )


POIS = [
    PointOfInterest(id="1", name="Cafe Mozart", type="cafe", latitude=48.2038, longitude=16.3690,
                    address="Albertinaplatz 2, 1010 Wien"),
    PointOfInterest(id="2", name="Bakery", type="bakery", latitude=48.2080, longitude=16.3720),
]


def _client():
    surface = HeadlessMapSurface(center_lat=48.206, center_lon=16.370, zoom=15, width=800, height=600)
    source = StaticSource(POIS)
    overlay = OverlayOrchestrator(
        surface=surface,
        poi_source=source,
        resolver=LabelResolver(),
        sequencer=GridMarkerSequencer(),
        debounce_interval=0.01,
    )
    return TestClient(create_app(overlay)), source


def test_health():
    client, _ = _client()
    with client:
        assert client.get("/health").json()["status"] == "healthy"


def test_refresh_returns_markers_in_tab_order():
    client, source = _client()
    with client:
        resp = client.post("/overlay/refresh")
        assert resp.status_code == 200
        body = resp.json()

    assert [m["name"] for m in body["markers"]] == ["Bakery", "Cafe Mozart"]
    assert [m["tab_index"] for m in body["markers"]] == [1, 2]
    cafe = body["markers"][1]
    assert cafe["label"] == "Cafe: Cafe Mozart"
    assert cafe["display_text"] == "Cafe Mozart"
    assert cafe["address"] == "Albertinaplatz 2, 1010 Wien"
    assert cafe["pictogram_url"] == "https://example.org/cafe.png"
    assert body["state"] == "idle"
    assert source.calls >= 1


def test_viewport_by_center_then_markers():
    client, _ = _client()
    with client:
        resp = client.post("/overlay/viewport", json={"center_lat": 48.2038, "center_lon": 16.3690, "zoom": 18})
        assert resp.status_code == 200
        bounds = resp.json()
        assert bounds["south"] < 48.2038 < bounds["north"]

        body = client.post("/overlay/refresh").json()

    assert [m["name"] for m in body["markers"]] == ["Cafe Mozart"]


def test_viewport_by_bounds():
    client, _ = _client()
    with client:
        resp = client.post(
            "/overlay/viewport",
            json={"south": 48.20, "west": 16.36, "north": 48.21, "east": 16.38},
        )
    assert resp.status_code == 200
    shown = resp.json()
    assert shown["south"] <= 48.20 and shown["north"] >= 48.21


def test_viewport_requires_bounds_or_center():
    client, _ = _client()
    with client:
        assert client.post("/overlay/viewport", json={"zoom": 3}).status_code == 422
        assert client.post(
            "/overlay/viewport",
            json={"south": 10, "west": 0, "north": 5, "east": 1},
        ).status_code == 422
