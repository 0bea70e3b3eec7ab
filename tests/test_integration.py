import time
from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from routewise.api.deps import AppServices
from routewise.config import MonitorConfig, SessionConfig, Settings
from routewise.errors import CollaboratorUnavailable
from routewise.main import create_app
from routewise.services.events import EventBus, InMemoryNotifier
from routewise.services.navigation.registry import SessionRegistry
from routewise.services.navigation.session import NavigationSession
from routewise.services.routing.planner import RoutePlanner
from routewise.services.traffic.models import TrafficSnapshot
from routewise.services.traffic.monitor import TrafficMonitor

from fakes import FakePathSource, FakeTrafficSource, FakeWeatherSource, congested_road, make_route

ROUTE_JSON = [
    {"lng": 116.300, "lat": 39.900},
    {"lng": 116.310, "lat": 39.900},
    {"lng": 116.320, "lat": 39.900},
]
PLAN_REQUEST = {
    "origin": ROUTE_JSON[0],
    "destination": ROUTE_JSON[-1],
    "preferences": ["fastest"],
}


def _services(path_source=None, snapshot=None) -> AppServices:
    bus = EventBus()
    planner = RoutePlanner(
        path_source
        or FakePathSource(
            [
                make_route("r1", 12500, 1500),
                make_route("r2", 11000, 1620),
                make_route("r3", 13000, 700),
            ]
        ),
        traffic_source=FakeTrafficSource(TrafficSnapshot(overall_congestion_rate=10.0, status_code=1)),
        weather_source=FakeWeatherSource(),
    )

    def new_session() -> NavigationSession:
        monitor = TrafficMonitor(
            FakeTrafficSource(snapshot or TrafficSnapshot(overall_congestion_rate=0.0)),
            config=MonitorConfig(interval_ms=60_000),
            bus=bus,
        )
        return NavigationSession(
            planner,
            monitor,
            notifier=InMemoryNotifier(),
            bus=bus,
            config=SessionConfig(watch_weather=False),
        )

    return AppServices(planner=planner, registry=SessionRegistry(new_session), bus=bus)


@pytest.fixture
def make_client():
    with ExitStack() as stack:

        def factory(services: AppServices) -> TestClient:
            app = create_app(Settings(amap_key=None, frontend_allowed_origins=()), services=services)
            return stack.enter_context(TestClient(app))

        yield factory


def test_health_endpoints(make_client):
    client = make_client(_services())

    assert client.get("/api/health").json() == {"status": "ok"}
    amap = client.get("/api/health/amap").json()
    assert amap["healthy"] is False


def test_plan_route_endpoint(make_client):
    client = make_client(_services())

    response = client.post("/api/routes/plan", json=PLAN_REQUEST)

    assert response.status_code == 200
    payload = response.json()
    assert payload["recommended_route_id"] == "r3"
    assert len(payload["routes"]) == 3
    assert payload["routes"][0]["recommended"] is True
    assert payload["routes"][0]["traffic_status"] == "smooth"
    assert payload["weather"]["description"] == "晴"
    assert payload["summary"]


def test_plan_route_without_candidates_is_bad_request(make_client):
    client = make_client(_services(path_source=FakePathSource([])))
    response = client.post("/api/routes/plan", json=PLAN_REQUEST)
    assert response.status_code == 400


def test_plan_route_with_path_source_down_is_unavailable(make_client):
    client = make_client(_services(path_source=FakePathSource(error=CollaboratorUnavailable("AMap down"))))
    response = client.post("/api/routes/plan", json=PLAN_REQUEST)
    assert response.status_code == 503
    assert "AMap down" in response.json()["detail"]


def test_plan_route_validates_coordinates(make_client):
    client = make_client(_services())
    bad = {**PLAN_REQUEST, "origin": {"lng": 116.3, "lat": 120.0}}
    assert client.post("/api/routes/plan", json=bad).status_code == 422


def test_navigation_session_lifecycle(make_client):
    severe = TrafficSnapshot(overall_congestion_rate=80.0, roads=(congested_road("L1", 116.315, 39.9001),))
    client = make_client(_services(snapshot=severe))

    created = client.post(
        "/api/navigation/sessions",
        json={"destination": ROUTE_JSON[-1], "polyline": ROUTE_JSON, "duration_seconds": 1500},
    )
    assert created.status_code == 201
    session = created.json()
    session_id = session["session_id"]
    assert session["status"] == "monitoring"
    assert [event["id"] for event in session["active_events"]] == ["congestion_L1"]

    moved = client.put(f"/api/navigation/sessions/{session_id}/position", json={"position": ROUTE_JSON[1]})
    assert moved.json()["current_position"] == ROUTE_JSON[1]

    rerouted = client.put(
        f"/api/navigation/sessions/{session_id}/route",
        json={"polyline": ROUTE_JSON[1:], "duration_seconds": 600},
    )
    assert rerouted.json()["route_points"] == 2

    kinds = []
    for _ in range(50):
        notifications = client.get(f"/api/navigation/sessions/{session_id}/notifications").json()
        kinds = [item["kind"] for item in notifications["notifications"]]
        if kinds:
            break
        time.sleep(0.01)
    assert kinds[0] == "traffic_alert"

    assert client.delete(f"/api/navigation/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/navigation/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/navigation/sessions/{session_id}").status_code == 404


def test_navigation_session_rejects_empty_polyline(make_client):
    client = make_client(_services())
    response = client.post("/api/navigation/sessions", json={"destination": ROUTE_JSON[-1], "polyline": []})
    assert response.status_code == 422
