from datetime import datetime
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from courierwatch.api.dependencies import Services
from courierwatch.main import create_app
from courierwatch.models.domain import GeoCoordinate
from courierwatch.persistence.filesystem import FileStorage
from courierwatch.services.eta.engine import EtaEngine, EtaHeuristics
from courierwatch.services.geocoding.device import ReportedPositionLocator
from courierwatch.services.geocoding.gateway import GeocodingGateway
from courierwatch.services.live.aggregator import FleetAggregator
from courierwatch.services.live.directory import DirectoryService
from courierwatch.services.live.geofence import GeofenceMonitor
from courierwatch.services.live.sources import InMemoryLiveQuery
from courierwatch.services.routing.google_client import GoogleMapsClient
from courierwatch.services.routing.service import RouteService

STORE = {"latitude": -23.55052, "longitude": -46.633309}
CUSTOMER = {"latitude": -23.5614, "longitude": -46.6559}

DIRECTIONS = {
    "status": "OK",
    "routes": [
        {
            "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
            "legs": [{"distance": {"value": 3000}, "duration": {"value": 600}}],
        }
    ],
}


def _provider(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if "directions" in path:
        return httpx.Response(200, json=DIRECTIONS)
    if "distancematrix" in path:
        return httpx.Response(
            200, json={"status": "OK", "rows": [{"elements": [{"status": "OK", "distance": {"value": 2900}}]}]}
        )
    if "latlng" in request.url.params:
        return httpx.Response(200, json={"status": "OK", "results": [{"formatted_address": "Praça da Sé"}]})
    return httpx.Response(
        200, json={"status": "OK", "results": [{"geometry": {"location": {"lat": -23.5505, "lng": -46.6333}}}]}
    )


@pytest.fixture
def live_rows():
    return {
        "drivers": InMemoryLiveQuery(
            [
                {"id": "d1", "is_available": False, "location": {"latitude": -23.56, "longitude": -46.65}},
                {"id": "d2", "is_available": True, "location": {"latitude": -23.54, "longitude": -46.62}},
            ]
        ),
        "orders": InMemoryLiveQuery(
            [
                {
                    "id": "o1",
                    "status": "delivering",
                    "items": [{"product_id": "p1", "quantity": 1}],
                    "delivery_coordinate": CUSTOMER,
                    "assigned_driver_id": "d1",
                }
            ]
        ),
        "hotspots": InMemoryLiveQuery(
            [{"id": "h1", "center": CUSTOMER, "radius_meters": 1000, "demand_level": "high", "message": "Busy"}]
        ),
    }


@pytest.fixture
def services(tmp_path: Path, live_rows) -> Services:
    client = GoogleMapsClient(api_key="test-key", backoff_seconds=0, transport=httpx.MockTransport(_provider))
    routes = RouteService(client)
    locator = ReportedPositionLocator()
    store = GeoCoordinate(**STORE)
    directory = DirectoryService(
        live_rows["drivers"], live_rows["orders"], live_rows["hotspots"], client_factory=lambda: None
    )
    return Services(
        client=client,
        routes=routes,
        gateway=GeocodingGateway(client, locator=locator, location_timeout=0.05),
        locator=locator,
        eta=EtaEngine(routes, EtaHeuristics(), clock=lambda: datetime(2024, 5, 10, 12, 0)),
        directory=directory,
        aggregator=FleetAggregator(routes, store, "Test store", directory=directory),
        geofence=GeofenceMonitor(arrival_radius_meters=500),
        store=store,
        storage_factory=lambda: FileStorage(root=tmp_path),
    )


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    providers = client.get("/api/health/providers").json()
    assert providers["directions"]["healthy"] is True
    assert providers["console"]["drivers"] == 2


def test_resolve_and_batch_routes(client):
    response = client.post("/api/routes/resolve", json={"origin": STORE, "destination": CUSTOMER})
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is True
    assert len(body["points"]) == 3
    assert body["duration_seconds"] == 600

    batch = client.post(
        "/api/routes/batch",
        json={"pairs": [{"origin": STORE, "destination": CUSTOMER}, {"origin": CUSTOMER, "destination": STORE}]},
    )
    assert [result["available"] for result in batch.json()["results"]] == [True, True]


def test_load_test_persists_report(client, tmp_path: Path):
    response = client.post(
        "/api/routes/load-test",
        json={"route_count": 3, "origin": STORE, "destination": CUSTOMER, "persist": True},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["successful_count"] == 3
    assert body["success_ratio"] == 1.0
    assert Path(body["report_path"]).is_file()
    assert str(tmp_path.resolve()) in body["report_path"]


def test_load_test_validates_route_count(client):
    response = client.post("/api/routes/load-test", json={"route_count": 0, "origin": STORE, "destination": CUSTOMER})
    assert response.status_code == 422


def test_eta_endpoint(client):
    order = {
        "id": "o9",
        "status": "ready",
        "items": [{"product_id": "a"}, {"product_id": "b"}, {"product_id": "c"}],
        "delivery_coordinate": CUSTOMER,
    }

    response = client.post("/api/eta", json={"order": order})

    assert response.status_code == 200
    body = response.json()
    assert body["total_minutes"] == 51
    assert body["delivery_minutes"] == 16
    assert body["degraded"] is False


def test_eta_for_empty_order_is_unprocessable(client):
    response = client.post("/api/eta", json={"order": {"id": "o9", "status": "ready", "items": []}})
    assert response.status_code == 422


def test_geo_endpoints(client):
    forward = client.post("/api/geo/forward", json={"address": "Praça da Sé"}).json()
    assert forward["coordinate"] == {"latitude": -23.5505, "longitude": -46.6333}

    reverse = client.post("/api/geo/reverse", json={"coordinate": STORE}).json()
    assert reverse["address"] == "Praça da Sé"

    distance = client.post("/api/geo/distance", json={"origin": STORE, "destination": CUSTOMER}).json()
    assert distance["distance_km"] == 2.9

    nearby = client.post(
        "/api/geo/nearby",
        json={
            "point": STORE,
            "radius_km": 5,
            "candidates": [
                {"id": "s1", "name": "Sé", "coordinate": CUSTOMER},
                {"id": "s2", "name": "Campinas", "coordinate": {"latitude": -22.9, "longitude": -47.06}},
            ],
        },
    ).json()
    assert [point["id"] for point in nearby["results"]] == ["s1"]
    assert nearby["results"][0]["delivery_window"] == [23, 28]


def test_device_position_errors_and_success(client):
    assert client.get("/api/geo/device/current").status_code == 403

    client.post("/api/geo/device/permission", json={"granted": True})
    timeout = client.get("/api/geo/device/current")
    assert timeout.status_code == 504
    assert "ETA unknown" in timeout.json()["detail"]

    client.post("/api/geo/device/position", json={"coordinate": STORE})
    assert client.get("/api/geo/device/current").json() == STORE


def test_console_scene_and_selection(client):
    scene = client.get("/api/console/scene").json()
    assert scene["mode"] == "following"
    assert {marker["kind"] for marker in scene["markers"]} == {"store", "driver", "order", "hotspot"}
    assert scene["stats"] == {"available_drivers": 1, "delivering_orders": 1, "awaiting_pickup": 0}
    assert len(scene["circles"]) == 1
    assert scene["bounds"] is not None

    focused = client.post("/api/console/select", json={"kind": "driver", "id": "d1"}).json()
    assert focused["mode"] == "focused"
    assert focused["selected_id"] == "d1"
    assert any(line["id"] == "focused-route" for line in focused["polylines"])

    assert client.post("/api/console/select", json={"kind": "order", "id": "nope"}).status_code == 404

    following = client.post("/api/console/deselect").json()
    assert following["mode"] == "following"
    assert following["selected_id"] is None


def test_driver_route_not_recorded_without_store(client):
    response = client.get("/api/console/drivers/d1/route", params={"date": "2024-05-10"})
    assert response.status_code == 404


def test_driver_position_reports_geofence_events(client):
    response = client.post(
        "/api/console/drivers/d1/position", json={"coordinate": {"latitude": -23.5615, "longitude": -46.6559}}
    )

    assert response.status_code == 200
    body = response.json()
    assert [event["order_id"] for event in body["arrivals"]] == ["o1"]
    assert [entry["hotspot_id"] for entry in body["hotspot_entries"]] == ["h1"]
