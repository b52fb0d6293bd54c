from datetime import datetime, timedelta

import httpx
import pytest

from courierwatch.models.domain import GeoCoordinate, Order, OrderItem, OrderStatus, RouteResult
from courierwatch.services.eta.engine import EtaEngine, EtaHeuristics
from courierwatch.services.routing.google_client import GoogleMapsClient
from courierwatch.services.routing.service import RouteService

STORE = GeoCoordinate(-23.55052, -46.633309)
CUSTOMER = GeoCoordinate(-23.5614, -46.6559)
NOON = datetime(2024, 5, 10, 12, 0)


class DummyRouteService:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def resolve_route(self, origin, destination):
        self.calls.append((origin, destination))
        return self.result


def _order(items, coordinate=CUSTOMER) -> Order:
    return Order(id="o-1", status=OrderStatus.READY, items=items, delivery_coordinate=coordinate)


def _three_items():
    return [OrderItem("a", 1), OrderItem("b", 1), OrderItem("c", 1)]


def _engine(result, now=NOON) -> EtaEngine:
    return EtaEngine(DummyRouteService(result), EtaHeuristics(), clock=lambda: now)


@pytest.mark.anyio
async def test_peak_hour_estimate_with_route():
    route = RouteResult(points=[STORE, CUSTOMER], distance_meters=3000, duration_seconds=600)
    engine = _engine(route)

    eta = await engine.estimate(_order(_three_items()), STORE)

    assert eta is not None
    assert eta.preparation_minutes == 30
    assert eta.delivery_minutes == 16
    assert eta.buffer_minutes == 5
    assert eta.total_minutes == 51
    assert eta.traffic_multiplier == 1.6
    assert eta.estimated_arrival == NOON + timedelta(minutes=51)
    assert eta.degraded is False
    assert engine.route_service.calls == [(STORE, CUSTOMER)]


@pytest.mark.anyio
async def test_missing_route_uses_default_delivery():
    eta = await _engine(None).estimate(_order(_three_items()), STORE)

    assert eta is not None
    assert eta.delivery_minutes == 20
    assert eta.total_minutes == 55
    assert eta.degraded is True


@pytest.mark.anyio
async def test_missing_destination_skips_routing():
    engine = _engine(RouteResult([STORE, CUSTOMER], 3000, 600))

    eta = await engine.estimate(_order(_three_items(), coordinate=None), STORE)

    assert eta.delivery_minutes == 20
    assert engine.route_service.calls == []


@pytest.mark.anyio
async def test_order_without_items_has_no_eta():
    assert await _engine(None).estimate(_order([]), STORE) is None


def test_preparation_grows_with_items_and_is_capped():
    engine = _engine(None)

    assert engine.preparation_minutes(1, 1) == 20
    assert engine.preparation_minutes(2, 5) == 25
    assert engine.preparation_minutes(2, 8) == 31
    assert engine.preparation_minutes(20, 20) == 90

    previous = 0
    for unique in range(1, 30):
        minutes = engine.preparation_minutes(unique, unique)
        assert minutes >= previous
        assert minutes <= 90
        previous = minutes


def test_traffic_multiplier_follows_meal_peaks():
    engine = _engine(None)

    assert engine.traffic_multiplier(datetime(2024, 5, 10, 11, 0)) == 1.6
    assert engine.traffic_multiplier(datetime(2024, 5, 10, 14, 59)) == 1.6
    assert engine.traffic_multiplier(datetime(2024, 5, 10, 15, 0)) == 1.2
    assert engine.traffic_multiplier(datetime(2024, 5, 10, 19, 30)) == 1.6
    assert engine.traffic_multiplier(datetime(2024, 5, 10, 3, 0)) == 1.2


@pytest.mark.anyio
async def test_malformed_provider_body_still_yields_default_eta():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"[]"))
    client = GoogleMapsClient(api_key="test-key", backoff_seconds=0, transport=transport)
    engine = EtaEngine(RouteService(client), EtaHeuristics(), clock=lambda: NOON)

    eta = await engine.estimate(_order(_three_items()), STORE)

    assert eta is not None
    assert eta.delivery_minutes == 20
    assert eta.total_minutes == 55
    assert eta.degraded is True
