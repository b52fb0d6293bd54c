import asyncio

import pytest

from courierwatch.errors import DeviceUnavailable, LocationTimeout, PermissionDenied, ProviderUnavailable
from courierwatch.models.domain import GeoCoordinate, ServicePoint
from courierwatch.services.geocoding.device import LocalGeocoder, ReportedPositionLocator
from courierwatch.services.geocoding.gateway import GeocodingGateway, estimated_delivery_window

HOME = GeoCoordinate(-23.55052, -46.633309)


class FailingClient:
    async def geocode(self, address):
        raise ProviderUnavailable("geocode", status="OVER_QUERY_LIMIT")

    async def reverse_geocode(self, coordinate):
        raise ProviderUnavailable("geocode", status="OVER_QUERY_LIMIT")

    async def distance_matrix(self, origin, destination):
        raise ProviderUnavailable("distance_matrix", message="timeout")


class WorkingClient:
    async def geocode(self, address):
        return HOME

    async def reverse_geocode(self, coordinate):
        return "Praça da Sé"

    async def distance_matrix(self, origin, destination):
        return 4321.0


@pytest.mark.anyio
async def test_reverse_geocode_falls_back_to_local_lookup():
    local = LocalGeocoder()
    local.remember("Praça da Sé, São Paulo", HOME)
    gateway = GeocodingGateway(FailingClient(), local_geocoder=local)

    assert await gateway.reverse_geocode(GeoCoordinate(-23.5506, -46.6334)) == "Praça da Sé, São Paulo"


@pytest.mark.anyio
async def test_reverse_geocode_is_none_when_every_strategy_fails():
    gateway = GeocodingGateway(FailingClient())

    assert await gateway.reverse_geocode(HOME) is None


@pytest.mark.anyio
async def test_forward_geocode_remembers_provider_results():
    local = LocalGeocoder()
    gateway = GeocodingGateway(WorkingClient(), local_geocoder=local)

    assert await gateway.forward_geocode("Praça da Sé") == HOME
    assert await local.geocode("praça  da sé") == HOME


@pytest.mark.anyio
async def test_road_distance_uses_provider_then_haversine():
    destination = GeoCoordinate(-23.5614, -46.6559)

    assert await GeocodingGateway(WorkingClient()).road_distance_km(HOME, destination) == 4.3
    fallback = await GeocodingGateway(FailingClient()).road_distance_km(HOME, destination)
    assert fallback == 2.6


@pytest.mark.anyio
async def test_current_position_without_locator_is_unavailable():
    with pytest.raises(DeviceUnavailable):
        await GeocodingGateway(FailingClient()).current_position()


@pytest.mark.anyio
async def test_current_position_requires_permission():
    locator = ReportedPositionLocator()
    locator.set_permission(False)
    locator.report(HOME)

    with pytest.raises(PermissionDenied):
        await GeocodingGateway(FailingClient(), locator=locator).current_position()


@pytest.mark.anyio
async def test_current_position_times_out_without_fix():
    locator = ReportedPositionLocator()
    locator.set_permission(True)
    gateway = GeocodingGateway(FailingClient(), locator=locator, location_timeout=0.05)

    with pytest.raises(LocationTimeout):
        await gateway.current_position()


@pytest.mark.anyio
async def test_current_position_waits_for_first_report():
    locator = ReportedPositionLocator()
    locator.set_permission(True)
    gateway = GeocodingGateway(FailingClient(), locator=locator, location_timeout=1.0)

    pending = asyncio.ensure_future(gateway.current_position())
    await asyncio.sleep(0)
    locator.report(HOME)

    assert await pending == HOME


def test_nearby_filters_sorts_and_annotates():
    candidates = [
        ServicePoint("far", "Far store", GeoCoordinate(-23.0, -46.633309)),
        ServicePoint("near", "Near store", GeoCoordinate(-23.55952, -46.633309)),
        ServicePoint("mid", "Mid store", GeoCoordinate(-23.6, -46.633309)),
    ]

    ranked = GeocodingGateway(FailingClient()).nearby(HOME, candidates, radius_km=10)

    assert [point.id for point in ranked] == ["near", "mid"]
    assert ranked[0].distance_km == 1.0
    assert ranked[0].delivery_window == (18, 20)
    assert candidates[1].distance_km is None


def test_delivery_window_grows_with_distance():
    assert estimated_delivery_window(0) == (15, 15)
    assert estimated_delivery_window(2.0) == (21, 25)


@pytest.mark.anyio
async def test_local_geocoder_answers_from_seeded_records():
    gateway = GeocodingGateway(FailingClient(), local_geocoder=LocalGeocoder([("Praça da Sé, São Paulo", HOME)]))

    assert await gateway.forward_geocode("praça da sé  são paulo") == HOME
    assert await gateway.forward_geocode("Rua Augusta, 500") is None


@pytest.mark.anyio
async def test_nearby_candidates_become_known_addresses():
    local = LocalGeocoder()
    gateway = GeocodingGateway(FailingClient(), local_geocoder=local)
    store = ServicePoint("s1", "Sé", GeoCoordinate(-23.55952, -46.633309), address="Rua Direita, 10")

    gateway.nearby(HOME, [store])

    assert await gateway.forward_geocode("Rua Direita, 10") == store.coordinate
    assert await gateway.reverse_geocode(GeoCoordinate(-23.5596, -46.6333)) == "Rua Direita, 10"


@pytest.mark.anyio
async def test_locator_returns_latest_report():
    locator = ReportedPositionLocator()
    other = GeoCoordinate(-23.56, -46.64)
    locator.report(HOME)
    locator.report(other)

    assert await locator.get_position() == other
