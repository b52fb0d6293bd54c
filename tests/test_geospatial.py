import pytest

from courierwatch.errors import MalformedInput
from courierwatch.models.domain import GeoCoordinate
from courierwatch.services.geospatial import distance_km, distance_meters, fit_bounds, haversine_km, within_radius


def test_distance_is_symmetric_and_zero_for_same_point():
    a = GeoCoordinate(-23.55052, -46.633309)
    b = GeoCoordinate(-22.906847, -43.172896)

    assert distance_km(a, b) == distance_km(b, a)
    assert distance_km(a, a) == 0.0


def test_one_degree_of_latitude_is_about_111_km():
    assert distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(1.0, 0.0)) == 111.2
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)


def test_within_radius_uses_meters():
    center = GeoCoordinate(0.0, 0.0)
    assert within_radius(GeoCoordinate(0.003, 0.0), center, 500)
    assert not within_radius(GeoCoordinate(0.01, 0.0), center, 500)


def test_fit_bounds_covers_all_points():
    bounds = fit_bounds(
        [GeoCoordinate(-23.5, -46.6), GeoCoordinate(-23.7, -46.4), GeoCoordinate(-23.6, -46.8)]
    )

    assert bounds is not None
    assert bounds.south == pytest.approx(-23.7)
    assert bounds.north == pytest.approx(-23.5)
    assert bounds.west == pytest.approx(-46.8)
    assert bounds.east == pytest.approx(-46.4)
    assert bounds.center.latitude == pytest.approx(-23.6)


def test_fit_bounds_empty_returns_none():
    assert fit_bounds([]) is None


def test_coordinate_rejects_out_of_range_values():
    with pytest.raises(MalformedInput):
        GeoCoordinate(91.0, 0.0)
    with pytest.raises(MalformedInput):
        GeoCoordinate(0.0, -181.0)


def test_coordinate_from_mapping_accepts_short_keys():
    assert GeoCoordinate.from_mapping({"lat": 1.5, "lng": 2.5}) == GeoCoordinate(1.5, 2.5)
    assert GeoCoordinate.from_mapping({"latitude": 1.5}) is None
    assert GeoCoordinate.from_mapping(None) is None


def test_distance_meters_is_not_rounded():
    assert distance_meters(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 0.0013)) == pytest.approx(144.55, abs=0.05)
    assert distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 0.0013)) == 0.1
