from datetime import datetime, timedelta, timezone

import pytest

from courierwatch.models.domain import DemandLevel, GeoCoordinate, Hotspot, Order, OrderStatus
from courierwatch.services.live.geofence import GeofenceMonitor

CUSTOMER = GeoCoordinate(-23.53, -46.61)
HOTSPOT = Hotspot(
    id="h1",
    center=GeoCoordinate(-23.56, -46.64),
    radius_meters=1000,
    demand_level=DemandLevel.CRITICAL,
    name="Paulista",
    message="High demand nearby",
)


def test_arrival_fires_once_inside_radius():
    monitor = GeofenceMonitor(arrival_radius_meters=500)
    order = Order(id="o1", status=OrderStatus.DELIVERING, delivery_coordinate=CUSTOMER)

    assert monitor.check_arrivals(GeoCoordinate(-23.55, -46.61), [order]) == []

    events = monitor.check_arrivals(GeoCoordinate(-23.532, -46.61), [order])
    assert [event.order_id for event in events] == ["o1"]
    assert events[0].distance_meters <= 500

    assert monitor.check_arrivals(CUSTOMER, [order]) == []


def test_arrival_ignores_orders_not_out_for_delivery():
    monitor = GeofenceMonitor(arrival_radius_meters=500)
    ready = Order(id="o2", status=OrderStatus.READY, delivery_coordinate=CUSTOMER)
    unknown = Order(id="o3", status=OrderStatus.DELIVERING)

    assert monitor.check_arrivals(CUSTOMER, [ready, unknown]) == []


def test_hotspot_entry_respects_cooldown():
    monitor = GeofenceMonitor(hotspot_cooldown=timedelta(minutes=30))
    start = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
    inside = GeoCoordinate(-23.561, -46.64)

    first = monitor.check_hotspots("d1", inside, [HOTSPOT], now=start)
    assert [entry.hotspot_id for entry in first] == ["h1"]
    assert first[0].demand_level == "critical"
    assert first[0].message == "High demand nearby"

    assert monitor.check_hotspots("d1", inside, [HOTSPOT], now=start + timedelta(minutes=10)) == []
    assert len(monitor.check_hotspots("d2", inside, [HOTSPOT], now=start + timedelta(minutes=10))) == 1
    assert len(monitor.check_hotspots("d1", inside, [HOTSPOT], now=start + timedelta(minutes=31))) == 1


def test_hotspot_outside_radius_is_ignored():
    monitor = GeofenceMonitor()

    assert monitor.check_hotspots("d1", GeoCoordinate(-23.7, -46.64), [HOTSPOT]) == []


def test_hotspot_boundary_uses_exact_distance():
    monitor = GeofenceMonitor()
    small = Hotspot(id="h2", center=GeoCoordinate(0.0, 0.0), radius_meters=100.0)

    # about 145 m east of the centre
    assert monitor.check_hotspots("d1", GeoCoordinate(0.0, 0.0013), [small]) == []
    assert len(monitor.check_hotspots("d1", GeoCoordinate(0.0, 0.0008), [small])) == 1


def test_arrival_does_not_fire_just_outside_radius():
    monitor = GeofenceMonitor(arrival_radius_meters=500)
    order = Order(id="o1", status=OrderStatus.DELIVERING, delivery_coordinate=GeoCoordinate(0.0, 0.0))

    # about 545 m away
    assert monitor.check_arrivals(GeoCoordinate(0.0049, 0.0), [order]) == []
    events = monitor.check_arrivals(GeoCoordinate(0.0044, 0.0), [order])
    assert events[0].distance_meters == pytest.approx(489.3, abs=0.5)
