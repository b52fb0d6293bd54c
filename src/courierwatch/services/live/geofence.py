"""Arrival and demand-hotspot geofence checks for moving couriers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

from ...config import settings
from ...models.domain import GeoCoordinate, Hotspot, Order, OrderStatus
from ..geospatial import distance_meters, within_radius


@dataclass(frozen=True, slots=True)
class ArrivalEvent:
    order_id: str
    distance_meters: float


@dataclass(frozen=True, slots=True)
class HotspotEntry:
    driver_id: str
    hotspot_id: str
    demand_level: str
    message: str


class GeofenceMonitor:
    """Detects couriers approaching customers or entering hotspots.

    Each order yields at most one arrival event; hotspot entries repeat for the
    same driver only after the cooldown.
    """

    def __init__(self, arrival_radius_meters: float | None = None, hotspot_cooldown: timedelta | None = None) -> None:
        self.arrival_radius_meters = arrival_radius_meters or settings.arrival_geofence_meters
        self.hotspot_cooldown = (
            hotspot_cooldown
            if hotspot_cooldown is not None
            else timedelta(minutes=settings.hotspot_cooldown_minutes)
        )
        self._arrived_orders: set[str] = set()
        self._hotspot_seen: dict[tuple[str, str], datetime] = {}

    def check_arrivals(self, position: GeoCoordinate, orders: Iterable[Order]) -> list[ArrivalEvent]:
        events: list[ArrivalEvent] = []
        for order in orders:
            if order.status != OrderStatus.DELIVERING or order.delivery_coordinate is None:
                continue
            if order.id in self._arrived_orders:
                continue
            meters = distance_meters(position, order.delivery_coordinate)
            if meters <= self.arrival_radius_meters:
                self._arrived_orders.add(order.id)
                events.append(ArrivalEvent(order_id=order.id, distance_meters=meters))
        return events

    def check_hotspots(
        self,
        driver_id: str,
        position: GeoCoordinate,
        hotspots: Iterable[Hotspot],
        now: datetime | None = None,
    ) -> list[HotspotEntry]:
        now = now or datetime.now(timezone.utc)
        entries: list[HotspotEntry] = []
        for hotspot in hotspots:
            if not hotspot.active or not within_radius(position, hotspot.center, hotspot.radius_meters):
                continue
            key = (driver_id, hotspot.id)
            last_seen = self._hotspot_seen.get(key)
            if last_seen is not None and now - last_seen <= self.hotspot_cooldown:
                continue
            self._hotspot_seen[key] = now
            entries.append(
                HotspotEntry(
                    driver_id=driver_id,
                    hotspot_id=hotspot.id,
                    demand_level=hotspot.demand_level.value,
                    message=hotspot.message,
                )
            )
        return entries
