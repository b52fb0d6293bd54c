"""Driver, order and hotspot directories: live subscriptions and driver trails."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, TypeVar

from ...errors import MalformedInput
from ...models.domain import (
    DailyRoute,
    DemandLevel,
    Driver,
    GeoCoordinate,
    Hotspot,
    LocationFix,
    Order,
    OrderItem,
    OrderStatus,
)
from ...db.supabase import get_supabase_client
from ..geospatial import haversine_km
from .sources import LiveQuery, Row, SupabaseLiveQuery, Unsubscribe

logger = logging.getLogger(__name__)

ACTIVE_ORDER_STATUSES = (OrderStatus.DELIVERING, OrderStatus.READY)

T = TypeVar("T")


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_driver(row: Row) -> Driver:
    location = row.get("location") or {}
    return Driver(
        id=str(row["id"]),
        position=GeoCoordinate.from_mapping(location),
        position_updated_at=_parse_timestamp(location.get("updated_at")),
        is_available=bool(row.get("is_available", False)),
        vehicle_kind=row.get("vehicle_kind") or "motorcycle",
        name=row.get("name") or "",
    )


def parse_order(row: Row) -> Order:
    items = [
        OrderItem(product_id=str(item.get("product_id", "")), quantity=int(item.get("quantity", 1)))
        for item in (row.get("items") or [])
    ]
    driver_id = row.get("assigned_driver_id")
    return Order(
        id=str(row["id"]),
        status=OrderStatus(row["status"]),
        items=items,
        delivery_coordinate=GeoCoordinate.from_mapping(row.get("delivery_coordinate")),
        assigned_driver_id=str(driver_id) if driver_id else None,
        customer_name=row.get("customer_name"),
    )


def parse_hotspot(row: Row) -> Hotspot:
    center = GeoCoordinate.from_mapping(row.get("center"))
    if center is None:
        raise MalformedInput(f"Hotspot {row.get('id')} has no center.")
    return Hotspot(
        id=str(row["id"]),
        center=center,
        radius_meters=float(row["radius_meters"]),
        demand_level=DemandLevel(row.get("demand_level") or DemandLevel.MEDIUM.value),
        active=bool(row.get("active", True)),
        name=row.get("name") or "",
        message=row.get("message") or "",
    )


def _parse_rows(rows: Iterable[Row], parser: Callable[[Row], T], kind: str) -> list[T]:
    parsed: list[T] = []
    for row in rows:
        try:
            parsed.append(parser(row))
        except (KeyError, ValueError, TypeError) as e:
            # Skip invalid rows but continue processing
            logger.warning(f"Skipping invalid {kind} row {row.get('id')}: {e}")
    return parsed


def _parse_daily_route(row: Row) -> DailyRoute:
    return DailyRoute(
        id=str(row["id"]),
        driver_id=str(row["driver_id"]),
        date=str(row["date"]),
        points=[
            LocationFix(
                latitude=float(point["latitude"]),
                longitude=float(point["longitude"]),
                timestamp=str(point.get("timestamp", "")),
            )
            for point in (row.get("points") or [])
        ],
        total_distance_km=float(row.get("total_distance_km") or 0.0),
        start_time=row.get("start_time"),
        updated_at=row.get("updated_at"),
    )


class DirectoryService:
    """Read side of the driver, order and hotspot collections.

    Records are owned by their source tables; this service only maps rows to
    domain objects, except for the per-day driver trail it appends to.
    """

    drivers_table = "delivery_drivers"
    orders_table = "orders"
    hotspots_table = "demand_hotspots"
    routes_table = "driver_routes"

    def __init__(
        self,
        drivers_query: LiveQuery,
        orders_query: LiveQuery,
        hotspots_query: LiveQuery,
        client_factory: Callable[[], Any] = get_supabase_client,
    ) -> None:
        self.drivers_query = drivers_query
        self.orders_query = orders_query
        self.hotspots_query = hotspots_query
        self.client_factory = client_factory

    @classmethod
    def from_supabase(cls) -> "DirectoryService":
        return cls(
            drivers_query=SupabaseLiveQuery(cls.drivers_table, [("eq", "status", "active")]),
            orders_query=SupabaseLiveQuery(
                cls.orders_table, [("in", "status", [status.value for status in ACTIVE_ORDER_STATUSES])]
            ),
            hotspots_query=SupabaseLiveQuery(cls.hotspots_table, [("eq", "active", True)]),
        )

    def subscribe_to_active_drivers(self, callback: Callable[[list[Driver]], None]) -> Unsubscribe:
        return self.drivers_query.subscribe(lambda rows: callback(_parse_rows(rows, parse_driver, "driver")))

    def subscribe_to_active_orders(self, callback: Callable[[list[Order]], None]) -> Unsubscribe:
        def deliver(rows: list[Row]) -> None:
            orders = _parse_rows(rows, parse_order, "order")
            callback([order for order in orders if order.status in ACTIVE_ORDER_STATUSES])

        return self.orders_query.subscribe(deliver)

    def subscribe_to_active_hotspots(self, callback: Callable[[list[Hotspot]], None]) -> Unsubscribe:
        def deliver(rows: list[Row]) -> None:
            hotspots = _parse_rows(rows, parse_hotspot, "hotspot")
            callback([hotspot for hotspot in hotspots if hotspot.active])

        return self.hotspots_query.subscribe(deliver)

    def _find_route_row(self, client: Any, driver_id: str, date: str) -> Row | None:
        response = (
            client.table(self.routes_table)
            .select("*")
            .eq("driver_id", driver_id)
            .eq("date", date)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def get_driver_route(self, driver_id: str, date: str) -> DailyRoute | None:
        """Recorded trail for ``driver_id`` on ``date`` (YYYY-MM-DD), or None."""
        client = self.client_factory()
        if not client:
            return None
        row = self._find_route_row(client, driver_id, date)
        return _parse_daily_route(row) if row else None

    def log_driver_location(self, driver_id: str, position: GeoCoordinate) -> DailyRoute | None:
        """Append a fix to today's trail, growing its distance by the hop from the last fix."""
        client = self.client_factory()
        if not client:
            logger.info("Supabase not configured - driver trail not recorded")
            return None

        now = datetime.now(timezone.utc)
        today = now.date().isoformat()
        timestamp = now.isoformat()
        fix = {"latitude": position.latitude, "longitude": position.longitude, "timestamp": timestamp}

        try:
            row = self._find_route_row(client, driver_id, today)
            if row is None:
                payload = {
                    "driver_id": driver_id,
                    "date": today,
                    "points": [fix],
                    "total_distance_km": 0.0,
                    "start_time": timestamp,
                    "updated_at": timestamp,
                }
                response = client.table(self.routes_table).insert(payload).execute()
            else:
                points = list(row.get("points") or [])
                additional = 0.0
                if points:
                    last = points[-1]
                    additional = haversine_km(
                        float(last["latitude"]), float(last["longitude"]), position.latitude, position.longitude
                    )
                points.append(fix)
                payload = {
                    "points": points,
                    "total_distance_km": float(row.get("total_distance_km") or 0.0) + additional,
                    "updated_at": timestamp,
                }
                response = client.table(self.routes_table).update(payload).eq("id", row["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to record trail for driver {driver_id}: {e}")
            return None

        return _parse_daily_route(response.data[0]) if response.data else None

    def update_driver_location(self, driver_id: str, position: GeoCoordinate) -> None:
        client = self.client_factory()
        if not client:
            logger.info("Supabase not configured - driver location not stored")
            return
        timestamp = datetime.now(timezone.utc).isoformat()
        client.table(self.drivers_table).update(
            {
                "location": {
                    "latitude": position.latitude,
                    "longitude": position.longitude,
                    "updated_at": timestamp,
                },
                "updated_at": timestamp,
            }
        ).eq("id", driver_id).execute()
        self.log_driver_location(driver_id, position)
