"""Render-ready map scene: markers, polylines, hotspot circles and viewport fit."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ...models.domain import DemandLevel, Driver, GeoCoordinate, Hotspot, Order, OrderStatus
from ..geospatial import Bounds, fit_bounds

STORE_COLOR = "#E91E63"
DRIVER_AVAILABLE_COLOR = "#4CAF50"
DRIVER_BUSY_COLOR = "#FF9800"
ORDER_DELIVERING_COLOR = "#9C27B0"
ORDER_READY_COLOR = "#FFC107"
TOWARD_CUSTOMER_COLOR = "#4CAF50"
TOWARD_STORE_COLOR = "#2196F3"
PLANNED_ROUTE_COLOR = "#757575"
HOTSPOT_CRITICAL = ("rgba(255, 0, 0, 0.3)", "rgba(255, 0, 0, 0.8)")
HOTSPOT_ELEVATED = ("rgba(255, 152, 0, 0.3)", "rgba(255, 152, 0, 0.8)")

PLANNED_DASH = (2, 4)
FALLBACK_DASH = (10, 6)
FOCUSED_WIDTH = 6
LEG_WIDTH = 4
DIMMED_OPACITY = 0.2


@dataclass(frozen=True, slots=True)
class Marker:
    kind: str  # store | driver | order | hotspot
    id: str
    coordinate: GeoCoordinate
    color: str
    label: str = ""


@dataclass(frozen=True, slots=True)
class Polyline:
    id: str
    points: tuple[GeoCoordinate, ...]
    color: str
    width: int
    dash_pattern: Optional[tuple[int, int]] = None
    opacity: float = 1.0


@dataclass(frozen=True, slots=True)
class Circle:
    id: str
    center: GeoCoordinate
    radius_meters: float
    fill_color: str
    stroke_color: str


@dataclass(frozen=True, slots=True)
class RoutingIntent:
    start: GeoCoordinate
    end: GeoCoordinate
    toward_customer: bool
    order_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FocusedRoute:
    intent: RoutingIntent
    points: tuple[GeoCoordinate, ...]
    detailed: bool
    pending: bool = False


@dataclass(frozen=True, slots=True)
class ConsoleStats:
    available_drivers: int
    delivering_orders: int
    awaiting_pickup: int


@dataclass(frozen=True, slots=True)
class MapScene:
    mode: str
    selected_kind: Optional[str]
    selected_id: Optional[str]
    markers: tuple[Marker, ...]
    polylines: tuple[Polyline, ...]
    circles: tuple[Circle, ...]
    fit_to: tuple[GeoCoordinate, ...]
    bounds: Optional[Bounds]
    stats: ConsoleStats
    route_pending: bool = False


def leg_color(toward_customer: bool) -> str:
    return TOWARD_CUSTOMER_COLOR if toward_customer else TOWARD_STORE_COLOR


def _hotspot_colors(level: DemandLevel) -> tuple[str, str]:
    return HOTSPOT_CRITICAL if level == DemandLevel.CRITICAL else HOTSPOT_ELEVATED


def console_stats(drivers: Sequence[Driver], orders: Sequence[Order]) -> ConsoleStats:
    return ConsoleStats(
        available_drivers=sum(1 for driver in drivers if driver.is_available),
        delivering_orders=sum(1 for order in orders if order.status == OrderStatus.DELIVERING),
        awaiting_pickup=sum(1 for order in orders if order.status == OrderStatus.READY),
    )


def follow_coordinates(
    store: GeoCoordinate, drivers: Sequence[Driver], orders: Sequence[Order]
) -> tuple[GeoCoordinate, ...]:
    """Store, every known driver position and every order destination."""
    coords = [store]
    coords.extend(driver.position for driver in drivers if driver.position is not None)
    coords.extend(order.delivery_coordinate for order in orders if order.delivery_coordinate is not None)
    return tuple(coords)


def _markers(
    store: GeoCoordinate,
    store_label: str,
    drivers: Sequence[Driver],
    orders: Sequence[Order],
    hotspots: Sequence[Hotspot],
) -> list[Marker]:
    markers = [Marker("store", "store", store, STORE_COLOR, store_label)]
    for driver in drivers:
        if driver.position is None:
            continue
        color = DRIVER_AVAILABLE_COLOR if driver.is_available else DRIVER_BUSY_COLOR
        markers.append(Marker("driver", driver.id, driver.position, color, driver.name or driver.vehicle_kind))
    for order in orders:
        if order.delivery_coordinate is None:
            continue
        color = ORDER_DELIVERING_COLOR if order.status == OrderStatus.DELIVERING else ORDER_READY_COLOR
        markers.append(Marker("order", order.id, order.delivery_coordinate, color, order.status.value))
    for hotspot in hotspots:
        markers.append(Marker("hotspot", hotspot.id, hotspot.center, _hotspot_colors(hotspot.demand_level)[1], hotspot.name))
    return markers


def _order_polylines(
    store: GeoCoordinate,
    drivers_by_id: dict[str, Driver],
    orders: Sequence[Order],
    focused_order_id: Optional[str],
    has_selection: bool,
    focused_route: Optional[FocusedRoute],
) -> list[Polyline]:
    lines: list[Polyline] = []
    for order in orders:
        if order.delivery_coordinate is None:
            continue
        is_focused = order.id == focused_order_id
        opacity = 1.0 if not has_selection or is_focused else DIMMED_OPACITY

        if is_focused and focused_route is not None:
            # the focused route replaces the order's overview lines
            continue

        lines.append(
            Polyline(
                id=f"planned-{order.id}",
                points=(store, order.delivery_coordinate),
                color=PLANNED_ROUTE_COLOR,
                width=3 if is_focused else 2,
                dash_pattern=PLANNED_DASH,
                opacity=opacity,
            )
        )

        driver = drivers_by_id.get(order.assigned_driver_id or "")
        if driver is None or driver.position is None:
            continue
        if order.status == OrderStatus.DELIVERING:
            lines.append(
                Polyline(
                    id=f"driver-to-customer-{order.id}",
                    points=(driver.position, order.delivery_coordinate),
                    color=TOWARD_CUSTOMER_COLOR,
                    width=FOCUSED_WIDTH if is_focused else LEG_WIDTH,
                    opacity=opacity,
                )
            )
        elif order.status == OrderStatus.READY:
            lines.append(
                Polyline(
                    id=f"driver-to-store-{order.id}",
                    points=(driver.position, store),
                    color=TOWARD_STORE_COLOR,
                    width=FOCUSED_WIDTH if is_focused else LEG_WIDTH,
                    opacity=opacity,
                )
            )
    return lines


def focused_polyline(route: FocusedRoute) -> Polyline:
    """Solid detailed path, or a dashed straight line while pending or when none was found."""
    color = leg_color(route.intent.toward_customer)
    if route.detailed:
        return Polyline(id="focused-route", points=route.points, color=color, width=FOCUSED_WIDTH)
    return Polyline(
        id="focused-route",
        points=route.points,
        color=color,
        width=LEG_WIDTH,
        dash_pattern=FALLBACK_DASH,
    )


def build_scene(
    *,
    store: GeoCoordinate,
    store_label: str,
    drivers: Sequence[Driver],
    orders: Sequence[Order],
    hotspots: Sequence[Hotspot],
    mode: str,
    selected_kind: Optional[str],
    selected_id: Optional[str],
    focused_order_id: Optional[str],
    focused_route: Optional[FocusedRoute],
    fit_to: Sequence[GeoCoordinate],
) -> MapScene:
    drivers_by_id = {driver.id: driver for driver in drivers}
    polylines = _order_polylines(
        store,
        drivers_by_id,
        orders,
        focused_order_id,
        has_selection=selected_id is not None,
        focused_route=focused_route,
    )
    if focused_route is not None:
        polylines.append(focused_polyline(focused_route))

    circles = []
    for hotspot in hotspots:
        fill, stroke = _hotspot_colors(hotspot.demand_level)
        circles.append(Circle(f"hotspot-{hotspot.id}", hotspot.center, hotspot.radius_meters, fill, stroke))

    return MapScene(
        mode=mode,
        selected_kind=selected_kind,
        selected_id=selected_id,
        markers=tuple(_markers(store, store_label, drivers, orders, hotspots)),
        polylines=tuple(polylines),
        circles=tuple(circles),
        fit_to=tuple(fit_to),
        bounds=fit_bounds(fit_to),
        stats=console_stats(drivers, orders),
        route_pending=bool(focused_route and focused_route.pending),
    )
