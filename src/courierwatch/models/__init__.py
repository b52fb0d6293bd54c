"""Domain model exports."""

from .domain import (
    DailyRoute,
    DemandLevel,
    Driver,
    ETAResult,
    GeoCoordinate,
    Hotspot,
    LocationFix,
    Order,
    OrderItem,
    OrderStatus,
    RouteResult,
    ServicePoint,
)

__all__ = [
    "DailyRoute",
    "DemandLevel",
    "Driver",
    "ETAResult",
    "GeoCoordinate",
    "Hotspot",
    "LocationFix",
    "Order",
    "OrderItem",
    "OrderStatus",
    "RouteResult",
    "ServicePoint",
]
