"""Domain models for couriers, orders, hotspots and derived routing results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from ..errors import MalformedInput


@dataclass(frozen=True, slots=True)
class GeoCoordinate:
    """Immutable latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise MalformedInput(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise MalformedInput(f"Longitude out of range: {self.longitude}")

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Optional["GeoCoordinate"]:
        """Build a coordinate from a ``{latitude, longitude}`` record, or None if absent."""
        if not data:
            return None
        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lng", data.get("lon")))
        if lat is None or lon is None:
            return None
        return cls(float(lat), float(lon))


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DemandLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(slots=True)
class Driver:
    """A courier as seen by the tracking console."""

    id: str
    position: Optional[GeoCoordinate] = None
    position_updated_at: Optional[datetime] = None
    is_available: bool = False
    vehicle_kind: str = "motorcycle"
    name: str = ""


@dataclass(slots=True)
class OrderItem:
    product_id: str
    quantity: int = 1


@dataclass(slots=True)
class Order:
    id: str
    status: OrderStatus
    items: list[OrderItem] = field(default_factory=list)
    delivery_coordinate: Optional[GeoCoordinate] = None
    assigned_driver_id: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def unique_item_count(self) -> int:
        return len(self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(slots=True)
class Hotspot:
    """A geofenced zone flagged with elevated unmet demand."""

    id: str
    center: GeoCoordinate
    radius_meters: float
    demand_level: DemandLevel = DemandLevel.MEDIUM
    active: bool = True
    name: str = ""
    message: str = ""


@dataclass(slots=True)
class RouteResult:
    points: list[GeoCoordinate]
    distance_meters: float
    duration_seconds: float


@dataclass(slots=True)
class ETAResult:
    preparation_minutes: int
    delivery_minutes: int
    buffer_minutes: int
    total_minutes: int
    estimated_arrival: datetime
    traffic_multiplier: float
    degraded: bool = False


@dataclass(slots=True)
class LocationFix:
    latitude: float
    longitude: float
    timestamp: str


@dataclass(slots=True)
class DailyRoute:
    """Recorded trail of one driver for one calendar day."""

    id: str
    driver_id: str
    date: str
    points: list[LocationFix]
    total_distance_km: float = 0.0
    start_time: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(slots=True)
class ServicePoint:
    """A store or pickup point that can be ranked by proximity."""

    id: str
    name: str
    coordinate: GeoCoordinate
    is_open: bool = True
    address: str = ""
    distance_km: Optional[float] = None
    delivery_window: Optional[tuple[int, int]] = None
