"""Request/response schemas for routing, ETA, geocoding and the console."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import (
    GeoCoordinate,
    Order,
    OrderItem,
    OrderStatus,
    RouteResult,
    ServicePoint,
)


class CoordinateModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> GeoCoordinate:
        return GeoCoordinate(self.latitude, self.longitude)


class OrderItemModel(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class OrderModel(BaseModel):
    id: str
    status: OrderStatus
    items: List[OrderItemModel] = Field(default_factory=list)
    delivery_coordinate: Optional[CoordinateModel] = None
    assigned_driver_id: Optional[str] = None

    def to_domain(self) -> Order:
        return Order(
            id=self.id,
            status=self.status,
            items=[OrderItem(product_id=item.product_id, quantity=item.quantity) for item in self.items],
            delivery_coordinate=self.delivery_coordinate.to_domain() if self.delivery_coordinate else None,
            assigned_driver_id=self.assigned_driver_id,
        )


class ETARequest(BaseModel):
    order: OrderModel
    store_location: Optional[CoordinateModel] = Field(
        default=None, description="Defaults to the configured store when omitted."
    )


class ETAResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    preparation_minutes: int
    delivery_minutes: int
    buffer_minutes: int
    total_minutes: int
    estimated_arrival: datetime
    traffic_multiplier: float
    degraded: bool


class RouteRequest(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel


class RouteResponse(BaseModel):
    available: bool
    points: List[CoordinateModel] = Field(default_factory=list)
    distance_meters: Optional[float] = None
    duration_seconds: Optional[float] = None

    @classmethod
    def from_result(cls, result: RouteResult | None) -> "RouteResponse":
        if result is None:
            return cls(available=False)
        return cls(
            available=True,
            points=[CoordinateModel.model_validate(point) for point in result.points],
            distance_meters=result.distance_meters,
            duration_seconds=result.duration_seconds,
        )


class BatchRouteRequest(BaseModel):
    pairs: List[RouteRequest] = Field(..., max_length=100)


class BatchRouteResponse(BaseModel):
    results: List[RouteResponse]


class LoadTestRequest(BaseModel):
    route_count: int = Field(..., ge=1, le=500)
    origin: CoordinateModel
    destination: CoordinateModel
    persist: bool = Field(default=False, description="Write the report under the data root.")


class LoadTestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_count: int
    average_latency_ms: float
    successful_count: int
    failed_count: int
    success_ratio: float
    failure_ratio: float
    report_path: Optional[str] = None


class ForwardGeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1)


class ForwardGeocodeResponse(BaseModel):
    address: str
    coordinate: Optional[CoordinateModel] = None


class ReverseGeocodeRequest(BaseModel):
    coordinate: CoordinateModel


class ReverseGeocodeResponse(BaseModel):
    coordinate: CoordinateModel
    address: Optional[str] = None


class DistanceRequest(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel


class DistanceResponse(BaseModel):
    distance_km: float


class ServicePointModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    coordinate: CoordinateModel
    is_open: bool = True
    address: str = ""
    distance_km: Optional[float] = None
    delivery_window: Optional[Tuple[int, int]] = None

    def to_domain(self) -> ServicePoint:
        return ServicePoint(
            id=self.id,
            name=self.name,
            coordinate=self.coordinate.to_domain(),
            is_open=self.is_open,
            address=self.address,
        )


class NearbyRequest(BaseModel):
    point: CoordinateModel
    radius_km: Optional[float] = Field(default=None, gt=0)
    candidates: List[ServicePointModel]


class NearbyResponse(BaseModel):
    results: List[ServicePointModel]


class DevicePermissionRequest(BaseModel):
    granted: bool


class DevicePositionReport(BaseModel):
    coordinate: CoordinateModel


class SelectRequest(BaseModel):
    kind: Literal["driver", "order"]
    id: str


class DriverPositionUpdate(BaseModel):
    coordinate: CoordinateModel


class ArrivalEventModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    distance_meters: float


class HotspotEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    driver_id: str
    hotspot_id: str
    demand_level: str
    message: str


class DriverPositionResponse(BaseModel):
    driver_id: str
    arrivals: List[ArrivalEventModel]
    hotspot_entries: List[HotspotEntryModel]


class LocationFixModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float
    timestamp: str


class DailyRouteModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    driver_id: str
    date: str
    points: List[LocationFixModel]
    total_distance_km: float
    start_time: Optional[str] = None
    updated_at: Optional[str] = None


class MarkerModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    id: str
    coordinate: CoordinateModel
    color: str
    label: str


class PolylineModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    points: List[CoordinateModel]
    color: str
    width: int
    dash_pattern: Optional[Tuple[int, int]] = None
    opacity: float


class CircleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    center: CoordinateModel
    radius_meters: float
    fill_color: str
    stroke_color: str


class BoundsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    south: float
    west: float
    north: float
    east: float


class ConsoleStatsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    available_drivers: int
    delivering_orders: int
    awaiting_pickup: int


class SceneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mode: str
    selected_kind: Optional[str] = None
    selected_id: Optional[str] = None
    markers: List[MarkerModel]
    polylines: List[PolylineModel]
    circles: List[CircleModel]
    fit_to: List[CoordinateModel]
    bounds: Optional[BoundsModel] = None
    stats: ConsoleStatsModel
    route_pending: bool = False
