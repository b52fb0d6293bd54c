"""Geospatial helper functions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from shapely.geometry import MultiPoint

from ..models.domain import GeoCoordinate

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = to_radians(lat1), to_radians(lat2)
    d_phi = to_radians(lat2 - lat1)
    d_lambda = to_radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Great-circle distance in kilometres, rounded to one decimal."""

    return round(haversine_km(a.latitude, a.longitude, b.latitude, b.longitude), 1)


def distance_meters(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Unrounded great-circle distance in metres, for geofence checks."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) * 1000


def within_radius(point: GeoCoordinate, center: GeoCoordinate, radius_meters: float) -> bool:
    return distance_meters(point, center) <= radius_meters


@dataclass(frozen=True, slots=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> GeoCoordinate:
        return GeoCoordinate((self.south + self.north) / 2, (self.west + self.east) / 2)


def fit_bounds(coordinates: Iterable[GeoCoordinate]) -> Optional[Bounds]:
    """Return the bounding box of the coordinates, or None when there are none."""

    # shapely works in x/y, i.e. lon/lat
    points = [(coord.longitude, coord.latitude) for coord in coordinates]
    if not points:
        return None
    west, south, east, north = MultiPoint(points).bounds
    return Bounds(south=south, west=west, north=north, east=east)
