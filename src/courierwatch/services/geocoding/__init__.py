"""Geocoding and proximity gateway."""

from .device import DeviceLocator, LocalGeocoder, ReportedPositionLocator
from .gateway import GeocodingGateway, estimated_delivery_window

__all__ = [
    "DeviceLocator",
    "GeocodingGateway",
    "LocalGeocoder",
    "ReportedPositionLocator",
    "estimated_delivery_window",
]
