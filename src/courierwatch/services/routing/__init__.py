"""Route resolution: provider client, polyline decoding and the route service."""

from .google_client import GoogleMapsClient, decode_polyline
from .service import LoadTestReport, RouteService, straight_line

__all__ = ["GoogleMapsClient", "LoadTestReport", "RouteService", "decode_polyline", "straight_line"]
