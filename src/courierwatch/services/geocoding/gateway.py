"""Device position, geocoding and proximity ranking with local fallbacks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Iterable

from ...config import settings
from ...errors import DeviceUnavailable, LocationTimeout, PermissionDenied
from ...models.domain import GeoCoordinate, ServicePoint
from ..fallback import first_success
from ..geospatial import distance_km
from ..routing.google_client import GoogleMapsClient
from .device import DeviceLocator, LocalGeocoder

logger = logging.getLogger(__name__)


def estimated_delivery_window(distance: float) -> tuple[int, int]:
    """Rough delivery window in minutes: 15 min preparation plus 3-5 min per km."""
    preparation = 15
    return (round(preparation + distance * 3), round(preparation + distance * 5))


class GeocodingGateway:
    def __init__(
        self,
        client: GoogleMapsClient | None = None,
        locator: DeviceLocator | None = None,
        local_geocoder: LocalGeocoder | None = None,
        location_timeout: float | None = None,
    ) -> None:
        self.client = client or GoogleMapsClient()
        self.locator = locator
        self.local_geocoder = local_geocoder or LocalGeocoder()
        self.location_timeout = (
            location_timeout if location_timeout is not None else settings.location_timeout_seconds
        )

    async def current_position(self) -> GeoCoordinate:
        """Ask the device for permission and a fix.

        Raises:
            DeviceUnavailable: no platform location API is configured.
            PermissionDenied: the user refused the location permission.
            LocationTimeout: no fix arrived within the configured ceiling.
        """
        if self.locator is None:
            raise DeviceUnavailable("No device location API available.")

        if not await self.locator.request_permission():
            raise PermissionDenied("Location permission was not granted.")

        try:
            return await asyncio.wait_for(self.locator.get_position(), timeout=self.location_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(f"Device location timed out after {self.location_timeout:.0f}s")
            raise LocationTimeout(f"No position within {self.location_timeout:.0f}s.") from exc

    async def reverse_geocode(self, coordinate: GeoCoordinate) -> str | None:
        return await first_success(
            [
                ("provider", lambda: self.client.reverse_geocode(coordinate)),
                ("local", lambda: self.local_geocoder.reverse_geocode(coordinate)),
            ],
            operation="reverse_geocode",
        )

    async def forward_geocode(self, address: str) -> GeoCoordinate | None:
        async def from_provider() -> GeoCoordinate | None:
            coordinate = await self.client.geocode(address)
            if coordinate is not None:
                self.local_geocoder.remember(address, coordinate)
            return coordinate

        return await first_success(
            [
                ("provider", from_provider),
                ("local", lambda: self.local_geocoder.geocode(address)),
            ],
            operation="forward_geocode",
        )

    async def road_distance_km(self, origin: GeoCoordinate, destination: GeoCoordinate) -> float:
        """Road distance from the distance-matrix provider, else great-circle distance."""

        async def from_provider() -> float:
            meters = await self.client.distance_matrix(origin, destination)
            return round(meters / 1000, 1)

        async def from_haversine() -> float:
            return distance_km(origin, destination)

        result = await first_success(
            [("distance_matrix", from_provider), ("haversine", from_haversine)],
            operation="road_distance",
        )
        return result if result is not None else distance_km(origin, destination)

    def nearby(
        self,
        point: GeoCoordinate,
        candidates: Iterable[ServicePoint],
        radius_km: float | None = None,
    ) -> list[ServicePoint]:
        """Candidates within ``radius_km`` of ``point``, closest first."""
        radius = radius_km if radius_km is not None else settings.nearby_radius_km
        ranked: list[ServicePoint] = []
        for candidate in candidates:
            if candidate.address:
                self.local_geocoder.remember(candidate.address, candidate.coordinate)
            km = distance_km(point, candidate.coordinate)
            if km <= radius:
                ranked.append(replace(candidate, distance_km=km, delivery_window=estimated_delivery_window(km)))
        ranked.sort(key=lambda candidate: candidate.distance_km or 0.0)
        return ranked
