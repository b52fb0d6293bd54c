"""Device-side location sources and the low-precision local geocoder."""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Protocol

from ...models.domain import GeoCoordinate
from ..geospatial import distance_meters


class DeviceLocator(Protocol):
    """Platform location API as seen by the gateway."""

    async def request_permission(self) -> bool: ...

    async def get_position(self) -> GeoCoordinate: ...


class ReportedPositionLocator:
    """Locator fed by the console device, which pushes its consent and fixes to the API.

    ``get_position`` returns the latest fix, or waits for the next report when
    none has arrived yet.
    """

    def __init__(self) -> None:
        self._permission: Optional[bool] = None
        self._position: Optional[GeoCoordinate] = None
        self._reported = asyncio.Event()

    def set_permission(self, granted: bool) -> None:
        self._permission = granted

    def report(self, position: GeoCoordinate) -> None:
        self._position = position
        self._reported.set()

    async def request_permission(self) -> bool:
        return bool(self._permission)

    async def get_position(self) -> GeoCoordinate:
        while self._position is None:
            await self._reported.wait()
        return self._position


def _normalize_address(address: str) -> str:
    return " ".join(address.lower().replace(",", " ").split())


class LocalGeocoder:
    """Offline address book used when the provider is unreachable.

    It only knows addresses it was seeded with (store and service-point records)
    or that the provider resolved earlier; anything else resolves to None.
    Forward lookups match on the normalized address; reverse lookups return the
    closest known address within ``reverse_radius_meters``.
    """

    def __init__(
        self,
        known: Iterable[tuple[str, GeoCoordinate]] = (),
        reverse_radius_meters: float = 250.0,
    ) -> None:
        self.reverse_radius_meters = reverse_radius_meters
        self._by_address: dict[str, tuple[str, GeoCoordinate]] = {}
        for address, coordinate in known:
            self.remember(address, coordinate)

    def remember(self, address: str, coordinate: GeoCoordinate) -> None:
        self._by_address[_normalize_address(address)] = (address, coordinate)

    async def geocode(self, address: str) -> GeoCoordinate | None:
        entry = self._by_address.get(_normalize_address(address))
        return entry[1] if entry else None

    async def reverse_geocode(self, coordinate: GeoCoordinate) -> str | None:
        best: tuple[float, str] | None = None
        for address, known in self._by_address.values():
            meters = distance_meters(coordinate, known)
            if meters <= self.reverse_radius_meters and (best is None or meters < best[0]):
                best = (meters, address)
        return best[1] if best else None
