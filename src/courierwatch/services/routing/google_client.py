"""HTTP client for the Google directions, distance-matrix and geocoding services."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ...config import settings
from ...errors import MalformedInput, ProviderUnavailable
from ...models.domain import GeoCoordinate

logger = logging.getLogger(__name__)


def _latlng(coord: GeoCoordinate) -> str:
    return f"{coord.latitude},{coord.longitude}"


class GoogleMapsClient:
    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        )
        self.directions_url = settings.directions_url
        self.distance_matrix_url = settings.distance_matrix_url
        self.geocode_url = settings.geocode_url
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        """Create a short-lived client; one per request keeps callers independent."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    async def _get_json(self, provider: str, url: str, params: dict[str, Any]) -> dict:
        """GET ``url`` with retries. Raises ProviderUnavailable once retries are exhausted."""
        if not self.api_key:
            raise ProviderUnavailable(provider, message="API key is not configured")

        params = {**params, "key": self.api_key}
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    payload = response.json()
                    if not isinstance(payload, dict):
                        raise ProviderUnavailable(provider, message="unexpected payload")
                    return payload
                except httpx.HTTPStatusError as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(
                            provider, message=f"HTTP {exc.response.status_code}"
                        ) from exc
                    await asyncio.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{provider} request timed out after {self.max_retries} retries: {exc}")
                        raise ProviderUnavailable(provider, message="timeout") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{provider} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    await asyncio.sleep(wait_time)
                except (httpx.TransportError, OSError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(provider, message=f"network error: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{provider} network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    await asyncio.sleep(wait_time)
                except httpx.HTTPError as exc:
                    # decoding errors and redirect loops are not transient
                    raise ProviderUnavailable(provider, message=f"HTTP error: {exc}") from exc
                except ValueError as exc:
                    # body was not JSON; retrying will not help
                    raise ProviderUnavailable(provider, message="invalid JSON response") from exc
        finally:
            await client.aclose()

    async def directions(self, origin: GeoCoordinate, destination: GeoCoordinate) -> dict:
        """Fetch directions between two points.

        Returns the raw response once its ``status`` is ``OK``; any other status
        raises ProviderUnavailable carrying that status.
        """
        data = await self._get_json(
            "directions",
            self.directions_url,
            {"origin": _latlng(origin), "destination": _latlng(destination)},
        )
        status = data.get("status")
        if status != "OK":
            raise ProviderUnavailable("directions", status=status, message=data.get("error_message"))
        return data

    async def distance_matrix(self, origin: GeoCoordinate, destination: GeoCoordinate) -> float:
        """Road distance in metres for a single origin/destination pair."""
        data = await self._get_json(
            "distance_matrix",
            self.distance_matrix_url,
            {"origins": _latlng(origin), "destinations": _latlng(destination)},
        )
        if data.get("status") != "OK":
            raise ProviderUnavailable("distance_matrix", status=data.get("status"))
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError) as exc:
            raise ProviderUnavailable("distance_matrix", message="empty matrix") from exc
        if element.get("status") != "OK":
            raise ProviderUnavailable("distance_matrix", status=element.get("status"))
        return float(element["distance"]["value"])

    async def geocode(self, address: str) -> GeoCoordinate | None:
        data = await self._get_json("geocode", self.geocode_url, {"address": address})
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise ProviderUnavailable("geocode", status=status)
        location = data["results"][0]["geometry"]["location"]
        return GeoCoordinate(float(location["lat"]), float(location["lng"]))

    async def reverse_geocode(self, coordinate: GeoCoordinate) -> str | None:
        data = await self._get_json("geocode", self.geocode_url, {"latlng": _latlng(coordinate)})
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise ProviderUnavailable("geocode", status=status)
        return data["results"][0].get("formatted_address")


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    shift = 0
    result = 0
    while True:
        if index >= len(encoded):
            raise MalformedInput("Polyline ended in the middle of a value.")
        b = ord(encoded[index]) - 63
        index += 1
        result |= (b & 0x1f) << shift
        shift += 5
        if b < 0x20:
            break
    delta = ~(result >> 1) if (result & 1) else (result >> 1)
    return delta, index


def decode_polyline(encoded: str) -> list[GeoCoordinate]:
    """Decode a Google encoded polyline into coordinates.

    Each pair is a delta against the previous point, so values must be
    accumulated strictly in order.

    Args:
        encoded: Encoded polyline string

    Returns:
        List of coordinates; empty for an empty string
    """
    coordinates: list[GeoCoordinate] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        dlat, index = _decode_value(encoded, index)
        lat += dlat
        dlon, index = _decode_value(encoded, index)
        lon += dlon
        coordinates.append(GeoCoordinate(lat / 1e5, lon / 1e5))

    return coordinates


async def check_health(client: GoogleMapsClient | None = None) -> bool:
    """Check the directions provider by routing between two fixed points."""
    client = client or GoogleMapsClient()
    try:
        await client.directions(GeoCoordinate(-23.55052, -46.633309), GeoCoordinate(-23.5614, -46.6559))
        return True
    except ProviderUnavailable:
        return False
