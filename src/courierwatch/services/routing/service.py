"""Route resolution on top of the directions provider."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Sequence

from ...errors import MalformedInput, ProviderUnavailable
from ...models.domain import GeoCoordinate, RouteResult
from ...persistence.filesystem import FileStorage
from .google_client import GoogleMapsClient, decode_polyline

logger = logging.getLogger(__name__)


def straight_line(origin: GeoCoordinate, destination: GeoCoordinate) -> list[GeoCoordinate]:
    """Two-point path used when no detailed route is available."""
    return [origin, destination]


@dataclass(slots=True)
class LoadTestReport:
    route_count: int
    average_latency_ms: float
    successful_count: int
    failed_count: int
    success_ratio: float
    failure_ratio: float
    report_path: Optional[str] = None


class RouteService:
    """Resolves detailed routes and never raises on provider failure."""

    def __init__(self, client: GoogleMapsClient | None = None) -> None:
        self.client = client or GoogleMapsClient()

    async def resolve_route(self, origin: GeoCoordinate, destination: GeoCoordinate) -> RouteResult | None:
        """One directions request; None means "no detailed path available"."""
        try:
            data = await self.client.directions(origin, destination)
        except ProviderUnavailable as exc:
            logger.warning(f"Directions unavailable for {origin.as_tuple()} -> {destination.as_tuple()}: {exc}")
            return None

        routes = data.get("routes") or []
        if not routes:
            logger.warning("Directions provider returned zero routes.")
            return None

        route = routes[0]
        try:
            leg = route["legs"][0]
            points = decode_polyline(route["overview_polyline"]["points"])
            return RouteResult(
                points=points,
                distance_meters=float(leg["distance"]["value"]),
                duration_seconds=float(leg["duration"]["value"]),
            )
        except (KeyError, IndexError, TypeError, MalformedInput) as exc:
            logger.warning(f"Unusable directions payload: {exc}")
            return None

    async def route_points(self, origin: GeoCoordinate, destination: GeoCoordinate) -> list[GeoCoordinate] | None:
        result = await self.resolve_route(origin, destination)
        return result.points if result else None

    async def batch_resolve(
        self, pairs: Sequence[tuple[GeoCoordinate, GeoCoordinate]]
    ) -> list[RouteResult | None]:
        """Resolve pairs one after another; output matches input order and length."""
        results: list[RouteResult | None] = []
        for origin, destination in pairs:
            results.append(await self.resolve_route(origin, destination))

        successful = sum(1 for result in results if result is not None)
        logger.info(f"Batch route data retrieved: {successful}/{len(pairs)} successful")
        return results

    async def load_test(
        self,
        route_count: int,
        origin: GeoCoordinate,
        destination: GeoCoordinate,
        storage: FileStorage | None = None,
    ) -> LoadTestReport:
        """Issue ``route_count`` synthetic routes as one batch and report latency and outcome ratios."""
        if route_count < 1:
            raise MalformedInput("route_count must be at least 1.")

        logger.info(f"Starting route service load test with {route_count} routes")
        start = time.perf_counter()
        results = await self.batch_resolve([(origin, destination)] * route_count)
        elapsed_ms = (time.perf_counter() - start) * 1000

        successful = sum(1 for result in results if result is not None)
        failed = route_count - successful
        report = LoadTestReport(
            route_count=route_count,
            average_latency_ms=elapsed_ms / route_count,
            successful_count=successful,
            failed_count=failed,
            success_ratio=successful / route_count,
            failure_ratio=failed / route_count,
        )

        if storage is not None:
            run_dir = storage.make_run_directory(prefix="route_load_test")
            path: Path = run_dir / "report.json"
            report.report_path = str(path)
            storage.write_json(path, asdict(report))

        logger.info(
            f"Route service load test completed: avg {report.average_latency_ms:.1f} ms, "
            f"{successful} ok / {failed} failed"
        )
        return report

