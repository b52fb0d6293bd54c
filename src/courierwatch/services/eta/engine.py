"""Order ETA heuristics: preparation time, traffic-adjusted travel time and a safety buffer."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable

from ...config import settings
from ...errors import MalformedInput
from ...models.domain import ETAResult, GeoCoordinate, Order
from ..routing.service import RouteService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EtaHeuristics:
    base_preparation: int = 15
    per_unique_item: int = 5
    bulk_threshold: int = 5
    per_bulk_unit: int = 2
    max_preparation: int = 90
    default_delivery: int = 20
    buffer: int = 5
    base_traffic_multiplier: float = 1.2
    peak_traffic_multiplier: float = 1.6
    peak_hours: tuple[int, ...] = (11, 12, 13, 14, 18, 19, 20, 21)

    @classmethod
    def from_settings(cls) -> "EtaHeuristics":
        return cls(
            base_preparation=settings.eta_base_preparation,
            per_unique_item=settings.eta_per_unique_item,
            bulk_threshold=settings.eta_bulk_threshold,
            per_bulk_unit=settings.eta_per_bulk_unit,
            max_preparation=settings.eta_max_preparation,
            default_delivery=settings.eta_default_delivery,
            buffer=settings.eta_buffer,
            base_traffic_multiplier=settings.eta_base_traffic_multiplier,
            peak_traffic_multiplier=settings.eta_peak_traffic_multiplier,
            peak_hours=settings.eta_peak_hours,
        )


class EtaEngine:
    """Combines order composition and route duration into a single arrival estimate.

    ``clock`` returns local time; it is read on every call so the traffic
    multiplier follows the wall clock.
    """

    def __init__(
        self,
        route_service: RouteService,
        heuristics: EtaHeuristics | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.route_service = route_service
        self.heuristics = heuristics or EtaHeuristics()
        self.clock = clock

    def preparation_minutes(self, unique_items: int, total_quantity: int) -> int:
        h = self.heuristics
        minutes = (
            h.base_preparation
            + unique_items * h.per_unique_item
            + max(0, total_quantity - h.bulk_threshold) * h.per_bulk_unit
        )
        return min(minutes, h.max_preparation)

    def traffic_multiplier(self, now: datetime) -> float:
        if now.hour in self.heuristics.peak_hours:
            return self.heuristics.peak_traffic_multiplier
        return self.heuristics.base_traffic_multiplier

    async def estimate(self, order: Order, store_location: GeoCoordinate) -> ETAResult | None:
        """Estimate arrival for ``order`` delivered from ``store_location``.

        Returns None only when the order itself cannot be processed; a missing
        route falls back to the default delivery time.
        """
        try:
            if not order.items:
                raise MalformedInput(f"Order {order.id} has no items.")

            preparation = self.preparation_minutes(order.unique_item_count, order.total_quantity)
            multiplier = self.traffic_multiplier(self.clock())

            delivery = self.heuristics.default_delivery
            degraded = True
            if order.delivery_coordinate is not None:
                route = await self.route_service.resolve_route(store_location, order.delivery_coordinate)
                if route is not None:
                    delivery = math.ceil(route.duration_seconds / 60 * multiplier)
                    degraded = False
            if degraded:
                logger.warning(
                    f"No route for order {order.id}; using default delivery time of {delivery} min"
                )

            total = preparation + delivery + self.heuristics.buffer
            result = ETAResult(
                preparation_minutes=preparation,
                delivery_minutes=delivery,
                buffer_minutes=self.heuristics.buffer,
                total_minutes=total,
                estimated_arrival=self.clock() + timedelta(minutes=total),
                traffic_multiplier=multiplier,
                degraded=degraded,
            )
        except (MalformedInput, TypeError, AttributeError) as exc:
            logger.error(f"Failed to estimate ETA for order {getattr(order, 'id', '?')}: {exc}")
            return None

        logger.info(
            f"ETA for order {order.id}: {total} min "
            f"(prep {preparation}, delivery {delivery}, traffic x{multiplier})"
        )
        return result


@lru_cache(maxsize=1)
def get_eta_engine() -> EtaEngine:
    """Process-wide engine, built on first use and never reset."""
    return EtaEngine(RouteService(), EtaHeuristics.from_settings())
