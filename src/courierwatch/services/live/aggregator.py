"""Live fleet and order aggregation for the operator console.

All state changes go through one asyncio queue and are applied one event at a
time: collection snapshots, selection changes and focused-route completions.
Each snapshot replaces the previous contents of its collection.

Route fetches run as separate tasks and are tagged with the selection epoch
current when they were issued. A completion whose epoch no longer matches is
discarded, so a slow response for an earlier selection never overwrites the
route of a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

from ...errors import UnknownEntity
from ...models.domain import Driver, GeoCoordinate, Hotspot, Order, OrderStatus, RouteResult
from ..routing.service import RouteService, straight_line
from .directory import ACTIVE_ORDER_STATUSES, DirectoryService
from .scene import FocusedRoute, MapScene, RoutingIntent, build_scene, follow_coordinates
from .sources import Unsubscribe

logger = logging.getLogger(__name__)


class ConsoleMode(str, Enum):
    FOLLOWING = "following"
    FOCUSED = "focused"


@dataclass(frozen=True, slots=True)
class Selection:
    kind: str  # driver | order
    entity_id: str


@dataclass(frozen=True, slots=True)
class _Snapshot:
    collection: str
    items: tuple


@dataclass(frozen=True, slots=True)
class _Select:
    selection: Optional[Selection]


@dataclass(frozen=True, slots=True)
class _RouteResolved:
    epoch: int
    intent: RoutingIntent
    result: Optional[RouteResult]


@dataclass(frozen=True, slots=True)
class _Barrier:
    pass


_Event = Union[_Snapshot, _Select, _RouteResolved, _Barrier]


class FleetAggregator:
    def __init__(
        self,
        route_service: RouteService,
        store: GeoCoordinate,
        store_label: str = "Store",
        directory: DirectoryService | None = None,
    ) -> None:
        self.route_service = route_service
        self.store = store
        self.store_label = store_label
        self.directory = directory

        self.drivers: tuple[Driver, ...] = ()
        self.orders: tuple[Order, ...] = ()
        self.hotspots: tuple[Hotspot, ...] = ()

        self.mode = ConsoleMode.FOLLOWING
        self.selection: Optional[Selection] = None
        self.epoch = 0
        self.focused_route: Optional[FocusedRoute] = None
        self.fit_to: tuple[GeoCoordinate, ...] = (store,)

        self._queue: asyncio.Queue[tuple[_Event, Optional[asyncio.Future]]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._route_tasks: set[asyncio.Task] = set()
        self._unsubscribes: list[Unsubscribe] = []

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the event worker and, when a directory is configured, the three live subscriptions."""
        if self._worker is not None:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run())
        if self.directory is not None:
            self._unsubscribes = [
                self.directory.subscribe_to_active_drivers(self.on_drivers),
                self.directory.subscribe_to_active_orders(self.on_orders),
                self.directory.subscribe_to_active_hotspots(self.on_hotspots),
            ]
        logger.info("Fleet aggregator started")

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
        for task in list(self._route_tasks):
            task.cancel()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        logger.info("Fleet aggregator stopped")

    # ------------------------------------------------------------------
    # inbound events
    # ------------------------------------------------------------------
    def on_drivers(self, drivers: Sequence[Driver]) -> None:
        self._post(_Snapshot("drivers", tuple(drivers)))

    def on_orders(self, orders: Sequence[Order]) -> None:
        self._post(_Snapshot("orders", tuple(orders)))

    def on_hotspots(self, hotspots: Sequence[Hotspot]) -> None:
        self._post(_Snapshot("hotspots", tuple(hotspots)))

    async def select_driver(self, driver_id: str) -> None:
        await self._submit(_Select(Selection("driver", driver_id)))

    async def select_order(self, order_id: str) -> None:
        await self._submit(_Select(Selection("order", order_id)))

    async def deselect(self) -> None:
        await self._submit(_Select(None))

    async def wait_idle(self) -> None:
        """Wait until outstanding route fetches and queued events have been applied."""
        while self._route_tasks:
            await asyncio.gather(*list(self._route_tasks), return_exceptions=True)
        await self._submit(_Barrier())

    def _post(self, event: _Event) -> None:
        self._queue.put_nowait((event, None))

    async def _submit(self, event: _Event) -> Any:
        if self._worker is None:
            raise RuntimeError("Fleet aggregator is not running.")
        done = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((event, done))
        return await done

    async def _run(self) -> None:
        while True:
            event, done = await self._queue.get()
            try:
                self._apply(event)
            except Exception as exc:
                logger.exception(f"Failed to apply {type(event).__name__}: {exc}")
                if done is not None and not done.done():
                    done.set_exception(exc)
            else:
                if done is not None and not done.done():
                    done.set_result(None)
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------
    # reducer
    # ------------------------------------------------------------------
    def _apply(self, event: _Event) -> None:
        match event:
            case _Snapshot():
                self._apply_snapshot(event)
            case _Select(selection=None):
                self._clear_selection()
            case _Select(selection=selection):
                self._focus(selection)
            case _RouteResolved():
                self._apply_route(event)
            case _Barrier():
                pass

    def _apply_snapshot(self, event: _Snapshot) -> None:
        if event.collection == "drivers":
            self.drivers = event.items
        elif event.collection == "orders":
            self.orders = tuple(order for order in event.items if order.status in ACTIVE_ORDER_STATUSES)
        elif event.collection == "hotspots":
            self.hotspots = tuple(hotspot for hotspot in event.items if hotspot.active)

        if self.selection is not None and self._lookup(self.selection) is None:
            logger.info(f"Selected {self.selection.kind} {self.selection.entity_id} left the live view")
            self._clear_selection()
        elif self.mode == ConsoleMode.FOLLOWING:
            self.fit_to = follow_coordinates(self.store, self.drivers, self.orders)

    def _clear_selection(self) -> None:
        self.selection = None
        self.mode = ConsoleMode.FOLLOWING
        self.epoch += 1
        self.focused_route = None
        self.fit_to = follow_coordinates(self.store, self.drivers, self.orders)

    def _focus(self, selection: Selection) -> None:
        entity = self._lookup(selection)
        if entity is None:
            raise UnknownEntity(f"No active {selection.kind} with id '{selection.entity_id}'.")

        self.selection = selection
        self.mode = ConsoleMode.FOCUSED
        self.epoch += 1
        self.focused_route = None

        focus = self._focus_coordinates(selection)
        if focus:
            self.fit_to = focus

        intent = self.routing_intent(selection)
        if intent is None:
            logger.debug(f"No routing intent for {selection.kind} {selection.entity_id}")
            return

        self.focused_route = FocusedRoute(
            intent=intent,
            points=tuple(straight_line(intent.start, intent.end)),
            detailed=False,
            pending=True,
        )
        task = asyncio.get_running_loop().create_task(self._fetch_route(self.epoch, intent))
        self._route_tasks.add(task)
        task.add_done_callback(self._route_tasks.discard)

    async def _fetch_route(self, epoch: int, intent: RoutingIntent) -> None:
        try:
            result = await self.route_service.resolve_route(intent.start, intent.end)
        except Exception as exc:
            logger.warning(f"Focused route fetch failed: {exc}")
            result = None
        self._post(_RouteResolved(epoch, intent, result))

    def _apply_route(self, event: _RouteResolved) -> None:
        if event.epoch != self.epoch:
            logger.debug(f"Discarding stale route for epoch {event.epoch} (current {self.epoch})")
            return
        if event.result is not None and len(event.result.points) >= 2:
            self.focused_route = FocusedRoute(event.intent, tuple(event.result.points), detailed=True)
        else:
            logger.info("No detailed path for focused route; showing straight line")
            self.focused_route = FocusedRoute(
                event.intent, tuple(straight_line(event.intent.start, event.intent.end)), detailed=False
            )

    # ------------------------------------------------------------------
    # derivations
    # ------------------------------------------------------------------
    def _lookup(self, selection: Selection) -> Driver | Order | None:
        pool: Sequence[Driver | Order] = self.drivers if selection.kind == "driver" else self.orders
        return next((item for item in pool if item.id == selection.entity_id), None)

    def _driver(self, driver_id: Optional[str]) -> Optional[Driver]:
        if not driver_id:
            return None
        return next((driver for driver in self.drivers if driver.id == driver_id), None)

    def order_for_driver(self, driver_id: str) -> Optional[Order]:
        """The driver's active order; an order out for delivery wins over one awaiting pickup."""
        assigned = [order for order in self.orders if order.assigned_driver_id == driver_id]
        assigned.sort(key=lambda order: ACTIVE_ORDER_STATUSES.index(order.status))
        return assigned[0] if assigned else None

    def _route_end(self, order: Order) -> tuple[Optional[GeoCoordinate], bool]:
        if order.status == OrderStatus.DELIVERING:
            return order.delivery_coordinate, True
        return self.store, False

    def routing_intent(self, selection: Selection) -> Optional[RoutingIntent]:
        """Where the focused route should start and end, or None when there is nothing to route."""
        if selection.kind == "driver":
            driver = self._driver(selection.entity_id)
            if driver is None or driver.position is None:
                return None
            order = self.order_for_driver(driver.id)
            if order is None:
                return None
            end, toward_customer = self._route_end(order)
            if end is None:
                return None
            return RoutingIntent(driver.position, end, toward_customer, order.id)

        order = next((item for item in self.orders if item.id == selection.entity_id), None)
        if order is None:
            return None
        driver = self._driver(order.assigned_driver_id)
        if driver is None or driver.position is None:
            if order.delivery_coordinate is None:
                return None
            # no courier yet: show the planned store -> customer leg
            return RoutingIntent(self.store, order.delivery_coordinate, True, order.id)
        end, toward_customer = self._route_end(order)
        if end is None:
            return None
        return RoutingIntent(driver.position, end, toward_customer, order.id)

    def _focus_coordinates(self, selection: Selection) -> tuple[GeoCoordinate, ...]:
        coords: list[GeoCoordinate] = []
        if selection.kind == "driver":
            driver = self._driver(selection.entity_id)
            if driver is None or driver.position is None:
                return ()
            coords.append(driver.position)
            order = self.order_for_driver(driver.id)
            if order is not None and order.delivery_coordinate is not None:
                coords.extend([order.delivery_coordinate, self.store])
        else:
            order = next((item for item in self.orders if item.id == selection.entity_id), None)
            if order is None or order.delivery_coordinate is None:
                return ()
            coords.extend([order.delivery_coordinate, self.store])
            driver = self._driver(order.assigned_driver_id)
            if driver is not None and driver.position is not None:
                coords.append(driver.position)
        return tuple(coords)

    def _focused_order_id(self) -> Optional[str]:
        if self.selection is None:
            return None
        if self.selection.kind == "order":
            return self.selection.entity_id
        order = self.order_for_driver(self.selection.entity_id)
        return order.id if order else None

    def scene(self) -> MapScene:
        return build_scene(
            store=self.store,
            store_label=self.store_label,
            drivers=self.drivers,
            orders=self.orders,
            hotspots=self.hotspots,
            mode=self.mode.value,
            selected_kind=self.selection.kind if self.selection else None,
            selected_id=self.selection.entity_id if self.selection else None,
            focused_order_id=self._focused_order_id(),
            focused_route=self.focused_route,
            fit_to=self.fit_to,
        )

