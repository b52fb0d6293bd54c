"""Live queries that push full collection snapshots to subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol, Sequence

from ...config import settings
from ...db.supabase import get_supabase_client

logger = logging.getLogger(__name__)

Row = dict[str, Any]
SnapshotCallback = Callable[[list[Row]], None]
Unsubscribe = Callable[[], None]


class LiveQuery(Protocol):
    def subscribe(self, callback: SnapshotCallback) -> Unsubscribe: ...


class InMemoryLiveQuery:
    """Live query over rows published in-process.

    New subscribers receive the current snapshot immediately.
    """

    def __init__(self, rows: Sequence[Row] = ()) -> None:
        self._rows: list[Row] = list(rows)
        self._subscribers: list[SnapshotCallback] = []

    def subscribe(self, callback: SnapshotCallback) -> Unsubscribe:
        self._subscribers.append(callback)
        callback(list(self._rows))

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, rows: Sequence[Row]) -> None:
        self._rows = list(rows)
        for callback in list(self._subscribers):
            callback(list(self._rows))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class SupabaseLiveQuery:
    """Polls a Supabase table and pushes the full result whenever it changes.

    ``filters`` are ``(operator, column, value)`` triples, where operator is
    ``"eq"`` or ``"in"``.
    """

    def __init__(
        self,
        table: str,
        filters: Sequence[tuple[str, str, Any]] = (),
        interval_seconds: float | None = None,
        client_factory: Callable[[], Any] = get_supabase_client,
    ) -> None:
        self.table = table
        self.filters = tuple(filters)
        self.interval_seconds = interval_seconds or settings.live_poll_interval_seconds
        self.client_factory = client_factory

    def _fetch(self) -> list[Row] | None:
        client = self.client_factory()
        if not client:
            return None
        query = client.table(self.table).select("*")
        for operator, column, value in self.filters:
            match operator:
                case "eq":
                    query = query.eq(column, value)
                case "in":
                    query = query.in_(column, list(value))
                case _:
                    raise ValueError(f"Unsupported filter operator '{operator}'.")
        response = query.execute()
        return list(response.data or [])

    async def _poll(self, callback: SnapshotCallback) -> None:
        last: list[Row] | None = None
        while True:
            try:
                rows = await asyncio.to_thread(self._fetch)
            except Exception as exc:
                logger.error(f"Live query on '{self.table}' failed: {exc}")
                rows = None
            if rows is not None and rows != last:
                last = rows
                callback(rows)
            await asyncio.sleep(self.interval_seconds)

    def subscribe(self, callback: SnapshotCallback) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(self._poll(callback))
        logger.info(f"Subscribed to live table '{self.table}'")

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe
