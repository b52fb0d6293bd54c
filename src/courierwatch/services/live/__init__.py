"""Live fleet and order aggregation."""

from .aggregator import ConsoleMode, FleetAggregator, Selection
from .directory import DirectoryService
from .geofence import GeofenceMonitor
from .scene import MapScene
from .sources import InMemoryLiveQuery, SupabaseLiveQuery

__all__ = [
    "ConsoleMode",
    "DirectoryService",
    "FleetAggregator",
    "GeofenceMonitor",
    "InMemoryLiveQuery",
    "MapScene",
    "Selection",
    "SupabaseLiveQuery",
]
