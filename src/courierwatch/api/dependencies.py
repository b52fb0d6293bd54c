"""Service container shared by the API routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from fastapi import Request

from ..config import settings
from ..models.domain import GeoCoordinate
from ..persistence.filesystem import FileStorage
from ..services.eta.engine import EtaEngine, get_eta_engine
from ..services.geocoding.device import LocalGeocoder, ReportedPositionLocator
from ..services.geocoding.gateway import GeocodingGateway
from ..services.live.aggregator import FleetAggregator
from ..services.live.directory import DirectoryService
from ..services.live.geofence import GeofenceMonitor
from ..services.live.sources import InMemoryLiveQuery
from ..services.routing.google_client import GoogleMapsClient
from ..services.routing.service import RouteService


@dataclass
class Services:
    client: GoogleMapsClient
    routes: RouteService
    gateway: GeocodingGateway
    locator: ReportedPositionLocator
    eta: EtaEngine
    directory: DirectoryService
    aggregator: FleetAggregator
    geofence: GeofenceMonitor
    store: GeoCoordinate
    storage_factory: Callable[[], FileStorage] = field(default=FileStorage)


def build_services() -> Services:
    """Wire the production services from settings."""
    client = GoogleMapsClient()
    routes = RouteService(client)
    locator = ReportedPositionLocator()
    store = GeoCoordinate(settings.store_latitude, settings.store_longitude)
    local_geocoder = LocalGeocoder([(settings.store_address, store)] if settings.store_address else ())

    if settings.supabase_url and settings.supabase_key:
        directory = DirectoryService.from_supabase()
    else:
        directory = DirectoryService(InMemoryLiveQuery(), InMemoryLiveQuery(), InMemoryLiveQuery())

    return Services(
        client=client,
        routes=routes,
        gateway=GeocodingGateway(client, locator=locator, local_geocoder=local_geocoder),
        locator=locator,
        eta=get_eta_engine(),
        directory=directory,
        aggregator=FleetAggregator(routes, store, settings.store_label, directory=directory),
        geofence=GeofenceMonitor(),
        store=store,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
