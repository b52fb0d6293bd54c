"""Operator console endpoints: live scene, selection and driver trails."""

from __future__ import annotations

import asyncio
import logging
from datetime import date as date_cls
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import UnknownEntity
from ...schemas.tracking import (
    ArrivalEventModel,
    DailyRouteModel,
    DriverPositionResponse,
    DriverPositionUpdate,
    HotspotEntryModel,
    SceneResponse,
    SelectRequest,
)
from ..dependencies import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/console", tags=["console"])


@router.get("/scene", response_model=SceneResponse, status_code=status.HTTP_200_OK)
def get_scene(services: Services = Depends(get_services)) -> SceneResponse:
    return SceneResponse.model_validate(services.aggregator.scene())


@router.post("/select", response_model=SceneResponse, status_code=status.HTTP_200_OK)
async def select(payload: SelectRequest, services: Services = Depends(get_services)) -> SceneResponse:
    aggregator = services.aggregator
    try:
        if payload.kind == "driver":
            await aggregator.select_driver(payload.id)
        else:
            await aggregator.select_order(payload.id)
    except UnknownEntity as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SceneResponse.model_validate(aggregator.scene())


@router.post("/deselect", response_model=SceneResponse, status_code=status.HTTP_200_OK)
async def deselect(services: Services = Depends(get_services)) -> SceneResponse:
    await services.aggregator.deselect()
    return SceneResponse.model_validate(services.aggregator.scene())


@router.get("/drivers/{driver_id}/route", response_model=DailyRouteModel, status_code=status.HTTP_200_OK)
async def get_driver_route(
    driver_id: str,
    date: Optional[date_cls] = Query(default=None, description="Trail day, defaults to today."),
    services: Services = Depends(get_services),
) -> DailyRouteModel:
    day = (date or date_cls.today()).isoformat()
    try:
        route = await asyncio.to_thread(services.directory.get_driver_route, driver_id, day)
    except Exception as exc:
        logger.exception(f"Error loading trail for driver {driver_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load driver route: {str(exc)}",
        ) from exc
    if route is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No route for driver {driver_id} on {day}")
    return DailyRouteModel.model_validate(route)


@router.post("/drivers/{driver_id}/position", response_model=DriverPositionResponse, status_code=status.HTTP_200_OK)
async def report_driver_position(
    driver_id: str,
    payload: DriverPositionUpdate,
    services: Services = Depends(get_services),
) -> DriverPositionResponse:
    """Store a courier fix, extend its trail and run the arrival/hotspot geofences."""
    position = payload.coordinate.to_domain()
    try:
        await asyncio.to_thread(services.directory.update_driver_location, driver_id, position)
    except Exception as exc:
        logger.exception(f"Error storing position for driver {driver_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store driver position: {str(exc)}",
        ) from exc

    aggregator = services.aggregator
    own_orders = [order for order in aggregator.orders if order.assigned_driver_id == driver_id]
    arrivals = services.geofence.check_arrivals(position, own_orders)
    entries = services.geofence.check_hotspots(driver_id, position, aggregator.hotspots)
    for event in arrivals:
        logger.info(f"Driver {driver_id} is {event.distance_meters:.0f}m from order {event.order_id}")
    return DriverPositionResponse(
        driver_id=driver_id,
        arrivals=[ArrivalEventModel.model_validate(event) for event in arrivals],
        hotspot_entries=[HotspotEntryModel.model_validate(entry) for entry in entries],
    )
