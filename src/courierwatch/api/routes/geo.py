"""Geocoding, distance, proximity and device-position endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import DeviceUnavailable, LocationTimeout, PermissionDenied
from ...schemas.tracking import (
    CoordinateModel,
    DevicePermissionRequest,
    DevicePositionReport,
    DistanceRequest,
    DistanceResponse,
    ForwardGeocodeRequest,
    ForwardGeocodeResponse,
    NearbyRequest,
    NearbyResponse,
    ReverseGeocodeRequest,
    ReverseGeocodeResponse,
    ServicePointModel,
)
from ..dependencies import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geo", tags=["geo"])


@router.post("/forward", response_model=ForwardGeocodeResponse, status_code=status.HTTP_200_OK)
async def forward(payload: ForwardGeocodeRequest, services: Services = Depends(get_services)) -> ForwardGeocodeResponse:
    coordinate = await services.gateway.forward_geocode(payload.address)
    return ForwardGeocodeResponse(
        address=payload.address,
        coordinate=CoordinateModel.model_validate(coordinate) if coordinate else None,
    )


@router.post("/reverse", response_model=ReverseGeocodeResponse, status_code=status.HTTP_200_OK)
async def reverse(payload: ReverseGeocodeRequest, services: Services = Depends(get_services)) -> ReverseGeocodeResponse:
    address = await services.gateway.reverse_geocode(payload.coordinate.to_domain())
    return ReverseGeocodeResponse(coordinate=payload.coordinate, address=address)


@router.post("/distance", response_model=DistanceResponse, status_code=status.HTTP_200_OK)
async def distance(payload: DistanceRequest, services: Services = Depends(get_services)) -> DistanceResponse:
    km = await services.gateway.road_distance_km(payload.origin.to_domain(), payload.destination.to_domain())
    return DistanceResponse(distance_km=km)


@router.post("/nearby", response_model=NearbyResponse, status_code=status.HTTP_200_OK)
def nearby(payload: NearbyRequest, services: Services = Depends(get_services)) -> NearbyResponse:
    ranked = services.gateway.nearby(
        payload.point.to_domain(),
        [candidate.to_domain() for candidate in payload.candidates],
        radius_km=payload.radius_km,
    )
    return NearbyResponse(results=[ServicePointModel.model_validate(point) for point in ranked])


@router.post("/device/permission", status_code=status.HTTP_200_OK)
def device_permission(payload: DevicePermissionRequest, services: Services = Depends(get_services)) -> dict:
    services.locator.set_permission(payload.granted)
    return {"granted": payload.granted}


@router.post("/device/position", status_code=status.HTTP_200_OK)
def device_position(payload: DevicePositionReport, services: Services = Depends(get_services)) -> dict:
    services.locator.report(payload.coordinate.to_domain())
    return {"status": "recorded"}


@router.get("/device/current", response_model=CoordinateModel, status_code=status.HTTP_200_OK)
async def current_position(services: Services = Depends(get_services)) -> CoordinateModel:
    try:
        position = await services.gateway.current_position()
    except PermissionDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except DeviceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Position unavailable; ETA unknown. {exc}",
        ) from exc
    except LocationTimeout as exc:
        logger.warning(f"Device position timed out: {exc}")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Position unavailable; ETA unknown. {exc}",
        ) from exc
    return CoordinateModel.model_validate(position)
