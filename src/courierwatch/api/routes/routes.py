"""Route resolution endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.tracking import (
    BatchRouteRequest,
    BatchRouteResponse,
    LoadTestRequest,
    LoadTestResponse,
    RouteRequest,
    RouteResponse,
)
from ..dependencies import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/resolve", response_model=RouteResponse, status_code=status.HTTP_200_OK)
async def resolve(payload: RouteRequest, services: Services = Depends(get_services)) -> RouteResponse:
    result = await services.routes.resolve_route(payload.origin.to_domain(), payload.destination.to_domain())
    return RouteResponse.from_result(result)


@router.post("/batch", response_model=BatchRouteResponse, status_code=status.HTTP_200_OK)
async def batch(payload: BatchRouteRequest, services: Services = Depends(get_services)) -> BatchRouteResponse:
    pairs = [(pair.origin.to_domain(), pair.destination.to_domain()) for pair in payload.pairs]
    results = await services.routes.batch_resolve(pairs)
    return BatchRouteResponse(results=[RouteResponse.from_result(result) for result in results])


@router.post("/load-test", response_model=LoadTestResponse, status_code=status.HTTP_200_OK)
async def load_test(payload: LoadTestRequest, services: Services = Depends(get_services)) -> LoadTestResponse:
    try:
        report = await services.routes.load_test(
            payload.route_count,
            payload.origin.to_domain(),
            payload.destination.to_domain(),
            storage=services.storage_factory() if payload.persist else None,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OSError as exc:
        logger.exception(f"Error writing load-test report: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to write load-test report: {str(exc)}",
        ) from exc
    return LoadTestResponse.model_validate(report)
