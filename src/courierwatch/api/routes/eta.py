"""Order ETA endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.tracking import ETARequest, ETAResponse
from ..dependencies import Services, get_services

router = APIRouter(prefix="/eta", tags=["eta"])


@router.post("", response_model=ETAResponse, status_code=status.HTTP_200_OK)
async def calculate_order_eta(payload: ETARequest, services: Services = Depends(get_services)) -> ETAResponse:
    order = payload.order.to_domain()
    store = payload.store_location.to_domain() if payload.store_location else services.store
    result = await services.eta.estimate(order, store)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"ETA unknown for order {order.id}",
        )
    return ETAResponse(
        order_id=order.id,
        preparation_minutes=result.preparation_minutes,
        delivery_minutes=result.delivery_minutes,
        buffer_minutes=result.buffer_minutes,
        total_minutes=result.total_minutes,
        estimated_arrival=result.estimated_arrival,
        traffic_multiplier=result.traffic_multiplier,
        degraded=result.degraded,
    )
