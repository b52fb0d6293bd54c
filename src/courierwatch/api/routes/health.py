"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...db.supabase import get_supabase_client
from ...services.routing.google_client import check_health as directions_health_check
from ..dependencies import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/providers", status_code=status.HTTP_200_OK)
async def health_providers(services: Services = Depends(get_services)) -> dict:
    """Report reachability of the directions provider and whether the live store is configured."""
    directions_ok = await directions_health_check(services.client)
    return {
        "directions": {"healthy": directions_ok, "fallback": "straight line / 20 min default"},
        "live_store": {"configured": get_supabase_client() is not None},
        "console": {
            "mode": services.aggregator.mode.value,
            "drivers": len(services.aggregator.drivers),
            "orders": len(services.aggregator.orders),
            "hotspots": len(services.aggregator.hotspots),
        },
    }
