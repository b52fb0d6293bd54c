"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import Services, build_services
from .api.routes import console, eta, geo, health, routes
from .config import settings

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None) -> FastAPI:
    logging.getLogger("courierwatch").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = services or build_services()
        app.state.services = container
        container.aggregator.start()
        await container.aggregator.wait_idle()
        logger.info(f"{settings.app_name} started")
        try:
            yield
        finally:
            await container.aggregator.stop()

    app = FastAPI(title=settings.app_name, root_path="", lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(routes.router, prefix=settings.api_prefix)
    app.include_router(eta.router, prefix=settings.api_prefix)
    app.include_router(geo.router, prefix=settings.api_prefix)
    app.include_router(console.router, prefix=settings.api_prefix)
    return app


app = create_app()
