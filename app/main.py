from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.analytics import AnalyticsService, build_default_service


def create_app(service: Optional[AnalyticsService] = None) -> FastAPI:
    """Build the application around ``service``, or the settings-driven default."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.analytics_service = service or build_default_service()
        try:
            yield
        finally:
            app.state.analytics_service.cache.clear()
            if service is None:
                build_default_service.cache_clear()

    configure_logging()
    app = FastAPI(
        title="Moisture Analytics",
        description="Trend, hotspot, and statistics analysis of moisture readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
