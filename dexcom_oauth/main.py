"""
FastAPI application entrypoint for the Dexcom OAuth gateway.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI

from dexcom_oauth.api.routes import auth_router, data_router, router as health_router
from dexcom_oauth.core.config import AppSettings, get_settings
from dexcom_oauth.core.logging import configure_logging
from dexcom_oauth.dependencies import ServiceContainer, build_container

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.log_level)
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await container.aclose()

    app = FastAPI(
        title="Dexcom OAuth Server",
        version="0.1.0",
        description="OAuth gateway and glucose data API for Dexcom CGM accounts.",
        lifespan=lifespan,
    )
    app.state.container = container
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(data_router)
    return app


def run() -> None:
    """Serve the gateway with uvicorn using the configured host and port."""
    settings = get_settings()
    app = create_app(settings)
    logger.info(
        "Dexcom OAuth server listening on http://%s:%s (env=%s, mock_mode=%s)",
        settings.host,
        settings.port,
        settings.dexcom.environment,
        settings.mock_mode,
    )
    logger.info("Visit http://%s:%s/auth/login to authenticate", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()


__all__ = ["create_app", "run"]
