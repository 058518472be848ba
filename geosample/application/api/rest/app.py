import logging
from contextlib import asynccontextmanager

import logfire
from dishka import AsyncContainer
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from geosample.application.api.v1.errors import (
    error_response,
    map_geosample_error,
    map_validation_error,
)
from geosample.application.api.v1.routes import download, health, sample
from geosample.application.di import create_container
from geosample.config import Config, configure_logging
from geosample.domain.shared.error import GeoSampleError
from geosample.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container
    yield
    await container.close()


def create_app(
    config: Config | None = None,
    container: AsyncContainer | None = None,
) -> FastAPI:
    """Create FastAPI application."""
    if config is None:
        # Pydantic Settings populates from env vars at runtime
        config = Config()  # type: ignore[call-arg]

    # Configure logging early
    configure_logging(config.logging)
    logger.info("Starting %s v%s", config.server.name, config.server.version)
    if not config.metadata.url:
        logger.warning("GEOSAMPLE_METADATA__URL is not set; /download will answer with 500")

    # Only exports when a Logfire token is present in the environment
    logfire.configure(
        service_name=config.server.name,
        service_version=config.server.version,
        send_to_logfire="if-token-present",
        console=False,
    )

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    # Instrument FastAPI for automatic tracing of HTTP requests
    logfire.instrument_httpx()
    logfire.instrument_fastapi(app_instance)

    # Setup dependency injection
    if container is None:
        container = create_container(config)
    setup_dishka(container, app_instance)

    app_instance.include_router(health.router)
    app_instance.include_router(sample.router)
    app_instance.include_router(download.router)

    # Global geosample error handler - maps domain and infrastructure errors to HTTP responses
    @app_instance.exception_handler(GeoSampleError)
    async def geosample_error_handler(request: Request, exc: GeoSampleError):
        logger.info(
            "%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code
        )
        return map_geosample_error(request, exc)

    @app_instance.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return map_validation_error(request, exc)

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return error_response(request, 500, "Internal server error")

    return app_instance
