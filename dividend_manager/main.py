"""FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI

from dividend_manager.api.routes import register_routes
from dividend_manager.core.config import Settings, get_settings
from dividend_manager.core.logging import configure_logging
from dividend_manager.obs import PrometheusMiddleware, metrics_router


def create_application(settings: Settings | None = None) -> FastAPI:
    """Application factory used by ASGI servers and tests."""
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
    )

    if settings.enable_metrics:
        application.add_middleware(PrometheusMiddleware)
        application.include_router(metrics_router)
    register_routes(application)

    return application


app = create_application()
