"""Top level API router registration."""
from fastapi import APIRouter, FastAPI

from dividend_manager.api.routes import checkpoints, dividends, health, withholding


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""
    api_router = APIRouter(prefix="/api")

    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(checkpoints.router, tags=["checkpoints"])
    api_router.include_router(withholding.router, tags=["withholding"])
    api_router.include_router(dividends.router, tags=["dividends"])

    application.include_router(api_router)


__all__ = ["register_routes"]
