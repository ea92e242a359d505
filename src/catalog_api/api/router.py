"""Root API router with /v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from catalog_api.api.middleware import RequestLogMiddleware, SecurityHeadersMiddleware, setup_cors
from catalog_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from catalog_api.api.v1.datasets import datasets_router
    from catalog_api.api.v1.dimensions import dimensions_router
    from catalog_api.api.v1.editions import editions_router
    from catalog_api.api.v1.health import health_router
    from catalog_api.api.v1.instances import instances_router
    from catalog_api.api.v1.versions import versions_router

    root_router = APIRouter(prefix=settings.api_prefix)
    root_router.include_router(health_router)
    root_router.include_router(datasets_router)
    root_router.include_router(editions_router)
    root_router.include_router(versions_router)
    root_router.include_router(dimensions_router)
    root_router.include_router(instances_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLogMiddleware)
