"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from catalog_api.core.config import Settings, get_settings
from catalog_api.core.database import dispose_engine, init_engine
from catalog_api.core.errors import CatalogError, InternalError
from catalog_api.core.logging import setup_logging
from catalog_api.lib.downstream import (
    CloudflarePurgeClient,
    DownloadsEventGenerator,
    DownstreamNotifier,
    KafkaMessageProducer,
)
from catalog_api.lib.links import LinkBaseURLs, LinkBuilder, LinkRewriter


def build_link_rewriter(settings: Settings) -> LinkRewriter:
    """Link rewriter for the public base URLs in ``settings``."""
    bases = LinkBaseURLs(
        website=settings.website_url,
        api=settings.api_router_public_url,
        download=settings.download_service_url,
        code_list=settings.code_list_api_url,
        import_service=settings.import_api_url,
    )
    return LinkRewriter(LinkBuilder(bases))


def build_purge_client(settings: Settings) -> CloudflarePurgeClient | None:
    if not settings.cloudflare_enabled:
        return None
    return CloudflarePurgeClient(
        api_token=settings.cloudflare_api_token or "",
        zone_id=settings.cloudflare_zone_id or "",
        base_url=settings.cloudflare_base_url,
        timeout=settings.cloudflare_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: engine, Kafka producer and notifier."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    producer = None
    generator = None
    if settings.kafka_enabled:
        producer = KafkaMessageProducer(settings.kafka_addr_list)
        await producer.start()
        generator = DownloadsEventGenerator(producer, settings.generate_downloads_topic)
    else:
        logger.warning("Kafka disabled: generate downloads events will not be sent")

    notifier = DownstreamNotifier(
        generator,
        build_purge_client(settings),
        website_url=settings.website_url,
        api_url=settings.api_router_public_url,
    )
    app.state.notifier = notifier

    yield

    await notifier.close()
    if producer is not None:
        await producer.stop()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Dataset Catalog API",
        description="Metadata catalog for statistical datasets, editions, versions and instances",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.link_rewriter = build_link_rewriter(settings)

    # Register exception handlers
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error("Internal error on {} {}: {}", request.method, request.url.path, exc.detail)
            return JSONResponse(status_code=exc.status_code, content={"detail": InternalError.public_detail})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.opt(exception=exc).error("Database error on {} {}", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": InternalError.public_detail},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "invalid request body", "errors": jsonable_errors(exc)},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    # Register middleware and routers
    from catalog_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors reduced to location and message."""
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
