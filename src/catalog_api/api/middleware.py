"""CORS, security headers and request logging middleware."""

import time
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from catalog_api.core.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app.

    ``ETag`` is exposed so browser clients can echo it back as ``If-Match``.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": ["ETag"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Cache-Control"] = "no-store" if "authorization" in request.headers else "public"
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Emit one structured access record per request.

    Records are bound with ``json_output=True`` so they go to the JSON sink
    configured by :func:`catalog_api.core.logging.setup_logging`.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        with logger.contextualize(method=request.method, path=request.url.path):
            response = await call_next(request)
            logger.bind(
                json_output=True,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            ).info("{} {} {}", request.method, request.url.path, response.status_code)
        return response
