"""Health check endpoint."""

from fastapi import APIRouter

health_router = APIRouter(tags=["health"])


@health_router.get("/health", status_code=200)
async def health_check() -> dict:
    """Liveness check. No authentication required."""
    return {"status": "healthy"}
