"""Dimension API endpoints for a version."""

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.api.responses import list_response
from catalog_api.core.dependencies import get_async_session, get_link_rewriter, get_privileged
from catalog_api.lib.links import LinkRewriter
from catalog_api.services.dimension_service import list_dimension_options, list_dimensions

dimensions_router = APIRouter(
    prefix="/datasets/{dataset_id}/editions/{edition}/versions/{version}/dimensions",
    tags=["dimensions"],
)


@dimensions_router.get("")
async def list_version_dimensions(
    dataset_id: str,
    edition: str,
    version: int = Path(ge=1),
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List the dimensions of a version."""
    dimensions = await list_dimensions(session, dataset_id, edition, version, privileged=privileged)
    return list_response(rewriter.rewrite_dimensions(dimensions))


@dimensions_router.get("/{dimension}/options")
async def list_version_dimension_options(
    dataset_id: str,
    edition: str,
    dimension: str,
    version: int = Path(ge=1),
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List the options of one dimension of a version."""
    options = await list_dimension_options(session, dataset_id, edition, version, dimension, privileged=privileged)
    return list_response(rewriter.rewrite_dimension_options(options))
