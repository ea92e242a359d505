"""Dataset API endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.api.responses import document_response, list_response
from catalog_api.core.config import Settings, get_settings
from catalog_api.core.dependencies import (
    get_async_session,
    get_link_rewriter,
    get_privileged,
    require_if_match,
    require_privileged,
)
from catalog_api.lib.links import LinkRewriter
from catalog_api.schemas.dataset import DatasetCreateRequest, DatasetUpdateRequest
from catalog_api.services.dataset_service import (
    create_dataset,
    delete_dataset,
    get_dataset,
    list_datasets,
    update_dataset,
)

datasets_router = APIRouter(prefix="/datasets", tags=["datasets"])


@datasets_router.get("")
async def list_all_datasets(
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List datasets.

    Public callers see published datasets only; privileged callers receive
    the full current/next envelope of every dataset.
    """
    envelopes = await list_datasets(session, privileged=privileged)
    return list_response(rewriter.rewrite_dataset_envelopes(envelopes, privileged=privileged))


@datasets_router.post("/{dataset_id}", status_code=status.HTTP_201_CREATED)
async def create_new_dataset(
    dataset_id: str,
    body: DatasetCreateRequest,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
    _caller: dict = Depends(require_privileged),  # noqa: B008
) -> JSONResponse:
    """Create an unpublished dataset. Requires a publisher token."""
    envelope = await create_dataset(session, dataset_id, body, dataset_api_url=settings.dataset_api_url)
    return document_response(
        rewriter.rewrite_dataset_envelope(envelope, privileged=True),
        etag=envelope.etag,
        status_code=status.HTTP_201_CREATED,
    )


@datasets_router.get("/{dataset_id}")
async def get_single_dataset(
    dataset_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Get a dataset.

    Public callers get the published document or 404; privileged callers get
    the envelope, even before the first publish.
    """
    envelope = await get_dataset(session, dataset_id, privileged=privileged)
    return document_response(
        rewriter.rewrite_dataset_envelope(envelope, privileged=privileged),
        etag=envelope.etag if privileged else None,
    )


@datasets_router.put("/{dataset_id}")
async def update_existing_dataset(
    dataset_id: str,
    body: DatasetUpdateRequest,
    if_match: str = Depends(require_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
    _caller: dict = Depends(require_privileged),  # noqa: B008
) -> JSONResponse:
    """Update the dataset draft. Requires ``If-Match`` and a publisher token."""
    envelope = await update_dataset(session, dataset_id, body, if_match)
    return document_response(rewriter.rewrite_dataset_envelope(envelope, privileged=True), etag=envelope.etag)


@datasets_router.delete("/{dataset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_dataset(
    dataset_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    _caller: dict = Depends(require_privileged),  # noqa: B008
) -> Response:
    """Delete an unpublished dataset. Published datasets cannot be deleted."""
    await delete_dataset(session, dataset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
