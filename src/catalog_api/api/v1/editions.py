"""Edition API endpoints (read-only; editions change with their versions)."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.api.responses import document_response, list_response
from catalog_api.core.dependencies import get_async_session, get_link_rewriter, get_privileged
from catalog_api.lib.links import LinkRewriter
from catalog_api.services.edition_service import get_edition, list_editions

editions_router = APIRouter(prefix="/datasets/{dataset_id}/editions", tags=["editions"])


@editions_router.get("")
async def list_dataset_editions(
    dataset_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List the editions of a dataset visible to the caller."""
    envelopes = await list_editions(session, dataset_id, privileged=privileged)
    return list_response(rewriter.rewrite_edition_envelopes(envelopes, privileged=privileged))


@editions_router.get("/{edition}")
async def get_dataset_edition(
    dataset_id: str,
    edition: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Get one edition of a dataset."""
    envelope = await get_edition(session, dataset_id, edition, privileged=privileged)
    return document_response(
        rewriter.rewrite_edition_envelope(envelope, privileged=privileged),
        etag=envelope.etag if privileged else None,
    )
