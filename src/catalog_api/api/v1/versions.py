"""Version API endpoints, including the publish path."""

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.api.responses import document_response, list_response
from catalog_api.core.dependencies import (
    get_async_session,
    get_link_rewriter,
    get_notifier,
    get_privileged,
    optional_if_match,
    require_privileged,
)
from catalog_api.lib.downstream import DownstreamNotifier
from catalog_api.lib.links import LinkRewriter
from catalog_api.schemas.version import VersionUpdateRequest
from catalog_api.services.metadata_service import get_metadata
from catalog_api.services.version_service import get_version, list_versions, update_version

versions_router = APIRouter(prefix="/datasets/{dataset_id}/editions/{edition}/versions", tags=["versions"])


@versions_router.get("")
async def list_edition_versions(
    dataset_id: str,
    edition: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List versions of an edition; public callers see published versions only."""
    versions = await list_versions(session, dataset_id, edition, privileged=privileged)
    return list_response(rewriter.rewrite_versions(versions))


@versions_router.get("/{version}")
async def get_edition_version(
    dataset_id: str,
    edition: str,
    version: int = Path(ge=1),
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Get a version: the draft for privileged callers, the published document otherwise."""
    doc, etag = await get_version(session, dataset_id, edition, version, privileged=privileged)
    return document_response(rewriter.rewrite_version(doc), etag=etag)


@versions_router.get("/{version}/metadata")
async def get_version_metadata(
    dataset_id: str,
    edition: str,
    version: int = Path(ge=1),
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    privileged: bool = Depends(get_privileged),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Get the combined dataset and version metadata of a version."""
    metadata = await get_metadata(session, dataset_id, edition, version, privileged=privileged)
    return document_response(rewriter.rewrite_metadata(metadata, dataset_id, edition, version))


@versions_router.put("/{version}")
async def update_edition_version(
    body: VersionUpdateRequest,
    dataset_id: str,
    edition: str,
    version: int = Path(ge=1),
    if_match: str | None = Depends(optional_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
    notifier: DownstreamNotifier | None = Depends(get_notifier),  # noqa: B008
    _caller: dict = Depends(require_privileged),  # noqa: B008
) -> JSONResponse:
    """Amend a version, or move it to ``associated``, ``detached`` or ``published``.

    ``If-Match`` is required except when publishing, where it is checked if
    given. Downstream notification failures never change the response.
    """
    doc, etag = await update_version(
        session,
        dataset_id,
        edition,
        version,
        body,
        if_match,
        notifier=notifier,
    )
    return document_response(rewriter.rewrite_version(doc), etag=etag)
