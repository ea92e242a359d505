"""Instance API endpoints, including import-time dimension options and events.

All require a publisher token.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.api.responses import document_response, list_response
from catalog_api.core.config import Settings, get_settings
from catalog_api.core.dependencies import (
    get_async_session,
    get_link_rewriter,
    optional_if_match,
    require_if_match,
    require_privileged,
)
from catalog_api.core.errors import ValidationFailedError
from catalog_api.lib.links import LinkRewriter
from catalog_api.schemas.dimension import DimensionOptionCreateRequest, DimensionUpdateRequest
from catalog_api.schemas.version import Event, InstanceCreateRequest, InstanceUpdateRequest, VersionState
from catalog_api.services.instance_dimension_service import (
    add_dimension_option,
    add_event,
    list_instance_dimension_options,
    list_instance_options,
    set_option_node_id,
    update_dimension,
)
from catalog_api.services.instance_service import (
    create_instance,
    delete_instance,
    get_instance,
    list_instances,
    update_instance,
)

instances_router = APIRouter(
    prefix="/instances",
    tags=["instances"],
    dependencies=[Depends(require_privileged)],
)


def _parse_states(raw: str | None) -> list[VersionState] | None:
    if not raw:
        return None
    try:
        return [VersionState(s.strip()) for s in raw.split(",") if s.strip()]
    except ValueError as exc:
        msg = f"invalid state filter: {raw}"
        raise ValidationFailedError(msg) from exc


@instances_router.get("")
async def list_all_instances(
    state: str | None = Query(None, description="Comma-separated list of states"),
    dataset: str | None = Query(None, description="Filter by dataset id"),
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List instances, optionally filtered by state and dataset."""
    envelopes = await list_instances(session, states=_parse_states(state), dataset_id=dataset)
    return list_response(rewriter.rewrite_instance_envelopes(envelopes))


@instances_router.post("", status_code=status.HTTP_201_CREATED)
async def create_new_instance(
    body: InstanceCreateRequest,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Register a new instance of an existing dataset."""
    envelope = await create_instance(
        session,
        body,
        dataset_api_url=settings.dataset_api_url,
        import_api_url=settings.import_api_url,
    )
    return document_response(
        rewriter.rewrite_instance_envelope(envelope),
        etag=envelope.etag,
        status_code=status.HTTP_201_CREATED,
    )


@instances_router.get("/{instance_id}")
async def get_single_instance(
    instance_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    envelope = await get_instance(session, instance_id)
    return document_response(rewriter.rewrite_instance_envelope(envelope), etag=envelope.etag)


@instances_router.put("/{instance_id}")
async def update_existing_instance(
    instance_id: str,
    body: InstanceUpdateRequest,
    if_match: str = Depends(require_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Update an instance draft, optionally changing its state."""
    envelope = await update_instance(
        session,
        instance_id,
        body,
        if_match,
        dataset_api_url=settings.dataset_api_url,
    )
    return document_response(rewriter.rewrite_instance_envelope(envelope), etag=envelope.etag)


@instances_router.delete("/{instance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_instance(
    instance_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
) -> Response:
    """Delete an unpublished instance."""
    await delete_instance(session, instance_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@instances_router.post("/{instance_id}/events", status_code=status.HTTP_201_CREATED)
async def add_instance_event(
    instance_id: str,
    body: Event,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
) -> Response:
    """Record an event of the import run."""
    envelope = await add_event(session, instance_id, body)
    return Response(status_code=status.HTTP_201_CREATED, headers={"ETag": envelope.etag or ""})


@instances_router.get("/{instance_id}/dimensions")
async def list_instance_dimension_values(
    instance_id: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List every recorded option of every dimension of the instance."""
    options, etag = await list_instance_options(session, instance_id)
    response = list_response(rewriter.rewrite_dimension_options(options))
    if etag:
        response.headers["ETag"] = etag
    return response


@instances_router.post("/{instance_id}/dimensions")
async def add_instance_dimension_option(
    instance_id: str,
    body: DimensionOptionCreateRequest,
    if_match: str | None = Depends(optional_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Record a dimension option found by the import pipeline."""
    envelope, option = await add_dimension_option(session, instance_id, body, if_match)
    return document_response(rewriter.rewrite_dimension_options([option])[0], etag=envelope.etag)


@instances_router.put("/{instance_id}/dimensions/{dimension}")
async def update_instance_dimension(
    instance_id: str,
    dimension: str,
    body: DimensionUpdateRequest,
    if_match: str | None = Depends(optional_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Change the label or description of a dimension of the instance."""
    envelope, updated = await update_dimension(session, instance_id, dimension, body, if_match)
    return document_response(rewriter.rewrite_dimensions([updated])[0], etag=envelope.etag)


@instances_router.get("/{instance_id}/dimensions/{dimension}/options")
async def list_instance_dimension_option_values(
    instance_id: str,
    dimension: str,
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """List the recorded options of one dimension of the instance."""
    options, etag = await list_instance_dimension_options(session, instance_id, dimension)
    response = list_response(rewriter.rewrite_dimension_options(options))
    if etag:
        response.headers["ETag"] = etag
    return response


@instances_router.put("/{instance_id}/dimensions/{dimension}/options/{option}/node_id/{node_id}")
async def set_instance_option_node_id(
    instance_id: str,
    dimension: str,
    option: str,
    node_id: str,
    if_match: str | None = Depends(optional_if_match),  # noqa: B008
    session: AsyncSession = Depends(get_async_session),  # noqa: B008
    rewriter: LinkRewriter = Depends(get_link_rewriter),  # noqa: B008
) -> JSONResponse:
    """Record the graph node an option of the instance was written to."""
    envelope, updated = await set_option_node_id(session, instance_id, dimension, option, node_id, if_match)
    return document_response(rewriter.rewrite_dimension_options([updated])[0], etag=envelope.etag)
