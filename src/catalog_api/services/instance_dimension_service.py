"""Instance dimension service — import-time edits to an instance's dimensions and events.

The import pipeline records the options it finds for each dimension, the
graph node each option was written to, and the events of the import run.
All of these live on the instance draft, so every edit is a guarded replace
of ``next``.  Published instances are frozen.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import (
    DIMENSION_NOT_FOUND,
    ETAG_MISMATCH,
    OPTION_NOT_FOUND,
    RESOURCE_PUBLISHED,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.dimension import (
    Dimension,
    DimensionOption,
    DimensionOptionCreateRequest,
    DimensionOptionLinks,
    DimensionUpdateRequest,
)
from catalog_api.schemas.version import Event, Instance, VersionState
from catalog_api.services.instance_service import instance_store

ResultT = TypeVar("ResultT")


def _find_dimension(instance: Instance, name: str) -> Dimension | None:
    for dimension in instance.dimensions or []:
        if name in (dimension.name, dimension.id):
            return dimension
    return None


async def _edit_draft(
    session: AsyncSession,
    instance_id: str,
    if_match: str | None,
    edit: Callable[[Instance], ResultT],
) -> tuple[VersionedResource[Instance], ResultT]:
    """Apply ``edit`` to a copy of the instance draft and store it.

    The write is guarded by ``if_match`` when given, otherwise by the token
    read here, so a concurrent edit is reported rather than overwritten.
    """
    store = instance_store(session)
    envelope = await store.get_envelope(instance_id)
    if if_match is not None and envelope.etag != if_match:
        raise ConflictError(ETAG_MISMATCH)

    draft: Instance = envelope.next  # type: ignore[assignment]
    if draft.state == VersionState.PUBLISHED:
        raise ForbiddenError(RESOURCE_PUBLISHED)

    candidate = draft.model_copy(deep=True)
    result = edit(candidate)
    candidate.last_updated = datetime.now(UTC)
    envelope = await store.replace_draft(instance_id, candidate, envelope.etag or "")
    return envelope, result


async def list_instance_options(session: AsyncSession, instance_id: str) -> tuple[list[DimensionOption], str | None]:
    """Every option of every dimension of the instance draft, tagged with its dimension."""
    envelope = await instance_store(session).get_envelope(instance_id)
    options: list[DimensionOption] = []
    for dimension in envelope.next.dimensions or []:  # type: ignore[union-attr]
        for option in dimension.options or []:
            options.append(option.model_copy(update={"dimension": option.dimension or dimension.name}))
    return options, envelope.etag


async def list_instance_dimension_options(
    session: AsyncSession,
    instance_id: str,
    dimension: str,
) -> tuple[list[DimensionOption], str | None]:
    """Options of one dimension of the instance draft.

    Raises:
        NotFoundError: If the instance has no such dimension.
    """
    envelope = await instance_store(session).get_envelope(instance_id)
    found = _find_dimension(envelope.next, dimension)  # type: ignore[arg-type]
    if found is None:
        raise NotFoundError(DIMENSION_NOT_FOUND)
    return list(found.options or []), envelope.etag


async def add_dimension_option(
    session: AsyncSession,
    instance_id: str,
    request: DimensionOptionCreateRequest,
    if_match: str | None,
) -> tuple[VersionedResource[Instance], DimensionOption]:
    """Record an option of a dimension, adding the dimension if it is new.

    An option already recorded under the same value is replaced.
    """

    def edit(instance: Instance) -> DimensionOption:
        dimension = _find_dimension(instance, request.dimension)
        if dimension is None:
            dimension = Dimension(id=request.dimension, name=request.dimension)
            instance.dimensions = [*(instance.dimensions or []), dimension]
        option = DimensionOption(
            dimension=request.dimension,
            option=request.option,
            label=request.label,
            code=request.code,
            node_id=request.node_id,
        )
        if request.code_list:
            option.links = DimensionOptionLinks(code_list=LinkObject(id=request.code_list))
        kept = [o for o in dimension.options or [] if request.option is None or o.option != request.option]
        dimension.options = [*kept, option]
        return option

    envelope, option = await _edit_draft(session, instance_id, if_match, edit)
    logger.info("Added option {!r} to dimension {} of instance {}", request.option, request.dimension, instance_id)
    return envelope, option


async def update_dimension(
    session: AsyncSession,
    instance_id: str,
    dimension: str,
    request: DimensionUpdateRequest,
    if_match: str | None,
) -> tuple[VersionedResource[Instance], Dimension]:
    """Change the label and/or description of a dimension; empty fields are left as they are.

    Raises:
        NotFoundError: If the instance has no such dimension.
    """

    def edit(instance: Instance) -> Dimension:
        found = _find_dimension(instance, dimension)
        if found is None:
            raise NotFoundError(DIMENSION_NOT_FOUND)
        if request.label:
            found.label = request.label
        if request.description:
            found.description = request.description
        return found

    envelope, updated = await _edit_draft(session, instance_id, if_match, edit)
    logger.info("Updated dimension {} of instance {}", dimension, instance_id)
    return envelope, updated


async def set_option_node_id(
    session: AsyncSession,
    instance_id: str,
    dimension: str,
    option: str,
    node_id: str,
    if_match: str | None,
) -> tuple[VersionedResource[Instance], DimensionOption]:
    """Record the graph node an option of the instance was written to.

    Raises:
        NotFoundError: If the instance has no such dimension or option.
    """

    def edit(instance: Instance) -> DimensionOption:
        found = _find_dimension(instance, dimension)
        if found is None:
            raise NotFoundError(DIMENSION_NOT_FOUND)
        for item in found.options or []:
            if item.option == option:
                item.node_id = node_id
                return item
        raise NotFoundError(OPTION_NOT_FOUND)

    envelope, updated = await _edit_draft(session, instance_id, if_match, edit)
    logger.info("Option {} of dimension {} of instance {} is node {}", option, dimension, instance_id, node_id)
    return envelope, updated


async def add_event(session: AsyncSession, instance_id: str, event: Event) -> VersionedResource[Instance]:
    """Append an import event to the instance draft."""

    def edit(instance: Instance) -> None:
        instance.events = [*(instance.events or []), event]

    envelope, _ = await _edit_draft(session, instance_id, None, edit)
    logger.info("Recorded {} event for instance {}", event.type, instance_id)
    return envelope
