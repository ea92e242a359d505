"""Instance service — registration and import-side lifecycle of instances.

An instance is created by the import pipeline and walked through
``submitted`` and ``completed`` to ``edition-confirmed``, at which point it
is allocated a version number in its edition and becomes a version.
Association, detachment and publishing happen through the version service.
"""

import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import (
    DATASET_NOT_FOUND,
    ETAG_MISMATCH,
    INSTANCE_NOT_FOUND,
    RESOURCE_PUBLISHED,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from catalog_api.lib.lifecycle import TRANSITIONS, transition
from catalog_api.models.instance import InstanceRecord
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.dimension import DimensionLinks, DimensionOptionLinks
from catalog_api.schemas.version import (
    Instance,
    InstanceCreateRequest,
    InstanceLinks,
    InstanceUpdateRequest,
    VersionState,
)
from catalog_api.services.dataset_service import dataset_store
from catalog_api.services.edition_service import confirm_edition
from catalog_api.services.publication_store import PublicationStore, dump_document, merge_patch

# States an instance may be moved into through the instance endpoint
INSTANCE_TARGET_STATES = frozenset(
    {
        VersionState.SUBMITTED,
        VersionState.COMPLETED,
        VersionState.EDITION_CONFIRMED,
        VersionState.FAILED,
    }
)


def _instance_lookup(doc: Instance) -> dict:
    return {
        "dataset_id": doc.dataset_id,
        "edition": doc.edition,
        "version": doc.version,
        "state": doc.state.value,
    }


def instance_store(session: AsyncSession) -> PublicationStore[Instance]:
    """Publication store for instances and the versions they become."""
    return PublicationStore(session, InstanceRecord, Instance, INSTANCE_NOT_FOUND, lookup=_instance_lookup)


def build_version_links(instance: Instance, dataset_api_url: str, number: int) -> InstanceLinks:
    """Links of an instance once it is version ``number`` of its edition.

    The instance's own ``self``, ``job`` and ``spatial`` links are kept.
    """
    dataset_href = f"{dataset_api_url}/datasets/{instance.dataset_id}"
    edition_href = f"{dataset_href}/editions/{instance.edition}"
    version_href = f"{edition_href}/versions/{number}"
    existing = instance.links or InstanceLinks()
    return InstanceLinks(
        dataset=LinkObject(href=dataset_href, id=instance.dataset_id),
        dimensions=LinkObject(href=f"{version_href}/dimensions"),
        edition=LinkObject(href=edition_href, id=instance.edition),
        self=existing.self,
        spatial=existing.spatial,
        version=LinkObject(href=version_href, id=str(number)),
        job=existing.job,
    )


def _link_dimensions_to_version(instance: Instance, version_link: LinkObject) -> None:
    for dimension in instance.dimensions or []:
        if dimension.links is None:
            dimension.links = DimensionLinks()
        dimension.links.version = version_link.model_copy()
        for option in dimension.options or []:
            if option.links is None:
                option.links = DimensionOptionLinks()
            option.links.version = version_link.model_copy()


async def create_instance(
    session: AsyncSession,
    request: InstanceCreateRequest,
    *,
    dataset_api_url: str,
    import_api_url: str,
) -> VersionedResource[Instance]:
    """Register a new instance of an existing dataset.

    Raises:
        NotFoundError: If the dataset does not exist.
    """
    if not await dataset_store(session).exists(request.dataset_id):
        raise NotFoundError(DATASET_NOT_FOUND)

    instance_id = str(uuid.uuid4())
    links = InstanceLinks(
        dataset=LinkObject(href=f"{dataset_api_url}/datasets/{request.dataset_id}", id=request.dataset_id),
        self=LinkObject(href=f"{dataset_api_url}/instances/{instance_id}"),
    )
    if request.job_id:
        links.job = LinkObject(href=f"{import_api_url}/jobs/{request.job_id}", id=request.job_id)

    instance = Instance(
        id=instance_id,
        dataset_id=request.dataset_id,
        edition=request.edition,
        type=request.type,
        headers=request.headers,
        dimensions=request.dimensions,
        state=VersionState.CREATED,
        links=links,
        last_updated=datetime.now(UTC),
    )
    envelope = await instance_store(session).create(instance_id, instance)
    logger.info("Registered instance {} of dataset {}", instance_id, request.dataset_id)
    return envelope


async def get_instance(session: AsyncSession, instance_id: str) -> VersionedResource[Instance]:
    return await instance_store(session).get_envelope(instance_id)


async def list_instances(
    session: AsyncSession,
    *,
    states: list[VersionState] | None = None,
    dataset_id: str | None = None,
) -> list[VersionedResource[Instance]]:
    return await instance_store(session).list(
        True,
        state=[s.value for s in states] if states else None,
        dataset_id=dataset_id,
    )


async def update_instance(
    session: AsyncSession,
    instance_id: str,
    request: InstanceUpdateRequest,
    if_match: str,
    *,
    dataset_api_url: str,
) -> VersionedResource[Instance]:
    """Update an instance draft, optionally moving it along its lifecycle.

    Confirming the edition creates the edition if needed and allocates the
    instance's version number.

    Raises:
        NotFoundError: If the instance does not exist.
        ConflictError: On a token mismatch or an illegal state change.
        ForbiddenError: If the instance is published or its edition is fixed.
        ValidationFailedError: For a target state not reachable through this path.
    """
    store = instance_store(session)
    envelope = await store.get_envelope(instance_id)
    if envelope.etag != if_match:
        raise ConflictError(ETAG_MISMATCH)

    draft: Instance = envelope.next  # type: ignore[assignment]
    if draft.state == VersionState.PUBLISHED:
        raise ForbiddenError(RESOURCE_PUBLISHED)

    requested = request.state
    changing_state = requested is not None and requested != draft.state
    if changing_state and requested not in INSTANCE_TARGET_STATES:
        msg = f"state {requested} cannot be set through the instance endpoint"
        raise ValidationFailedError(msg)

    patch = request.model_dump(mode="json", exclude_none=True)
    if draft.version is not None and "edition" in patch and patch["edition"] != draft.edition:
        raise ForbiddenError("unable to update edition of an instance once its edition is confirmed")

    candidate = Instance.model_validate(merge_patch(dump_document(draft) or {}, patch))
    candidate.state = draft.state
    if changing_state:
        candidate = transition(candidate, TRANSITIONS[requested], requested)  # type: ignore[index,arg-type]
        if requested == VersionState.EDITION_CONFIRMED:
            if not candidate.edition:
                raise ValidationFailedError("missing mandatory fields: edition")
            _, number = await confirm_edition(
                session,
                candidate.dataset_id or "",
                candidate.edition,
                dataset_api_url=dataset_api_url,
            )
            candidate.version = number
            candidate.links = build_version_links(candidate, dataset_api_url, number)
            _link_dimensions_to_version(candidate, candidate.links.version)  # type: ignore[arg-type]
            logger.info("Instance {} confirmed as version {} of edition {}", instance_id, number, candidate.edition)

    candidate.last_updated = datetime.now(UTC)
    return await store.replace_draft(instance_id, candidate, if_match)


async def delete_instance(session: AsyncSession, instance_id: str) -> None:
    """Delete an unpublished instance.

    Raises:
        NotFoundError: If the instance does not exist.
        ForbiddenError: If the instance has been published.
    """
    await instance_store(session).delete(instance_id)
