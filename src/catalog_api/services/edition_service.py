"""Edition service — edition lookup, derivation from versions, and publishing.

Editions are never written directly by callers: they are created when an
instance's edition is confirmed and updated as versions are published or
detached.  The published ``latest_version`` link only ever moves forward.
"""

import uuid

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import (
    DATASET_NOT_FOUND,
    EDITION_NOT_FOUND,
    VERSION_NOT_FOUND,
    ConflictError,
    NotFoundError,
)
from catalog_api.models.edition import EditionRecord
from catalog_api.models.instance import InstanceRecord
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.edition import Edition, EditionLinks
from catalog_api.schemas.version import Version, VersionState
from catalog_api.services.dataset_service import dataset_store
from catalog_api.services.publication_store import PublicationStore, dump_document


def _edition_lookup(doc: Edition) -> dict:
    return {"dataset_id": doc.dataset_id, "edition": doc.edition}


def edition_store(session: AsyncSession) -> PublicationStore[Edition]:
    """Publication store for editions."""
    return PublicationStore(session, EditionRecord, Edition, EDITION_NOT_FOUND, lookup=_edition_lookup)


# ---------------------------------------------------------------------------
# Derivation from versions
# ---------------------------------------------------------------------------


def _copy_link(link: LinkObject | None) -> LinkObject | None:
    return link.model_copy() if link is not None else None


def map_version_to_edition(version: Version) -> Edition:
    """Derive an edition document from one of its versions.

    The link structure depends only on the version's links, so a published
    and a draft version of the same edition produce identical links.
    """
    links = version.links
    edition_link = links.edition if links is not None else None
    versions_link = None
    if edition_link is not None and edition_link.href:
        versions_link = LinkObject(href=f"{edition_link.href}/versions")

    return Edition(
        dataset_id=version.dataset_id,
        edition=version.edition,
        edition_title=version.edition_title,
        release_date=version.release_date,
        state=version.state,
        version=version.version,
        type=version.type,
        last_updated=version.last_updated,
        alerts=[a.model_copy() for a in version.alerts] if version.alerts is not None else None,
        usage_notes=[n.model_copy() for n in version.usage_notes] if version.usage_notes is not None else None,
        distributions=(
            [d.model_copy() for d in version.distributions] if version.distributions is not None else None
        ),
        links=EditionLinks(
            dataset=_copy_link(links.dataset if links is not None else None),
            latest_version=_copy_link(links.version if links is not None else None),
            self=_copy_link(edition_link),
            versions=versions_link,
        ),
    )


def map_versions_to_edition_update(
    published: Version | None,
    unpublished: Version | None,
    edition_id: str,
) -> VersionedResource[Edition]:
    """Derive a full edition envelope from its newest published and draft versions.

    Raises:
        NotFoundError: If neither version is given.
    """
    if published is None and unpublished is None:
        raise NotFoundError(VERSION_NOT_FOUND)

    current = map_version_to_edition(published) if published is not None else None
    draft = map_version_to_edition(unpublished if unpublished is not None else published)  # type: ignore[arg-type]
    for doc in (current, draft):
        if doc is not None:
            doc.id = edition_id
    return VersionedResource[Edition](id=edition_id, current=current, next=draft)


def latest_version_number(edition: Edition | None) -> int:
    """Version number the edition's ``latest_version`` link points at (0 if none)."""
    if edition is None or edition.links is None or edition.links.latest_version is None:
        return 0
    link_id = edition.links.latest_version.id
    return int(link_id) if link_id and link_id.isdigit() else 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def _require_dataset(session: AsyncSession, dataset_id: str, privileged: bool) -> None:
    """Editions of a dataset are only visible when the dataset itself is."""
    await dataset_store(session).get(dataset_id, privileged)


async def find_edition(session: AsyncSession, dataset_id: str, edition: str) -> VersionedResource[Edition] | None:
    return await edition_store(session).find(dataset_id=dataset_id, edition=edition)


async def get_edition(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    *,
    privileged: bool,
) -> VersionedResource[Edition]:
    """Return an edition envelope as visible to the caller.

    Raises:
        NotFoundError: If the dataset or the edition is absent or unpublished
            for a public caller.
    """
    await _require_dataset(session, dataset_id, privileged)
    envelope = await find_edition(session, dataset_id, edition)
    if envelope is None:
        raise NotFoundError(EDITION_NOT_FOUND)
    if privileged:
        return envelope
    if envelope.current is None:
        raise NotFoundError(EDITION_NOT_FOUND)
    return VersionedResource[Edition](id=envelope.id, current=envelope.current)


async def list_editions(
    session: AsyncSession,
    dataset_id: str,
    *,
    privileged: bool,
) -> list[VersionedResource[Edition]]:
    await _require_dataset(session, dataset_id, privileged)
    return await edition_store(session).list(privileged, order_by="edition", dataset_id=dataset_id)


# ---------------------------------------------------------------------------
# Writes driven by version lifecycle changes
# ---------------------------------------------------------------------------


async def highest_version_number(session: AsyncSession, dataset_id: str, edition: str) -> int:
    """Highest version number allocated in the edition (0 if none)."""
    result = await session.execute(
        select(func.max(InstanceRecord.version)).where(
            InstanceRecord.dataset_id == dataset_id,
            InstanceRecord.edition == edition,
        )
    )
    return result.scalar_one_or_none() or 0


async def _next_version_number(session: AsyncSession, dataset_id: str, edition: str) -> int:
    return await highest_version_number(session, dataset_id, edition) + 1


async def confirm_edition(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    *,
    dataset_api_url: str,
) -> tuple[VersionedResource[Edition], int]:
    """Ensure the edition exists and allocate the next version number in it.

    The number is only reserved once the instance carrying it is written: the
    instances table holds each version number of an edition at most once, so
    a concurrent confirmation that picked the same number fails with a
    conflict when it writes the instance.

    Returns:
        The edition envelope and the version number allocated.

    Raises:
        NotFoundError: If the dataset does not exist.
    """
    if not await dataset_store(session).exists(dataset_id):
        raise NotFoundError(DATASET_NOT_FOUND)

    number = await _next_version_number(session, dataset_id, edition)
    dataset_href = f"{dataset_api_url}/datasets/{dataset_id}"
    edition_href = f"{dataset_href}/editions/{edition}"
    latest = LinkObject(href=f"{edition_href}/versions/{number}", id=str(number))

    store = edition_store(session)
    envelope = await store.find(dataset_id=dataset_id, edition=edition)
    if envelope is None:
        edition_id = str(uuid.uuid4())
        doc = Edition(
            id=edition_id,
            dataset_id=dataset_id,
            edition=edition,
            state=VersionState.EDITION_CONFIRMED,
            links=EditionLinks(
                dataset=LinkObject(href=dataset_href, id=dataset_id),
                latest_version=latest,
                self=LinkObject(href=edition_href, id=edition),
                versions=LinkObject(href=f"{edition_href}/versions"),
            ),
        )
        try:
            envelope = await store.create(edition_id, doc)
        except ConflictError:
            envelope = await store.find(dataset_id=dataset_id, edition=edition)
            if envelope is None:
                raise
            logger.info("Edition {} of dataset {} was created concurrently", edition, dataset_id)
        else:
            logger.info("Created edition {} of dataset {}", edition, dataset_id)
            return envelope, number

    if number > latest_version_number(envelope.next):
        envelope = await store.amend_draft(envelope.id, {"links": {"latest_version": dump_document(latest)}})
    return envelope, number


async def publish_edition(session: AsyncSession, version: Version) -> VersionedResource[Edition]:
    """Publish the edition a newly published version belongs to.

    The version is compared with the edition's published ``latest_version``:
    when it is not older, the draft takes the version's fields and points
    ``latest_version`` at it before being published.  An edition that does
    not exist yet is derived from the version and stored already published.
    Repeating the call for the same version changes nothing.
    """
    store = edition_store(session)
    envelope = await store.find(dataset_id=version.dataset_id, edition=version.edition)

    if envelope is None:
        derived = map_versions_to_edition_update(version, None, str(uuid.uuid4()))
        for doc in (derived.current, derived.next):
            doc.state = VersionState.PUBLISHED  # type: ignore[union-attr]
        logger.info(
            "Derived edition {} of dataset {} from version {}",
            version.edition,
            version.dataset_id,
            version.version,
        )
        return await store.create(derived.id, derived.next, current=derived.current)  # type: ignore[arg-type]

    patch: dict = {"state": VersionState.PUBLISHED.value}
    if (version.version or 0) >= latest_version_number(envelope.current):
        derived_doc = map_version_to_edition(version)
        fields = derived_doc.model_copy(update={"id": None, "state": None, "links": None, "last_updated": None})
        patch.update(dump_document(fields) or {})
        if derived_doc.links is not None and derived_doc.links.latest_version is not None:
            patch["links"] = {"latest_version": dump_document(derived_doc.links.latest_version)}
    await store.amend_draft(envelope.id, patch)
    return await store.publish(envelope.id)


async def detach_edition(session: AsyncSession, dataset_id: str, edition: str) -> None:
    """Roll back the edition after its newest version is detached.

    A previously published edition returns to its published document; one
    that was never published is removed.
    """
    store = edition_store(session)
    envelope = await store.find(dataset_id=dataset_id, edition=edition)
    if envelope is None:
        return
    if envelope.current is None:
        await store.delete(envelope.id)
    else:
        await store.revert_draft(envelope.id)
