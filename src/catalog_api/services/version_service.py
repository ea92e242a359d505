"""Version service — reading, amending, associating, detaching and publishing versions.

A version is an instance that has been confirmed into an edition.  Every
state change goes through the lifecycle state machine; publishing commits the
version, then its edition and dataset, and only then notifies downstream
systems.
"""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import (
    ETAG_MISMATCH,
    RESOURCE_PUBLISHED,
    VERSION_NOT_FOUND,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from catalog_api.lib.downstream import DownstreamNotifier
from catalog_api.lib.lifecycle import TRANSITIONS, transition
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.version import Instance, Version, VersionState, VersionUpdateRequest
from catalog_api.services import dataset_service, edition_service
from catalog_api.services.instance_service import instance_store
from catalog_api.services.publication_store import dump_document, merge_patch

# States a version may be moved into through the version endpoint
VERSION_TARGET_STATES = frozenset(
    {
        VersionState.ASSOCIATED,
        VersionState.DETACHED,
        VersionState.PUBLISHED,
    }
)


async def find_version(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
) -> VersionedResource[Instance]:
    """Return the envelope of version ``version`` of an edition.

    Raises:
        NotFoundError: If no such version exists.
    """
    envelope = await instance_store(session).find(dataset_id=dataset_id, edition=edition, version=version)
    if envelope is None:
        raise NotFoundError(VERSION_NOT_FOUND)
    return envelope


async def get_version(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
    *,
    privileged: bool,
) -> tuple[Version, str | None]:
    """Return a version as visible to the caller, with its concurrency token.

    Privileged callers see the draft; public callers see the published
    document or nothing.
    """
    await edition_service.get_edition(session, dataset_id, edition, privileged=privileged)
    envelope = await find_version(session, dataset_id, edition, version)
    if privileged:
        return envelope.next.as_version(), envelope.etag  # type: ignore[union-attr]
    if envelope.current is None:
        raise NotFoundError(VERSION_NOT_FOUND)
    return envelope.current.as_version(), envelope.etag


async def list_versions(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    *,
    privileged: bool,
) -> list[Version]:
    """List the versions of an edition visible to the caller, oldest first."""
    await edition_service.get_edition(session, dataset_id, edition, privileged=privileged)
    envelopes = await instance_store(session).list(
        privileged,
        order_by="version",
        dataset_id=dataset_id,
        edition=edition,
    )
    versions: list[Version] = []
    for envelope in envelopes:
        doc = envelope.next if privileged else envelope.current
        if doc is not None and doc.version is not None:
            versions.append(doc.as_version())
    return versions


async def _notify_published(notifier: DownstreamNotifier | None, version: Instance) -> None:
    """Run post-publish side effects; failures never affect the committed publish."""
    if notifier is None:
        logger.warning("No downstream notifier configured; skipping notification for {}", version.id)
        return
    try:
        await notifier.on_published(
            version.dataset_id or "",
            version.id or "",
            version.edition or "",
            str(version.version) if version.version is not None else "",
        )
    except Exception:
        logger.exception(
            "Downstream notification failed for dataset={} instance={} edition={} version={}",
            version.dataset_id,
            version.id,
            version.edition,
            version.version,
        )


async def _publish(
    session: AsyncSession,
    instance_id: str,
    notifier: DownstreamNotifier | None,
) -> VersionedResource[Instance]:
    """Publish the version, then its edition and dataset, then notify.

    Every step is a no-op when already done, so running the whole sequence
    again completes a publish that was interrupted part way.  Downstream
    systems are only notified when some step changed stored state.
    """
    store = instance_store(session)
    before = await store.get_envelope(instance_id)
    envelope = await store.publish(instance_id)
    published: Instance = envelope.current  # type: ignore[assignment]
    dataset_id = published.dataset_id or ""
    changed = envelope.etag != before.etag

    edition_before = await edition_service.find_edition(session, dataset_id, published.edition or "")
    edition = await edition_service.publish_edition(session, published.as_version())
    changed = changed or edition_before is None or edition.etag != edition_before.etag

    version_link = published.links.version if published.links is not None else None
    latest = LinkObject(
        href=version_link.href if version_link is not None else None,
        id=str(published.version),
    )
    dataset_before = await dataset_service.dataset_store(session).get_envelope(dataset_id)
    dataset = await dataset_service.publish_dataset(session, dataset_id, latest)
    changed = changed or dataset.etag != dataset_before.etag

    if not changed:
        logger.info("Version {} of {}/{} already published", published.version, dataset_id, published.edition)
        return envelope
    logger.info(
        "Published version {} of {}/{} (instance {})",
        published.version,
        published.dataset_id,
        published.edition,
        instance_id,
    )

    await _notify_published(notifier, published)
    return envelope


async def _check_detachable(session: AsyncSession, version: Instance) -> None:
    highest = await edition_service.highest_version_number(session, version.dataset_id or "", version.edition or "")
    if version.version != highest:
        raise ConflictError("only the latest version of an edition can be detached")


async def _detach(session: AsyncSession, version: Instance) -> None:
    """Roll back the edition and dataset drafts staged for a detached version."""
    dataset = await dataset_service.dataset_store(session).get_envelope(version.dataset_id or "")
    await edition_service.detach_edition(session, version.dataset_id or "", version.edition or "")
    if dataset.current is not None:
        await dataset_service.revert_dataset(session, dataset.id)
    logger.info("Detached version {} of {}/{}", version.version, version.dataset_id, version.edition)


def _is_publish_repeat(request: VersionUpdateRequest) -> bool:
    fields = request.model_dump(exclude_none=True)
    return set(fields) <= {"state"} and request.state in (None, VersionState.PUBLISHED)


async def update_version(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
    request: VersionUpdateRequest,
    if_match: str | None,
    *,
    notifier: DownstreamNotifier | None = None,
) -> tuple[Version, str | None]:
    """Amend a version draft and carry out any requested state change.

    ``If-Match`` is required for every edit except publishing, where it is
    checked when supplied.  Repeating the publish of a published version
    finishes any publish step left undone and is otherwise a no-op.

    Args:
        session: Database session.
        dataset_id: Dataset the version belongs to.
        edition: Edition the version belongs to.
        version: Version number.
        request: Fields to change, optionally with a target state.
        if_match: Concurrency token presented by the caller.
        notifier: Downstream side effects run after a publish is committed.

    Returns:
        The resulting version draft and its new concurrency token.

    Raises:
        NotFoundError: If the version does not exist.
        ConflictError: On a token mismatch or an illegal state change.
        ForbiddenError: On any change to a published version.
        ValidationFailedError: On a missing token or a version that fails validation.
    """
    store = instance_store(session)
    envelope = await find_version(session, dataset_id, edition, version)
    draft: Instance = envelope.next  # type: ignore[assignment]

    if draft.state == VersionState.PUBLISHED:
        if not _is_publish_repeat(request):
            raise ForbiddenError(RESOURCE_PUBLISHED)
        envelope = await _publish(session, envelope.id, notifier)
        return envelope.next.as_version(), envelope.etag  # type: ignore[union-attr]

    requested = request.state
    changing_state = requested is not None and requested != draft.state
    if changing_state and requested not in VERSION_TARGET_STATES:
        msg = f"state {requested} cannot be set through the version endpoint"
        raise ValidationFailedError(msg)

    publishing = changing_state and requested == VersionState.PUBLISHED
    if if_match is None and not publishing:
        raise ValidationFailedError("required header If-Match missing")
    if if_match is not None and if_match != envelope.etag:
        logger.info("ETag mismatch updating version {} of {}/{}", version, dataset_id, edition)
        raise ConflictError(ETAG_MISMATCH)

    patch = request.model_dump(mode="json", exclude_none=True)
    candidate = Instance.model_validate(merge_patch(dump_document(draft) or {}, patch))
    candidate.state = draft.state
    if changing_state:
        candidate = transition(candidate, TRANSITIONS[requested], requested)  # type: ignore[index,arg-type]
        if requested == VersionState.DETACHED:
            await _check_detachable(session, candidate)
    candidate.last_updated = datetime.now(UTC)

    envelope = await store.replace_draft(envelope.id, candidate, envelope.etag or "")

    if changing_state:
        if requested == VersionState.PUBLISHED:
            envelope = await _publish(session, envelope.id, notifier)
        elif requested == VersionState.ASSOCIATED:
            await dataset_service.associate_dataset(session, dataset_id, candidate.collection_id or "")
        elif requested == VersionState.DETACHED:
            await _detach(session, candidate)

    return envelope.next.as_version(), envelope.etag  # type: ignore[union-attr]
