"""Dataset service — create, read, update, publish and delete datasets."""

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import DATASET_EXISTS, DATASET_NOT_FOUND, ForbiddenError
from catalog_api.models.dataset import DatasetRecord
from catalog_api.models.edition import EditionRecord
from catalog_api.models.instance import InstanceRecord
from catalog_api.schemas.common import LinkObject, VersionedResource
from catalog_api.schemas.dataset import Dataset, DatasetCreateRequest, DatasetLinks, DatasetUpdateRequest
from catalog_api.schemas.version import VersionState
from catalog_api.services.publication_store import PublicationStore


def dataset_store(session: AsyncSession) -> PublicationStore[Dataset]:
    """Publication store for datasets."""
    return PublicationStore(session, DatasetRecord, Dataset, DATASET_NOT_FOUND)


async def create_dataset(
    session: AsyncSession,
    dataset_id: str,
    request: DatasetCreateRequest,
    *,
    dataset_api_url: str,
) -> VersionedResource[Dataset]:
    """Create a new, unpublished dataset.

    Args:
        session: Database session.
        dataset_id: Identifier chosen by the caller.
        request: Dataset metadata.
        dataset_api_url: Internal API base URL the stored links are rooted on.

    Raises:
        ForbiddenError: If a dataset with this id already exists.
    """
    store = dataset_store(session)
    if await store.exists(dataset_id):
        logger.warning("Refusing to create dataset {}: already exists", dataset_id)
        raise ForbiddenError(DATASET_EXISTS)

    self_href = f"{dataset_api_url}/datasets/{dataset_id}"
    dataset = Dataset.model_validate(
        {
            **request.model_dump(exclude_none=True),
            "id": dataset_id,
            "state": VersionState.CREATED,
            "links": DatasetLinks(
                self=LinkObject(href=self_href),
                editions=LinkObject(href=f"{self_href}/editions"),
            ),
        }
    )
    return await store.create(dataset_id, dataset)


async def get_dataset(session: AsyncSession, dataset_id: str, *, privileged: bool) -> VersionedResource[Dataset]:
    return await dataset_store(session).get(dataset_id, privileged)


async def list_datasets(
    session: AsyncSession,
    *,
    privileged: bool,
) -> list[VersionedResource[Dataset]]:
    return await dataset_store(session).list(privileged)


async def update_dataset(
    session: AsyncSession,
    dataset_id: str,
    request: DatasetUpdateRequest,
    if_match: str,
) -> VersionedResource[Dataset]:
    """Apply a partial update to the dataset draft."""
    patch = request.model_dump(mode="json", exclude_none=True)
    envelope = await dataset_store(session).update_draft(dataset_id, patch, if_match)
    logger.info("Updated dataset {} draft fields {}", dataset_id, sorted(patch))
    return envelope


async def associate_dataset(session: AsyncSession, dataset_id: str, collection_id: str) -> VersionedResource[Dataset]:
    """Stage the dataset draft in an editorial collection."""
    return await dataset_store(session).amend_draft(
        dataset_id,
        {"collection_id": collection_id, "state": VersionState.ASSOCIATED.value},
    )


async def publish_dataset(
    session: AsyncSession,
    dataset_id: str,
    latest_version: LinkObject,
) -> VersionedResource[Dataset]:
    """Point the dataset at its newest published version and publish it."""
    store = dataset_store(session)
    await store.amend_draft(
        dataset_id,
        {
            "state": VersionState.PUBLISHED.value,
            "links": {"latest_version": latest_version.model_dump(exclude_none=True)},
        },
    )
    return await store.publish(dataset_id)


async def revert_dataset(session: AsyncSession, dataset_id: str) -> VersionedResource[Dataset]:
    """Discard the dataset draft in favour of the published document."""
    return await dataset_store(session).revert_draft(dataset_id)


async def delete_dataset(session: AsyncSession, dataset_id: str) -> None:
    """Delete an unpublished dataset together with its editions and instances.

    Everything goes in one transaction; a failure leaves the dataset intact.

    Raises:
        NotFoundError: If the dataset does not exist.
        ForbiddenError: If the dataset has been published.
    """
    await dataset_store(session).delete(
        dataset_id,
        dependents=[
            delete(EditionRecord).where(EditionRecord.dataset_id == dataset_id),
            delete(InstanceRecord).where(InstanceRecord.dataset_id == dataset_id, InstanceRecord.current.is_(None)),
        ],
    )
    logger.info("Deleted dataset {} with its editions and instances", dataset_id)
