"""Tests for the version metadata document."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import NotFoundError
from catalog_api.schemas.common import LinkObject
from catalog_api.schemas.dataset import (
    Dataset,
    DatasetCreateRequest,
    DatasetLinks,
    DatasetUpdateRequest,
    GeneralDetails,
)
from catalog_api.schemas.dimension import Dimension, DimensionOption
from catalog_api.schemas.version import (
    DownloadList,
    DownloadObject,
    InstanceCreateRequest,
    InstanceUpdateRequest,
    Version,
    VersionLinks,
    VersionState,
    VersionUpdateRequest,
)
from catalog_api.services import dataset_service, instance_service, metadata_service, version_service
from catalog_api.services.metadata_service import build_metadata

DATASET_API = "http://localhost:22000"
DATASET = "cpih01"
EDITION = "time-series"
VERSION_HREF = f"{DATASET_API}/datasets/{DATASET}/editions/{EDITION}/versions/1"


def _version(**fields: object) -> Version:
    defaults: dict = {
        "dataset_id": DATASET,
        "edition": EDITION,
        "version": 1,
        "release_date": "2026-10-18",
        "dimensions": [Dimension(name="aggregate", options=[DimensionOption(option="A0")])],
        "links": VersionLinks(
            version=LinkObject(href=VERSION_HREF, id="1"),
            spatial=LinkObject(href="http://geo/cpih"),
        ),
    }
    defaults.update(fields)
    return Version(**defaults)


class TestBuildMetadata:
    def test_combines_dataset_and_version_fields(self) -> None:
        dataset = Dataset(
            title="Consumer Prices Index",
            keywords=["inflation"],
            related_datasets=[GeneralDetails(title="CPI")],
            links=DatasetLinks(access_rights=LinkObject(href="http://rights")),
        )

        metadata = build_metadata(dataset, _version())

        assert metadata.title == "Consumer Prices Index"
        assert metadata.keywords == ["inflation"]
        assert metadata.related_datasets[0].title == "CPI"
        assert metadata.release_date == "2026-10-18"
        assert metadata.links.access_rights.href == "http://rights"
        assert metadata.links.self.href == f"{VERSION_HREF}/metadata"
        assert metadata.links.version.id == "1"
        assert metadata.links.spatial.href == "http://geo/cpih"

    def test_dimensions_listed_without_options(self) -> None:
        version = _version()

        metadata = build_metadata(Dataset(title="CPIH"), version)

        assert [d.name for d in metadata.dimensions] == ["aggregate"]
        assert metadata.dimensions[0].options is None
        assert version.dimensions[0].options[0].option == "A0"

    def test_distribution_follows_downloads(self) -> None:
        downloads = DownloadList(csv=DownloadObject(href="/downloads/v1.csv"), xls=DownloadObject())

        assert build_metadata(Dataset(), _version(downloads=downloads)).distribution == ["json", "csv"]
        assert build_metadata(Dataset(), _version()).distribution == ["json"]

    def test_version_without_links(self) -> None:
        metadata = build_metadata(Dataset(), _version(links=None))

        assert metadata.links.self is None
        assert metadata.links.version is None


async def _published_dataset_with_draft_version(session: AsyncSession) -> None:
    """Publish version 1 and leave version 2 edition-confirmed."""
    await dataset_service.create_dataset(
        session, DATASET, DatasetCreateRequest(title="Published title"), dataset_api_url=DATASET_API
    )
    for _ in range(2):
        envelope = await instance_service.create_instance(
            session,
            InstanceCreateRequest(dataset_id=DATASET, edition=EDITION),
            dataset_api_url=DATASET_API,
            import_api_url="http://localhost:21800",
        )
        etag = envelope.etag
        for state in (VersionState.SUBMITTED, VersionState.COMPLETED, VersionState.EDITION_CONFIRMED):
            envelope = await instance_service.update_instance(
                session, envelope.id, InstanceUpdateRequest(state=state), etag, dataset_api_url=DATASET_API
            )
            etag = envelope.etag

    _, etag = await version_service.get_version(session, DATASET, EDITION, 1, privileged=True)
    await version_service.update_version(
        session,
        DATASET,
        EDITION,
        1,
        VersionUpdateRequest(state=VersionState.ASSOCIATED, collection_id="coll-1", release_date="2026-10-18"),
        etag,
    )
    await version_service.update_version(
        session, DATASET, EDITION, 1, VersionUpdateRequest(state=VersionState.PUBLISHED), None
    )


class TestGetMetadata:
    async def test_public_metadata_of_published_version(self, async_session: AsyncSession) -> None:
        await _published_dataset_with_draft_version(async_session)
        envelope = await dataset_service.get_dataset(async_session, DATASET, privileged=True)
        await dataset_service.update_dataset(
            async_session,
            DATASET,
            DatasetUpdateRequest(title="Draft title"),
            envelope.etag,
        )

        metadata = await metadata_service.get_metadata(async_session, DATASET, EDITION, 1, privileged=False)

        assert metadata.title == "Published title"
        assert metadata.release_date == "2026-10-18"

    async def test_unpublished_version_hidden_from_public(self, async_session: AsyncSession) -> None:
        await _published_dataset_with_draft_version(async_session)

        with pytest.raises(NotFoundError):
            await metadata_service.get_metadata(async_session, DATASET, EDITION, 2, privileged=False)

    async def test_unpublished_version_uses_dataset_draft(self, async_session: AsyncSession) -> None:
        await _published_dataset_with_draft_version(async_session)
        envelope = await dataset_service.get_dataset(async_session, DATASET, privileged=True)
        await dataset_service.update_dataset(
            async_session,
            DATASET,
            DatasetUpdateRequest(title="Draft title"),
            envelope.etag,
        )

        metadata = await metadata_service.get_metadata(async_session, DATASET, EDITION, 2, privileged=True)

        assert metadata.title == "Draft title"
        assert metadata.links.version.id == "2"

    async def test_unpublished_dataset_hidden_from_public(self, async_session: AsyncSession) -> None:
        await dataset_service.create_dataset(
            async_session, DATASET, DatasetCreateRequest(title="CPIH"), dataset_api_url=DATASET_API
        )

        with pytest.raises(NotFoundError):
            await metadata_service.get_metadata(async_session, DATASET, EDITION, 1, privileged=False)
