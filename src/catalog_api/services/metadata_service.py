"""Metadata service — the combined dataset and version description of a release."""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import DATASET_NOT_FOUND, NotFoundError
from catalog_api.schemas.common import LinkObject
from catalog_api.schemas.dataset import Dataset
from catalog_api.schemas.metadata import Metadata, MetadataLinks
from catalog_api.schemas.version import DownloadList, Version, VersionState
from catalog_api.services.dataset_service import dataset_store
from catalog_api.services.version_service import get_version

_DATASET_FIELDS = (
    "contacts",
    "description",
    "keywords",
    "license",
    "methodologies",
    "national_statistic",
    "next_release",
    "publications",
    "publisher",
    "qmi",
    "related_datasets",
    "release_frequency",
    "theme",
    "title",
    "unit_of_measure",
    "uri",
)
_VERSION_FIELDS = ("alerts", "downloads", "latest_changes", "release_date", "temporal")


def _distribution(downloads: DownloadList | None) -> list[str]:
    formats = ["json"]
    if downloads is not None:
        if downloads.csv is not None and downloads.csv.href:
            formats.append("csv")
        if downloads.xls is not None and downloads.xls.href:
            formats.append("xls")
    return formats


def build_metadata(dataset: Dataset, version: Version) -> Metadata:
    """Combine a dataset document and a version document into metadata.

    Dimensions are listed without their options.  The ``self`` link is the
    version link suffixed with ``/metadata``.
    """
    fields = {name: getattr(dataset, name) for name in _DATASET_FIELDS}
    fields.update({name: getattr(version, name) for name in _VERSION_FIELDS})
    metadata = Metadata.model_validate(fields).model_copy(deep=True)
    metadata.dimensions = [d.model_copy(update={"options": None}, deep=True) for d in version.dimensions or []] or None
    metadata.distribution = _distribution(version.downloads)

    links = MetadataLinks()
    if dataset.links is not None and dataset.links.access_rights is not None:
        links.access_rights = dataset.links.access_rights.model_copy()
    if version.links is not None:
        version_link = version.links.version
        if version_link is not None and version_link.href:
            links.self = LinkObject(href=f"{version_link.href}/metadata")
        links.spatial = version.links.spatial.model_copy() if version.links.spatial is not None else None
        links.version = version_link.model_copy() if version_link is not None else None
    metadata.links = links
    return metadata


async def get_metadata(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
    *,
    privileged: bool,
) -> Metadata:
    """Metadata of a version as visible to the caller.

    Public callers only get metadata of a published version of a published
    dataset, built from the published dataset.  Privileged callers asking
    about an unpublished version get it built from the dataset draft.

    Raises:
        NotFoundError: If the dataset, edition or version is missing or not
            visible to the caller.
    """
    envelope = await dataset_store(session).get_envelope(dataset_id)
    if not privileged and envelope.current is None:
        raise NotFoundError(DATASET_NOT_FOUND)
    doc, _ = await get_version(session, dataset_id, edition, version, privileged=privileged)

    dataset = envelope.current
    if dataset is None or doc.state != VersionState.PUBLISHED:
        dataset = envelope.next
    logger.debug("Building metadata of {}/{}/{} for privileged={}", dataset_id, edition, version, privileged)
    return build_metadata(dataset, doc)  # type: ignore[arg-type]
