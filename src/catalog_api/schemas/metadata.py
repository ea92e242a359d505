"""Pydantic v2 schema of the metadata document describing one version.

The document combines descriptive fields of the dataset with the
release-specific fields of the version.
"""

from pydantic import BaseModel

from catalog_api.schemas.common import Alert, LinkObject
from catalog_api.schemas.dataset import ContactDetails, GeneralDetails, Publisher
from catalog_api.schemas.dimension import Dimension
from catalog_api.schemas.version import DownloadList, LatestChange, TemporalFrequency


class MetadataLinks(BaseModel):
    access_rights: LinkObject | None = None
    self: LinkObject | None = None
    spatial: LinkObject | None = None
    version: LinkObject | None = None
    website_version: LinkObject | None = None


class Metadata(BaseModel):
    """Metadata of a version, as served by the version metadata endpoint."""

    alerts: list[Alert] | None = None
    contacts: list[ContactDetails] | None = None
    description: str | None = None
    dimensions: list[Dimension] | None = None
    distribution: list[str] | None = None
    downloads: DownloadList | None = None
    keywords: list[str] | None = None
    latest_changes: list[LatestChange] | None = None
    license: str | None = None
    links: MetadataLinks | None = None
    methodologies: list[GeneralDetails] | None = None
    national_statistic: bool | None = None
    next_release: str | None = None
    publications: list[GeneralDetails] | None = None
    publisher: Publisher | None = None
    qmi: GeneralDetails | None = None
    related_datasets: list[GeneralDetails] | None = None
    release_date: str | None = None
    release_frequency: str | None = None
    temporal: list[TemporalFrequency] | None = None
    theme: str | None = None
    title: str | None = None
    unit_of_measure: str | None = None
    uri: str | None = None
