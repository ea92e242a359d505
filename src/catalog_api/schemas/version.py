"""Pydantic v2 schemas for versions, instances and their downloadable files."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from catalog_api.schemas.common import Alert, LinkObject, UsageNote
from catalog_api.schemas.dimension import Dimension


class VersionState(enum.StrEnum):
    """Lifecycle state of a version/instance."""

    CREATED = "created"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    EDITION_CONFIRMED = "edition-confirmed"
    ASSOCIATED = "associated"
    DETACHED = "detached"
    PUBLISHED = "published"
    FAILED = "failed"


class DownloadObject(BaseModel):
    """A pre-generated download file; ``size`` is a byte count held as a string."""

    href: str | None = None
    private: str | None = None
    public: str | None = None
    size: str | None = None


class DownloadList(BaseModel):
    """Fixed download slots, in display order."""

    xls: DownloadObject | None = None
    xlsx: DownloadObject | None = None
    csv: DownloadObject | None = None
    txt: DownloadObject | None = None
    csvw: DownloadObject | None = None


class Distribution(BaseModel):
    """A described downloadable artifact."""

    title: str | None = None
    format: str | None = None
    media_type: str | None = None
    download_url: str | None = None
    byte_size: int | None = None


class LatestChange(BaseModel):
    description: str | None = None
    name: str | None = None
    type: str | None = None


class TemporalFrequency(BaseModel):
    end_date: str | None = None
    frequency: str | None = None
    start_date: str | None = None


class Event(BaseModel):
    """Something that happened to an instance during import."""

    type: str = Field(min_length=1)
    time: datetime
    message: str = Field(min_length=1)
    message_offset: str = Field(min_length=1)


class VersionLinks(BaseModel):
    dataset: LinkObject | None = None
    dimensions: LinkObject | None = None
    edition: LinkObject | None = None
    self: LinkObject | None = None
    spatial: LinkObject | None = None
    version: LinkObject | None = None


class InstanceLinks(VersionLinks):
    job: LinkObject | None = None


class Version(BaseModel):
    """A version of an edition of a dataset."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    dataset_id: str | None = None
    edition: str | None = None
    edition_title: str | None = None
    version: int | None = None
    state: VersionState = VersionState.CREATED
    collection_id: str | None = None
    release_date: str | None = None
    type: str | None = None
    headers: list[str] | None = None
    dimensions: list[Dimension] | None = None
    downloads: DownloadList | None = None
    distributions: list[Distribution] | None = None
    alerts: list[Alert] | None = None
    usage_notes: list[UsageNote] | None = None
    latest_changes: list[LatestChange] | None = None
    temporal: list[TemporalFrequency] | None = None
    lowest_geography: str | None = None
    links: VersionLinks | None = None
    last_updated: datetime | None = None


class Instance(Version):
    """The stored form of a version, carrying its import job link and events."""

    links: InstanceLinks | None = None
    events: list[Event] | None = None

    def as_version(self) -> Version:
        """Project the instance onto the public version shape.

        The job link is dropped and, once a version number is assigned, the
        self link points at the version rather than the instance.
        """
        data = self.model_dump(exclude={"links", "events"})
        version = Version.model_validate(data)
        if self.links is not None:
            version.links = VersionLinks.model_validate(self.links.model_dump(exclude={"job"}))
            if version.links.version is not None:
                version.links.self = version.links.version.model_copy()
        return version


# ---------------------------------------------------------------------------
# Write schemas
# ---------------------------------------------------------------------------


class InstanceCreateRequest(BaseModel):
    """Request body for registering a new instance."""

    dataset_id: str = Field(min_length=1)
    edition: str | None = None
    type: str | None = None
    job_id: str | None = None
    headers: list[str] | None = None
    dimensions: list[Dimension] | None = None


class VersionUpdateRequest(BaseModel):
    """Partial update of a version draft, optionally requesting a state change."""

    state: VersionState | None = None
    collection_id: str | None = None
    edition_title: str | None = None
    release_date: str | None = None
    headers: list[str] | None = None
    dimensions: list[Dimension] | None = None
    downloads: DownloadList | None = None
    distributions: list[Distribution] | None = None
    alerts: list[Alert] | None = None
    usage_notes: list[UsageNote] | None = None
    latest_changes: list[LatestChange] | None = None
    temporal: list[TemporalFrequency] | None = None
    lowest_geography: str | None = None
    links: VersionLinks | None = None


class InstanceUpdateRequest(VersionUpdateRequest):
    """Partial update of an instance draft; may also assign the edition."""

    edition: str | None = Field(default=None, min_length=1)
    type: str | None = None
