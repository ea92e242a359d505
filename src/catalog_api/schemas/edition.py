"""Pydantic v2 schemas for edition documents."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from catalog_api.schemas.common import Alert, LinkObject, UsageNote
from catalog_api.schemas.version import Distribution


class EditionLinks(BaseModel):
    dataset: LinkObject | None = None
    latest_version: LinkObject | None = None
    self: LinkObject | None = None
    versions: LinkObject | None = None


class Edition(BaseModel):
    """A single edition of a dataset."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    dataset_id: str | None = None
    edition: str | None = None
    edition_title: str | None = None
    release_date: str | None = None
    state: str | None = None
    version: int | None = None
    type: str | None = None
    alerts: list[Alert] | None = None
    usage_notes: list[UsageNote] | None = None
    distributions: list[Distribution] | None = None
    links: EditionLinks | None = None
    last_updated: datetime | None = None
