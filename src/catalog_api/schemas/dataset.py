"""Pydantic v2 schemas for dataset documents and write requests."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from catalog_api.schemas.common import LinkObject


class DatasetType(enum.StrEnum):
    """Kinds of dataset the catalog describes."""

    FILTERABLE = "filterable"
    NOMIS = "nomis"
    CANTABULAR_TABLE = "cantabular_table"
    CANTABULAR_BLOB = "cantabular_blob"
    CANTABULAR_FLEXIBLE_TABLE = "cantabular_flexible_table"
    CANTABULAR_MULTIVARIATE_TABLE = "cantabular_multivariate_table"
    STATIC = "static"


class ContactDetails(BaseModel):
    email: str | None = None
    name: str | None = None
    telephone: str | None = None


class Publisher(BaseModel):
    href: str | None = None
    name: str | None = None
    type: str | None = None


class GeneralDetails(BaseModel):
    description: str | None = None
    href: str | None = None
    title: str | None = None


class DatasetLinks(BaseModel):
    """Links held by a dataset document."""

    access_rights: LinkObject | None = None
    editions: LinkObject | None = None
    latest_version: LinkObject | None = None
    self: LinkObject | None = None
    taxonomy: LinkObject | None = None


class Dataset(BaseModel):
    """A single dataset snapshot (either side of the publication envelope)."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    collection_id: str | None = None
    title: str | None = None
    description: str | None = None
    keywords: list[str] | None = None
    state: str | None = None
    type: DatasetType | None = None
    theme: str | None = None
    license: str | None = None
    contacts: list[ContactDetails] | None = None
    publisher: Publisher | None = None
    methodologies: list[GeneralDetails] | None = None
    publications: list[GeneralDetails] | None = None
    qmi: GeneralDetails | None = None
    related_datasets: list[GeneralDetails] | None = None
    national_statistic: bool | None = None
    next_release: str | None = None
    release_frequency: str | None = None
    unit_of_measure: str | None = None
    uri: str | None = None
    links: DatasetLinks | None = None
    last_updated: datetime | None = None


class DatasetCreateRequest(BaseModel):
    """Request body for creating a dataset."""

    title: str = Field(min_length=1)
    description: str | None = None
    keywords: list[str] | None = None
    type: DatasetType = DatasetType.FILTERABLE
    theme: str | None = None
    license: str | None = None
    contacts: list[ContactDetails] | None = None
    publisher: Publisher | None = None
    methodologies: list[GeneralDetails] | None = None
    publications: list[GeneralDetails] | None = None
    qmi: GeneralDetails | None = None
    related_datasets: list[GeneralDetails] | None = None
    national_statistic: bool | None = None
    next_release: str | None = None
    release_frequency: str | None = None
    unit_of_measure: str | None = None
    uri: str | None = None
    collection_id: str | None = None


class DatasetUpdateRequest(BaseModel):
    """Request body for updating the dataset draft. All fields optional."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    keywords: list[str] | None = None
    theme: str | None = None
    license: str | None = None
    contacts: list[ContactDetails] | None = None
    publisher: Publisher | None = None
    methodologies: list[GeneralDetails] | None = None
    publications: list[GeneralDetails] | None = None
    qmi: GeneralDetails | None = None
    related_datasets: list[GeneralDetails] | None = None
    national_statistic: bool | None = None
    next_release: str | None = None
    release_frequency: str | None = None
    unit_of_measure: str | None = None
    uri: str | None = None
    collection_id: str | None = None
