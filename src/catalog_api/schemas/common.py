"""Common Pydantic v2 schemas shared across the API.

Provides the hypermedia link object, the current/next publication envelope,
and the error and list response shapes.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class LinkObject(BaseModel):
    """A hypermedia link: an href plus an optional stable identifier."""

    model_config = ConfigDict(extra="ignore")

    href: str | None = Field(default=None, description="Link target; internal until rewritten")
    id: str | None = Field(default=None, description="Stable identifier of the target resource")


class Alert(BaseModel):
    """A notice attached to a version or edition (correction, alert)."""

    date: str | None = None
    description: str | None = None
    type: str | None = None


class UsageNote(BaseModel):
    """Extra information associated to a resource."""

    note: str | None = None
    title: str | None = None


DocT = TypeVar("DocT", bound=BaseModel)


class VersionedResource(BaseModel, Generic[DocT]):
    """Publication envelope holding the published and the draft document.

    ``current`` is the last published snapshot (absent until first publish);
    ``next`` is the working draft and is always present after creation.
    The two never share sub-objects.
    """

    id: str = Field(description="Stable external identifier")
    current: DocT | None = Field(default=None, description="Last published snapshot")
    next: DocT | None = Field(default=None, description="Working draft snapshot")
    etag: str | None = Field(default=None, description="Concurrency token of the stored envelope")


class ListResponse(BaseModel, Generic[DocT]):
    """A list of documents with a count."""

    items: list[DocT]
    count: int = Field(description="Number of items returned")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error message")
