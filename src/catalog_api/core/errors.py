"""Error taxonomy shared by services and the HTTP layer.

Each error kind carries the HTTP status it maps to; the app factory registers
a single handler that renders any ``CatalogError`` as ``{"detail": ...}``.
"""

from fastapi import status


class CatalogError(Exception):
    """Base class for all expected catalog failures.

    Args:
        detail: Human-readable message returned to the caller.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(CatalogError):
    """The resource, or the sub-document visible to the caller, does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CatalogError):
    """Concurrency token mismatch or a state outside the transition guard."""

    status_code = status.HTTP_409_CONFLICT


class ValidationFailedError(CatalogError):
    """Malformed request or a document that fails structural validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(CatalogError):
    """Mutation or deletion that the resource's publication state does not allow."""

    status_code = status.HTTP_403_FORBIDDEN


class InternalError(CatalogError):
    """Store, producer or link-building failure.

    The ``detail`` is logged but never returned to the caller.
    """

    public_detail = "internal error"


# Messages reused across services
DATASET_NOT_FOUND = "Dataset not found"
EDITION_NOT_FOUND = "Edition not found"
VERSION_NOT_FOUND = "Version not found"
INSTANCE_NOT_FOUND = "Instance not found"
DIMENSION_NOT_FOUND = "Dimension not found"
OPTION_NOT_FOUND = "Dimension option not found"
RESOURCE_STATE = "Incorrect resource state"
ETAG_MISMATCH = "resource does not match the expected eTag"
RESOURCE_PUBLISHED = "unable to update resource as it has been published"
DELETE_PUBLISHED_FORBIDDEN = "a published resource cannot be deleted"
DATASET_EXISTS = "forbidden - dataset already exists"
DUPLICATE_RESOURCE = "resource clashes with one written concurrently, retry the request"
