"""Structural validation run as entry actions of lifecycle states."""

from catalog_api.core.errors import ValidationFailedError
from catalog_api.schemas.version import DownloadList, Version

_FILTERABLE = "filterable"


def _is_number(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True


def validate_for_publish(version: Version) -> None:
    """Check that a version is complete enough to be published.

    Raises:
        ValidationFailedError: Listing every missing and invalid field.
    """
    missing: list[str] = []
    invalid: list[str] = []

    if not version.release_date:
        missing.append("release_date")

    if version.downloads is not None:
        for slot in DownloadList.model_fields:
            item = getattr(version.downloads, slot)
            if item is None:
                continue
            if not item.href:
                missing.append(f"downloads.{slot}.href")
            if not item.size:
                missing.append(f"downloads.{slot}.size")
            elif not _is_number(item.size):
                invalid.append(f"downloads.{slot}.size not a number")

    if version.type == _FILTERABLE:
        if not version.headers:
            missing.append("headers")
        if not version.dimensions:
            missing.append("dimensions")

    for index, dimension in enumerate(version.dimensions or []):
        if not dimension.name:
            missing.append(f"dimensions[{index}].name")

    if missing or invalid:
        parts = []
        if missing:
            parts.append(f"missing mandatory fields: {', '.join(missing)}")
        if invalid:
            parts.append(f"invalid fields: {', '.join(invalid)}")
        raise ValidationFailedError("; ".join(parts))


def validate_for_association(version: Version) -> None:
    """An associated version must belong to a collection."""
    if not version.collection_id:
        raise ValidationFailedError("missing collection_id for association between version and a collection")
