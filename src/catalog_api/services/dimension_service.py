"""Dimension service — dimensions and dimension options of a version."""

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import DIMENSION_NOT_FOUND, NotFoundError
from catalog_api.schemas.dimension import Dimension, DimensionOption
from catalog_api.services.version_service import get_version


async def list_dimensions(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
    *,
    privileged: bool,
) -> list[Dimension]:
    """Dimensions of a version, without their options."""
    doc, _ = await get_version(session, dataset_id, edition, version, privileged=privileged)
    return [d.model_copy(update={"options": None}) for d in doc.dimensions or []]


async def list_dimension_options(
    session: AsyncSession,
    dataset_id: str,
    edition: str,
    version: int,
    dimension: str,
    *,
    privileged: bool,
) -> list[DimensionOption]:
    """Options of one dimension of a version, looked up by dimension name or id.

    Raises:
        NotFoundError: If the version has no such dimension.
    """
    doc, _ = await get_version(session, dataset_id, edition, version, privileged=privileged)
    for item in doc.dimensions or []:
        if dimension in (item.name, item.id):
            return list(item.options or [])
    raise NotFoundError(DIMENSION_NOT_FOUND)
