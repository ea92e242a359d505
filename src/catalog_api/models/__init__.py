"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from catalog_api.models.dataset import DatasetRecord
from catalog_api.models.edition import EditionRecord
from catalog_api.models.instance import InstanceRecord

__all__ = [
    "DatasetRecord",
    "EditionRecord",
    "InstanceRecord",
]
