"""DatasetRecord model — publication envelope of a dataset."""

from catalog_api.models.base import Base, EnvelopeMixin


class DatasetRecord(Base, EnvelopeMixin):
    """A dataset's current and next documents."""

    __tablename__ = "datasets"
