"""InstanceRecord model — publication envelope of an instance/version."""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog_api.models.base import Base, EnvelopeMixin


class InstanceRecord(Base, EnvelopeMixin):
    """An instance's current and next documents.

    An instance becomes a version of an edition once its edition is confirmed
    and a version number is assigned. The lookup columns mirror the draft.
    A version number is held by at most one instance of an edition.
    """

    __tablename__ = "instances"

    dataset_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    edition: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="created", server_default="created")

    __table_args__ = (
        Index("ix_instance_dataset_edition_version", "dataset_id", "edition", "version", unique=True),
        Index("ix_instance_state", "state"),
    )
