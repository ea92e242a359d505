"""EditionRecord model — publication envelope of a dataset edition."""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_api.models.base import Base, EnvelopeMixin


class EditionRecord(Base, EnvelopeMixin):
    """An edition's current and next documents, looked up by dataset and edition name."""

    __tablename__ = "editions"

    dataset_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("datasets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    edition: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (UniqueConstraint("dataset_id", "edition", name="uq_edition_dataset_edition"),)
